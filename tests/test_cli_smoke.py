import subprocess
import sys


def test_cli_help() -> None:
    cp = subprocess.run(
        [sys.executable, "-m", "readmerge", "--help"],
        check=True,
        capture_output=True,
        text=True,
    )
    assert "readmerge" in cp.stdout.lower()
