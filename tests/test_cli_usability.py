import gzip
import json
import subprocess
import sys
from pathlib import Path

from readmerge.toy_data import make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "readmerge"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def _fasta_headers(path: Path) -> list[str]:
    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "rt") as fh:
        return [line[1:].strip() for line in fh if line.startswith(">")]


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "readmerge cluster" in cp.stdout


def test_cluster_dry_run_does_not_write_outputs(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"
    cp = _run_cli(["cluster", "--bam", toy["reads_bam"], "--outdir", str(outdir), "--dry-run"])
    assert cp.returncode == 0
    assert "Dry-run" in cp.stdout
    assert not (outdir / "summary.json").exists()


def test_make_toy_data_and_cluster(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0

    outdir = tmp_path / "out"
    cp = _run_cli(
        [
            "cluster",
            "--bam",
            str(toy_dir / "reads.bam"),
            "--outdir",
            str(outdir),
            "--min-overlap",
            "20",
            "--min-reads",
            "2",
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert (outdir / "report.html").exists()
    assert (outdir / "plots" / "cluster_sizes.png").exists()

    summary = json.loads((outdir / "summary.json").read_text(encoding="utf-8"))
    assert summary["n_clusters"] == 3
    assert summary["n_retained"] == 2
    assert summary["n_merges"] == 12
    assert sorted(summary["cluster_sizes"]) == [1, 6, 8]
    assert summary["contigs"]["chr1"]["reads"] == 15

    headers = _fasta_headers(outdir / "clusters.fasta")
    assert headers == [
        "chr1_cluster0 ncontrib=8 span=10-119",
        "chr1_cluster1 ncontrib=6 span=150-239",
    ]

    tsv_lines = (outdir / "clusters.tsv").read_text(encoding="utf-8").splitlines()
    assert len(tsv_lines) == 4
    assert tsv_lines[-1].split("\t")[-1] == "0"


def test_consensus_matches_reference(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    ref = "".join(Path(toy["ref_fa"]).read_text(encoding="utf-8").splitlines()[1:])

    outdir = tmp_path / "out"
    cp = _run_cli(
        [
            "cluster",
            "--bam",
            toy["reads_bam"],
            "--outdir",
            str(outdir),
            "--min-overlap",
            "20",
            "--gzip",
            "--no-report",
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert not (outdir / "report.html").exists()

    with gzip.open(outdir / "clusters.fasta.gz", "rt") as fh:
        records = fh.read().split(">")[1:]
    seqs = ["".join(rec.splitlines()[1:]) for rec in records]
    assert seqs[0] == ref[10:120]
    assert seqs[1] == ref[150:240]
    assert seqs[2] == ref[260:300]


def test_bad_region_reports_error(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        [
            "cluster",
            "--bam",
            toy["reads_bam"],
            "--outdir",
            str(tmp_path / "out"),
            "--region",
            "chr1:5-8",
            "--no-progress",
        ]
    )
    assert cp.returncode == 2
    assert "No usable reads" in cp.stderr
    assert "See log" in cp.stderr


def test_invalid_min_reads_rejected(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        ["cluster", "--bam", toy["reads_bam"], "--outdir", str(tmp_path / "out"), "--min-reads", "0"]
    )
    assert cp.returncode == 2
    assert "positive integer" in cp.stderr
