"""readmerge: cluster aligned reads into consensus profiles by overlap merging.

Public API is intentionally small; most users should use the CLI:

    readmerge cluster --bam ... --outdir ...

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
