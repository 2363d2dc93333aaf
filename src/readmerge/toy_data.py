from __future__ import annotations

import random
from pathlib import Path
from typing import Dict, List

import pysam

from .utils import ensure_outdir, wrap_sequence, write_json

TOY_CONTIG = "chr1"
TOY_READ_LEN = 40
# (first start, step, number of reads); groups do not touch each other
TOY_GROUPS = [(10, 10, 8), (150, 10, 6), (260, 0, 1)]


def _write_fasta(path: Path, contig: str, seq: str) -> None:
    lines = [f">{contig}"] + wrap_sequence(seq)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _make_read(
    name: str,
    contig_id: int,
    start0: int,
    seq: str,
    mapq: int = 60,
) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = 0
    a.reference_id = contig_id
    a.reference_start = start0
    a.mapping_quality = mapq
    a.cigartuples = [(0, len(seq))]
    a.query_qualities = pysam.qualitystring_to_array("I" * len(seq))
    return a


def make_toy_data(*, outdir: str | Path, read_len: int = TOY_READ_LEN) -> Dict[str, str]:
    """Create a tiny reference and BAM suitable for quick demos/tests.

    Reads are error-free tiles of the reference in three separate groups
    (8 reads, 6 reads and a singleton), so clustering with a minimum overlap
    up to ``read_len - 10`` yields exactly three clusters.

    The outputs include:
    - toy_ref.fa (+ .fai)
    - reads.bam (+ .bai)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    rng = random.Random(7)
    ref_seq = "".join(rng.choice("ACGT") for _ in range(320))
    ref_fa = outdir_p / "toy_ref.fa"
    _write_fasta(ref_fa, TOY_CONTIG, ref_seq)
    pysam.faidx(str(ref_fa))

    bam_path = outdir_p / "reads.bam"
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": TOY_CONTIG, "LN": len(ref_seq)}],
    }

    reads: List[pysam.AlignedSegment] = []
    for g, (first, step, n) in enumerate(TOY_GROUPS):
        for i in range(n):
            start0 = first + i * step
            seq = ref_seq[start0 : start0 + read_len]
            reads.append(_make_read(f"g{g}_r{i}", 0, start0, seq))

    reads.sort(key=lambda r: r.reference_start)

    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in reads:
            bam.write(r)

    pysam.index(str(bam_path))

    summary = {
        "ref_fa": str(ref_fa),
        "reads_bam": str(bam_path),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
