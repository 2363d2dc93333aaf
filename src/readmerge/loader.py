from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import pysam
from tqdm import tqdm

from .models import Position, Profile
from .nucleotide import nuc2bits

logger = logging.getLogger(__name__)


def read_positions(read: pysam.AlignedSegment, *, min_baseq: int = 0) -> List[Position]:
    """Walk the CIGAR once and return the read's sites in comparator order.

    Aligned bases (M, =, X) land on their reference column with offset 0.
    Inserted bases are attached to the preceding reference column with
    offsets 1..n; an insertion before the first aligned base has no anchor
    column and is dropped. Deletions and reference skips produce no sites.
    Bases below ``min_baseq`` are dropped, leaving a gap.
    """
    if read.is_unmapped or read.cigartuples is None:
        return []

    seq = read.query_sequence
    if seq is None:
        return []
    quals = read.query_qualities  # can be None

    out: List[Position] = []
    ref_pos = read.reference_start
    query_pos = 0
    last_col: Optional[int] = None
    ins_rank = 0

    for op, length in read.cigartuples:
        if op in (0, 7, 8):  # M, =, X: consumes query and ref
            for k in range(length):
                qpos = query_pos + k
                if quals is None or quals[qpos] >= min_baseq:
                    out.append(Position(ref_pos + k, 0, nuc2bits(seq[qpos].upper()), 1))
            last_col = ref_pos + length - 1
            ins_rank = 0
            ref_pos += length
            query_pos += length
        elif op == 1:  # I: consumes query only
            if last_col is not None:
                for k in range(length):
                    qpos = query_pos + k
                    ins_rank += 1
                    if quals is None or quals[qpos] >= min_baseq:
                        out.append(Position(last_col, ins_rank, nuc2bits(seq[qpos].upper()), 1))
            query_pos += length
        elif op in (2, 3):  # D, N: consumes ref only
            last_col = ref_pos + length - 1
            ins_rank = 0
            ref_pos += length
        elif op == 4:  # S: consumes query only
            query_pos += length
        else:
            # H, P and unknown ops consume neither
            continue

    return out


def profile_from_read(read: pysam.AlignedSegment, *, min_baseq: int = 0) -> Optional[Profile]:
    """Build a single-read profile, or None if the read has no usable sites."""
    positions = read_positions(read, min_baseq=min_baseq)
    if not positions or read.reference_end is None:
        return None
    return Profile(
        positions=positions,
        left_bound=int(read.reference_start),
        right_bound=int(read.reference_end) - 1,
        contributor_count=1,
        name=str(read.query_name),
    )


def load_profiles(
    bam_path: str,
    *,
    min_mapq: int = 0,
    min_baseq: int = 0,
    skip_duplicates: bool = True,
    include_secondary: bool = False,
    include_supplementary: bool = False,
    region: Optional[str] = None,
    progress: bool = True,
) -> Tuple[Dict[str, List[Profile]], Dict[str, int]]:
    """Read a BAM and return per-contig single-read profiles plus read counters.

    Profiles on each contig are kept in BAM order. ``region`` (``ctg:start-end``)
    requires an indexed BAM; without it the file is read sequentially.
    """
    counts = {
        "reads_total": 0,
        "reads_used": 0,
        "reads_unmapped": 0,
        "reads_skipped_secondary": 0,
        "reads_skipped_supplementary": 0,
        "reads_skipped_duplicates": 0,
        "reads_skipped_mapq": 0,
        "reads_empty": 0,
    }
    by_contig: Dict[str, List[Profile]] = {}

    with pysam.AlignmentFile(bam_path, "rb") as bam:
        if region is not None:
            it: Iterable[pysam.AlignedSegment] = bam.fetch(region=region)
        else:
            it = bam.fetch(until_eof=True)
        if progress:
            it = tqdm(it, unit="read", desc="Loading reads")

        for read in it:
            counts["reads_total"] += 1

            if read.is_unmapped:
                counts["reads_unmapped"] += 1
                continue
            if read.is_secondary and not include_secondary:
                counts["reads_skipped_secondary"] += 1
                continue
            if read.is_supplementary and not include_supplementary:
                counts["reads_skipped_supplementary"] += 1
                continue
            if skip_duplicates and read.is_duplicate:
                counts["reads_skipped_duplicates"] += 1
                continue
            if read.mapping_quality < min_mapq:
                counts["reads_skipped_mapq"] += 1
                continue

            profile = profile_from_read(read, min_baseq=min_baseq)
            if profile is None:
                counts["reads_empty"] += 1
                continue

            by_contig.setdefault(str(read.reference_name), []).append(profile)
            counts["reads_used"] += 1

    logger.info(
        "Loaded %d of %d reads across %d contigs",
        counts["reads_used"],
        counts["reads_total"],
        len(by_contig),
    )
    return by_contig, counts
