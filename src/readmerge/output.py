from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

from .models import Profile
from .utils import open_textmaybe_gzip, wrap_sequence

logger = logging.getLogger(__name__)

_TSV_COLUMNS = [
    "contig",
    "cluster",
    "contributor_count",
    "left_bound",
    "right_bound",
    "n_positions",
    "mean_coverage",
    "retained",
]


def cluster_header(contig: str, index: int, profile: Profile) -> str:
    return (
        f"{contig}_cluster{index} ncontrib={profile.contributor_count} "
        f"span={profile.left_bound}-{profile.right_bound}"
    )


def write_clusters_fasta(
    path: str | Path,
    clusters_by_contig: Dict[str, List[Profile]],
    *,
    min_reads: int = 1,
) -> int:
    """Write the consensus of every cluster with at least ``min_reads`` reads.

    Returns the number of records written. Cluster indices count all clusters
    on a contig, so they line up with the TSV even when some are filtered out.
    """
    n_written = 0
    with open_textmaybe_gzip(path, "wt") as fh:
        for contig, clusters in clusters_by_contig.items():
            for i, profile in enumerate(clusters):
                if profile.contributor_count < min_reads:
                    continue
                fh.write(">" + cluster_header(contig, i, profile) + "\n")
                for line in wrap_sequence(profile.sequence()):
                    fh.write(line + "\n")
                n_written += 1
    logger.info("Wrote %d consensus sequences to %s", n_written, path)
    return n_written


def write_clusters_tsv(
    path: str | Path,
    clusters_by_contig: Dict[str, List[Profile]],
    *,
    min_reads: int = 1,
) -> None:
    with open_textmaybe_gzip(path, "wt") as fh:
        fh.write("\t".join(_TSV_COLUMNS) + "\n")
        for contig, clusters in clusters_by_contig.items():
            for i, p in enumerate(clusters):
                fh.write(
                    f"{contig}\t{i}\t{p.contributor_count}\t{p.left_bound}\t{p.right_bound}\t"
                    f"{len(p.positions)}\t{p.mean_coverage():.3f}\t"
                    f"{int(p.contributor_count >= min_reads)}\n"
                )
