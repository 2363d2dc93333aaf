from __future__ import annotations

import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from .cluster import merge_clusters
from .config import MergeConfig
from .loader import load_profiles
from .models import Profile
from .output import write_clusters_fasta, write_clusters_tsv
from .utils import ensure_outdir, write_json

logger = logging.getLogger(__name__)


def cluster_profiles(
    profiles_by_contig: Dict[str, List[Profile]],
    config: MergeConfig,
    *,
    progress: bool = True,
) -> Dict[str, object]:
    """Cluster each contig's profiles in place; return per-contig counts.

    Columns are only comparable within a contig, so contigs never mix.
    """
    contigs: Dict[str, Dict[str, int]] = {}
    n_merges = 0
    n_retained = 0

    for contig, profiles in profiles_by_contig.items():
        n_reads = len(profiles)
        bar: Optional[tqdm] = None
        if progress:
            bar = tqdm(total=max(n_reads - 1, 0), unit="merge", desc=f"Merging {contig}")

        merges_here = 0

        def _on_merge(merges: int, n_profiles: int) -> None:
            nonlocal merges_here
            merges_here = merges
            if bar is not None:
                bar.update(1)
                bar.set_postfix(clusters=n_profiles)

        try:
            retained = merge_clusters(profiles, config, progress=_on_merge)
        finally:
            if bar is not None:
                bar.close()

        logger.info(
            "%s: %d reads -> %d clusters (%d retained)", contig, n_reads, len(profiles), retained
        )
        contigs[contig] = {
            "reads": n_reads,
            "clusters": len(profiles),
            "retained": retained,
            "merges": merges_here,
        }
        n_merges += merges_here
        n_retained += retained

    return {
        "contigs": contigs,
        "n_clusters": sum(c["clusters"] for c in contigs.values()),
        "n_retained": n_retained,
        "n_merges": n_merges,
    }


def cluster_bam(
    *,
    bam_path: str,
    outdir: str | Path,
    config: MergeConfig,
    min_mapq: int = 0,
    min_baseq: int = 0,
    skip_duplicates: bool = True,
    include_secondary: bool = False,
    include_supplementary: bool = False,
    region: Optional[str] = None,
    fasta_name: str = "clusters.fasta",
    progress: bool = True,
) -> Dict[str, object]:
    """Main workhorse: load reads, cluster them, write outputs, and return a summary dict."""
    t0 = time.time()
    outdir_path = ensure_outdir(outdir)

    profiles_by_contig, counts = load_profiles(
        bam_path,
        min_mapq=min_mapq,
        min_baseq=min_baseq,
        skip_duplicates=skip_duplicates,
        include_secondary=include_secondary,
        include_supplementary=include_supplementary,
        region=region,
        progress=progress,
    )
    if not profiles_by_contig:
        raise ValueError(
            f"No usable reads in {bam_path} after filtering. "
            "Check --min-mapq/--min-baseq or the --region string."
        )

    clustered = cluster_profiles(profiles_by_contig, config, progress=progress)

    fasta_path = outdir_path / fasta_name
    tsv_path = outdir_path / "clusters.tsv"
    n_written = write_clusters_fasta(fasta_path, profiles_by_contig, min_reads=config.min_reads)
    write_clusters_tsv(tsv_path, profiles_by_contig, min_reads=config.min_reads)

    dt = time.time() - t0

    summary: Dict[str, object] = {
        "bam_path": bam_path,
        "region": region,
        "config": asdict(config),
        "min_mapq": int(min_mapq),
        "min_baseq": int(min_baseq),
        "skip_duplicates": bool(skip_duplicates),
        "include_secondary": bool(include_secondary),
        "include_supplementary": bool(include_supplementary),
        "counts": counts,
        "fasta_path": str(fasta_path),
        "tsv_path": str(tsv_path),
        "sequences_written": n_written,
        "cluster_sizes": [
            p.contributor_count for profiles in profiles_by_contig.values() for p in profiles
        ],
        "retained_spans": [
            {"contig": contig, "left": p.left_bound, "right": p.right_bound, "ncontrib": p.contributor_count}
            for contig, profiles in profiles_by_contig.items()
            for p in profiles
            if p.contributor_count >= config.min_reads
        ],
        "runtime_seconds": float(dt),
    }
    summary.update(clustered)

    write_json(outdir_path / "summary.json", summary)
    return summary
