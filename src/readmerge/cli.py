from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import MASK_POLICIES, MergeConfig
from .errors import FatalMergeError
from .pipeline import cluster_bam
from .plotting import plot_cluster_sizes, plot_cluster_spans
from .report import render_report
from .toy_data import make_toy_data
from .utils import ensure_outdir


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _non_negative_int(s: str) -> int:
    v = int(s)
    if v < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got {s}")
    return v


def _positive_int(s: str) -> int:
    v = int(s)
    if v < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {s}")
    return v


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, FatalMergeError):
        msg = f"Clustering aborted: {err}"
    else:
        msg = f"{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="readmerge",
        description=(
            "readmerge: cluster aligned reads into consensus sequences by merging "
            "overlapping reads, with optional tolerance for gaps and IUPAC ambiguity."
        ),
    )
    p.add_argument("--version", action="version", version=f"readmerge {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny reference and BAM for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # cluster
    # -----------------
    c = sub.add_parser(
        "cluster",
        help="Merge overlapping reads in a BAM into consensus clusters.",
    )
    c.add_argument("--bam", required=True, type=_path_exists, help="Input BAM.")
    c.add_argument("--outdir", required=True, help="Output directory.")
    c.add_argument(
        "--region",
        default=None,
        help="Optional region string ctg:start-end (requires an indexed BAM).",
    )

    # Merge parameters
    c.add_argument(
        "--min-overlap",
        type=_non_negative_int,
        default=10,
        help="Minimum number of matching sites required to merge two reads/clusters.",
    )
    c.add_argument(
        "--tolerate-gaps",
        action="store_true",
        help="Allow a site present in one read/cluster to be missing from the other.",
    )
    c.add_argument(
        "--tolerate-ambiguous",
        action="store_true",
        help="Treat overlapping IUPAC ambiguity codes as a match (not only identical codes).",
    )
    c.add_argument(
        "--min-reads",
        type=_positive_int,
        default=1,
        help="Minimum contributing reads for a cluster to be reported.",
    )
    c.add_argument(
        "--mask-policy",
        choices=list(MASK_POLICIES),
        default="intersect",
        help=(
            "How matched ambiguity codes combine: intersect (shared bases only) or "
            "legacy-min (numerically smaller code, as older releases did)."
        ),
    )

    # Read filters
    c.add_argument("--min-mapq", type=_non_negative_int, default=0, help="Minimum MAPQ for a read.")
    c.add_argument(
        "--min-baseq",
        type=_non_negative_int,
        default=0,
        help="Drop bases below this quality (they become gaps).",
    )
    c.add_argument("--keep-duplicates", action="store_true", help="Do not skip duplicate reads.")
    c.add_argument("--include-secondary", action="store_true", help="Include secondary alignments.")
    c.add_argument(
        "--include-supplementary", action="store_true", help="Include supplementary alignments."
    )

    # Outputs
    c.add_argument(
        "--gzip",
        action="store_true",
        help="Write clusters.fasta.gz instead of clusters.fasta.",
    )
    c.add_argument("--no-report", action="store_true", help="Skip plots and report.html.")
    c.add_argument("--no-progress", action="store_true", help="Disable progress bars.")
    c.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    c.add_argument("--resume", action="store_true", help="Skip if outputs already exist.")

    c.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "readmerge quickstart (copy/paste):",
        "",
        "1) Exact merging (identical bases only, no gaps):",
        "   readmerge cluster \\",
        "     --bam reads.bam \\",
        "     --outdir results/ \\",
        "     --min-overlap 20",
        "   Outputs: results/clusters.fasta, results/clusters.tsv, results/report.html",
        "",
        "2) Noisy long reads (allow indels and ambiguity codes, keep clusters of >= 5 reads):",
        "   readmerge cluster \\",
        "     --bam reads.bam \\",
        "     --outdir results/ \\",
        "     --tolerate-gaps --tolerate-ambiguous \\",
        "     --min-reads 5",
        "",
        "3) Try it on synthetic data:",
        "   readmerge make-toy-data --outdir toy/",
        "   readmerge cluster --bam toy/reads.bam --outdir toy/out --min-overlap 20",
        "",
        "Tip: use --dry-run to validate inputs and print planned outputs.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _write_plots(outdir: Path, run: dict) -> dict:
    plots_dir = outdir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    sizes_png = plots_dir / "cluster_sizes.png"
    spans_png = plots_dir / "cluster_spans.png"
    plot_cluster_sizes(sizes=run["cluster_sizes"], out_png=sizes_png)
    plot_cluster_spans(spans=run["retained_spans"], out_png=spans_png)

    return {
        "cluster_sizes": str(Path("plots") / sizes_png.name),
        "cluster_spans": str(Path("plots") / spans_png.name),
    }


def cmd_cluster(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "cluster.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("readmerge")
    logger.info("readmerge %s", __version__)

    try:
        config = MergeConfig.from_args(args)
        fasta_name = "clusters.fasta.gz" if args.gzip else "clusters.fasta"

        if args.dry_run:
            print("Dry-run: inputs look OK.")
            print(
                f"Merge parameters: min_overlap={config.min_overlap} "
                f"tolerate_gaps={config.tolerate_gaps} "
                f"tolerate_ambiguous={config.tolerate_ambiguous} "
                f"min_reads={config.min_reads} mask_policy={config.mask_policy}"
            )
            print("Planned outputs:")
            print(f"  {fasta_name} -> {outdir / fasta_name}")
            print(f"  clusters.tsv -> {outdir / 'clusters.tsv'}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            if not args.no_report:
                print(f"  report.html -> {outdir / 'report.html'}")
            return 0

        outdir = ensure_outdir(outdir)

        if args.resume and (outdir / "summary.json").exists():
            logger.info("Resume enabled: summary.json already exists in %s", outdir)
            print(str(outdir / fasta_name))
            return 0

        run = cluster_bam(
            bam_path=args.bam,
            outdir=outdir,
            config=config,
            min_mapq=int(args.min_mapq),
            min_baseq=int(args.min_baseq),
            skip_duplicates=not bool(args.keep_duplicates),
            include_secondary=bool(args.include_secondary),
            include_supplementary=bool(args.include_supplementary),
            region=args.region,
            fasta_name=fasta_name,
            progress=not bool(args.no_progress),
        )

        logger.info(
            "%d clusters, %d with >= %d reads",
            run["n_clusters"],
            run["n_retained"],
            config.min_reads,
        )

        if not args.no_report:
            plots_rel = _write_plots(outdir, run)
            render_report(outdir=outdir, version=__version__, run=run, plots=plots_rel)

        print(str(run["fasta_path"]))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "cluster":
        return cmd_cluster(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
