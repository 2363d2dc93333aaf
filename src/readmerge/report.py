from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>readmerge Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>readmerge Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>BAM</th><td><code>{{ bam_path }}</code></td></tr>
      <tr><th>Region</th><td><code>{{ region or "all" }}</code></td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Merge parameters</h3>
    <table>
      <tr><th>Min overlap</th><td>{{ config.min_overlap }}</td></tr>
      <tr><th>Tolerate gaps</th><td>{{ config.tolerate_gaps }}</td></tr>
      <tr><th>Tolerate ambiguous</th><td>{{ config.tolerate_ambiguous }}</td></tr>
      <tr><th>Min reads</th><td>{{ config.min_reads }}</td></tr>
      <tr><th>Mask policy</th><td>{{ config.mask_policy }}</td></tr>
    </table>
  </div>
</div>

<h2>Reads</h2>
<table>
  <tr><th>Total reads seen</th><td>{{ counts.reads_total }}</td></tr>
  <tr><th>Reads clustered</th><td>{{ counts.reads_used }}</td></tr>
  <tr><th>Unmapped skipped</th><td>{{ counts.reads_unmapped }}</td></tr>
  <tr><th>Duplicates skipped</th><td>{{ counts.reads_skipped_duplicates }}</td></tr>
  <tr><th>Secondary skipped</th><td>{{ counts.reads_skipped_secondary }}</td></tr>
  <tr><th>Supplementary skipped</th><td>{{ counts.reads_skipped_supplementary }}</td></tr>
  <tr><th>Low MAPQ skipped</th><td>{{ counts.reads_skipped_mapq }}</td></tr>
  <tr><th>No usable bases</th><td>{{ counts.reads_empty }}</td></tr>
</table>

<h2>Clusters</h2>
<table>
  <tr><th>Contig</th><th>Input reads</th><th>Clusters</th><th>Retained</th></tr>
  {% for contig, c in contigs.items() %}
  <tr><td><code>{{ contig }}</code></td><td>{{ c.reads }}</td><td>{{ c.clusters }}</td><td>{{ c.retained }}</td></tr>
  {% endfor %}
  <tr><th>Total</th><th>{{ counts.reads_used }}</th><th>{{ n_clusters }}</th><th>{{ n_retained }}</th></tr>
</table>
<p class="small">Merges performed: {{ n_merges }}</p>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Cluster sizes</h3>
    <img src="{{ plots.cluster_sizes }}" alt="cluster sizes">
  </div>
  <div class="card">
    <h3>Cluster spans</h3>
    <img src="{{ plots.cluster_spans }}" alt="cluster spans">
  </div>
</div>

<h2>Outputs</h2>
<ul>
  <li><code>{{ fasta_path }}</code> (consensus sequences of retained clusters)</li>
  <li><code>{{ tsv_path }}</code> (per-cluster table)</li>
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>Consensus bases use IUPAC codes; <code>N</code> marks sites where no base could be resolved.</li>
  <li>Clusters below the minimum read count are listed in the table but not written as sequences.</li>
</ul>

<hr>
<p class="small">readmerge {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    run: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        bam_path=run.get("bam_path"),
        region=run.get("region"),
        config=run.get("config", {}),
        counts=run.get("counts", {}),
        contigs=run.get("contigs", {}),
        n_clusters=run.get("n_clusters"),
        n_retained=run.get("n_retained"),
        n_merges=run.get("n_merges"),
        fasta_path=run.get("fasta_path"),
        tsv_path=run.get("tsv_path"),
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.info("Report written: %s", out_path)
    return out_path
