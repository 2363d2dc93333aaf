from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)


def size_histogram(sizes: List[int], *, max_bin: int = 20) -> Dict[str, List[int]]:
    """Histogram of cluster sizes with the tail collapsed into ``max_bin + 1``."""
    arr = np.asarray(sizes, dtype=np.int64)
    clipped = np.minimum(arr, max_bin + 1)
    counts = np.bincount(clipped, minlength=max_bin + 2)
    return {"sizes": list(range(0, max_bin + 2)), "counts": counts.tolist()}


def plot_cluster_sizes(
    *,
    sizes: List[int],
    out_png: str | Path,
    title: str = "Reads per cluster",
    max_bin: int = 20,
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    hist = size_histogram(sizes, max_bin=max_bin)
    xs = hist["sizes"][1:]
    ys = hist["counts"][1:]
    xticklabels = [str(x) for x in xs]
    xticklabels[-1] = f"{max_bin + 1}+"

    plt.figure()
    plt.bar(range(len(xs)), ys)
    plt.xlabel("Contributing reads")
    plt.ylabel("Cluster count")
    plt.title(title)
    plt.xticks(range(len(xs)), xticklabels, rotation=0, fontsize=7)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_cluster_spans(
    *,
    spans: List[Dict[str, int]],
    out_png: str | Path,
    title: str = "Retained cluster spans",
) -> None:
    """Draw one horizontal segment per retained cluster.

    ``spans`` items carry ``left``, ``right`` and ``ncontrib``; segments are
    stacked in input order.
    """
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    plt.figure()
    if spans:
        lefts = np.array([s["left"] for s in spans])
        rights = np.array([s["right"] for s in spans])
        weights = np.array([s["ncontrib"] for s in spans], dtype=float)
        ys = np.arange(len(spans))
        lw = 1.0 + 4.0 * weights / max(float(weights.max()), 1.0)
        plt.hlines(ys, lefts, rights + 1, linewidth=lw)
        plt.ylim(-1, len(spans))
    plt.xlabel("Reference column")
    plt.ylabel("Cluster")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
