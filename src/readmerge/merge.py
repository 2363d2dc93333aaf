"""Pairwise profile merging.

Merging happens in two independent walks over the same inputs:

1. :func:`measure_overlap` validates the pair (gaps, mismatches, overlap) and
   computes the exact length of the consensus without building anything.
2. :func:`merge_two` allocates that many slots and fills them with a
   merge-sort style walk, summing coverage at shared sites.

Both walks must step over the same number of elements; a disagreement is an
internal error, not a merge rejection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .config import MergeConfig
from .errors import (
    AllocationFailure,
    BaseMismatch,
    EmptyInput,
    GapNotAllowed,
    InsufficientOverlap,
    NoOverlapOpportunity,
)
from .models import Cmp, Position, Profile, pos_cmp


@dataclass(frozen=True)
class MergePlan:
    """Outcome of a successful overlap measurement."""

    overlap: int  # matched sites
    length: int  # positions in the consensus
    skipped: int  # overhang positions passed before the overlap walk


def _masks_match(a: int, b: int, tolerate_ambiguous: bool) -> bool:
    return a == b or (tolerate_ambiguous and (a & b) != 0)


def combine_masks(a: int, b: int, policy: str = "intersect") -> int:
    """Consensus mask for two matched sites."""
    if policy == "legacy-min":
        return min(a, b)
    return a & b


def measure_overlap(x: Profile, y: Profile, config: MergeConfig) -> MergePlan:
    """Check whether ``x`` and ``y`` can merge and size the result.

    Raises a :class:`~readmerge.errors.MergeFailure` subclass when they cannot.
    """
    xs = x.positions
    ys = y.positions
    if len(xs) == 0 or len(ys) == 0:
        raise EmptyInput()

    # Bounds are inclusive. Insertions stack several sites on one column, so
    # the shared column count alone does not cap the overlap.
    min_overlap = config.min_overlap
    too_short = (
        x.right_bound + 1 < y.left_bound + min_overlap
        and y.right_bound + 1 < x.left_bound + min_overlap
    )
    disjoint = x.right_bound < y.left_bound or y.right_bound < x.left_bound
    if too_short or (disjoint and min_overlap > 0):
        raise NoOverlapOpportunity()

    xidx = 0
    yidx = 0
    length = 0

    # Skip the overhang of whichever profile starts first.
    cmp = pos_cmp(xs[xidx], ys[yidx])
    if cmp is Cmp.LT:
        while cmp is Cmp.LT and xidx + 1 < len(xs):
            xidx += 1
            cmp = pos_cmp(xs[xidx], ys[yidx])
        if cmp is Cmp.GT and not config.tolerate_gaps:
            raise GapNotAllowed("x", x_pos=xs[xidx], y_pos=ys[yidx])
        length += xidx
    elif cmp is Cmp.GT:
        while cmp is Cmp.GT and yidx + 1 < len(ys):
            yidx += 1
            cmp = pos_cmp(xs[xidx], ys[yidx])
        if cmp is Cmp.LT and not config.tolerate_gaps:
            raise GapNotAllowed("y", x_pos=xs[xidx], y_pos=ys[yidx])
        length += yidx
    skipped = length

    overlap = 0
    while xidx < len(xs) and yidx < len(ys):
        xp = xs[xidx]
        yp = ys[yidx]
        cmp = pos_cmp(xp, yp)
        if cmp is Cmp.LT:
            if not config.tolerate_gaps:
                raise GapNotAllowed("y", x_pos=xp, y_pos=yp)
            xidx += 1
        elif cmp is Cmp.GT:
            if not config.tolerate_gaps:
                raise GapNotAllowed("x", x_pos=xp, y_pos=yp)
            yidx += 1
        elif _masks_match(xp.base_mask, yp.base_mask, config.tolerate_ambiguous):
            overlap += 1
            xidx += 1
            yidx += 1
        else:
            raise BaseMismatch(x_pos=xp, y_pos=yp)
        length += 1

    if overlap < min_overlap:
        raise InsufficientOverlap(overlap, min_overlap)

    # at most one of these is non-zero
    length += (len(xs) - xidx) + (len(ys) - yidx)
    return MergePlan(overlap=overlap, length=length, skipped=skipped)


def merge_two(x: Profile, y: Profile, config: MergeConfig) -> Profile:
    """Merge two overlapping profiles into a new consensus profile.

    Neither input is modified. Raises a :class:`~readmerge.errors.MergeFailure`
    subclass when the pair does not merge, and
    :class:`~readmerge.errors.AllocationFailure` if the result cannot be stored.
    """
    plan = measure_overlap(x, y, config)

    try:
        merged: List[Optional[Position]] = [None] * plan.length
    except MemoryError as err:
        raise AllocationFailure(f"could not allocate {plan.length} positions") from err

    xs = x.positions
    ys = y.positions
    xidx = 0
    yidx = 0
    midx = 0
    while xidx < len(xs) and yidx < len(ys):
        xp = xs[xidx]
        yp = ys[yidx]
        cmp = pos_cmp(xp, yp)
        if cmp is Cmp.LT:
            merged[midx] = xp
            xidx += 1
        elif cmp is Cmp.GT:
            merged[midx] = yp
            yidx += 1
        else:
            merged[midx] = Position(
                column=xp.column,
                insertion_offset=xp.insertion_offset,
                base_mask=combine_masks(xp.base_mask, yp.base_mask, config.mask_policy),
                coverage=xp.coverage + yp.coverage,
            )
            xidx += 1
            yidx += 1
        midx += 1

    tail = xs[xidx:] if xidx < len(xs) else ys[yidx:]
    if midx + len(tail) != plan.length:
        raise RuntimeError(
            f"merge walk disagreement: planned {plan.length} positions, filled {midx + len(tail)}"
        )
    merged[midx:] = tail

    return Profile(
        positions=merged,  # type: ignore[arg-type]
        left_bound=min(x.left_bound, y.left_bound),
        right_bound=max(x.right_bound, y.right_bound),
        contributor_count=x.contributor_count + y.contributor_count,
        name="merged",
    )
