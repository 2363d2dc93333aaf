"""Merge and clustering parameters."""

from __future__ import annotations

from dataclasses import dataclass

MASK_POLICIES = ("intersect", "legacy-min")


@dataclass(frozen=True)
class MergeConfig:
    """Configuration for pairwise merging and cluster retention.

    Attributes:
        min_overlap: Minimum number of matching sites required to merge
        tolerate_gaps: Allow a site present in one profile to be absent in the other
        tolerate_ambiguous: Accept intersecting (not only identical) ambiguity masks
        min_reads: Minimum contributor count for a final cluster to be retained
        mask_policy: How matched masks combine: 'intersect' (bitwise AND) or
            'legacy-min' (numerically smaller mask, as older releases did)
    """
    min_overlap: int = 10
    tolerate_gaps: bool = False
    tolerate_ambiguous: bool = False
    min_reads: int = 1
    mask_policy: str = "intersect"

    def __post_init__(self) -> None:
        if self.min_overlap < 0:
            raise ValueError(f"min_overlap must be >= 0, got {self.min_overlap}")
        if self.min_reads < 1:
            raise ValueError(f"min_reads must be >= 1, got {self.min_reads}")
        if self.mask_policy not in MASK_POLICIES:
            raise ValueError(
                f"mask_policy must be one of {', '.join(MASK_POLICIES)}, got {self.mask_policy!r}"
            )

    @classmethod
    def from_args(cls, args) -> "MergeConfig":
        """Create config from command-line arguments."""
        return cls(
            min_overlap=int(getattr(args, "min_overlap", 10)),
            tolerate_gaps=bool(getattr(args, "tolerate_gaps", False)),
            tolerate_ambiguous=bool(getattr(args, "tolerate_ambiguous", False)),
            min_reads=int(getattr(args, "min_reads", 1)),
            mask_policy=str(getattr(args, "mask_policy", "intersect")),
        )
