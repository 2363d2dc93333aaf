from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Tuple

from .nucleotide import bits2nuc, bits2seq


class Cmp(enum.Enum):
    LT = -1
    EQ = 0
    GT = 1


@dataclass(frozen=True)
class Position:
    """One observed site within a profile.

    Attributes
    ----------
    column:
        0-based reference coordinate.
    insertion_offset:
        Rank of an inserted base after ``column`` (0 for a reference-aligned base).
    base_mask:
        4-bit IUPAC mask (see :mod:`readmerge.nucleotide`); never zero.
    coverage:
        Number of reads whose evidence is folded into this site.
    """

    column: int
    insertion_offset: int
    base_mask: int
    coverage: int = 1

    @property
    def key(self) -> Tuple[int, int]:
        return (self.column, self.insertion_offset)

    def describe(self) -> str:
        return f"{self.column} {self.insertion_offset} {bits2nuc(self.base_mask)}"


def pos_cmp(x: Position, y: Position) -> Cmp:
    """Order by column, then insertion offset."""
    if x.column > y.column:
        return Cmp.GT
    if x.column < y.column:
        return Cmp.LT
    if x.insertion_offset > y.insertion_offset:
        return Cmp.GT
    if x.insertion_offset < y.insertion_offset:
        return Cmp.LT
    return Cmp.EQ


@dataclass(frozen=True)
class Profile:
    """A run of positions for one read, or the consensus of several.

    ``left_bound``/``right_bound`` are the inclusive reference span of the
    underlying reads; they may extend past the first/last position when
    clipped or low-quality bases were dropped.
    """

    positions: List[Position]
    left_bound: int
    right_bound: int
    contributor_count: int = 1
    name: str = field(default="", compare=False)

    def __len__(self) -> int:
        return len(self.positions)

    def sequence(self) -> str:
        return bits2seq(p.base_mask for p in self.positions)

    def mean_coverage(self) -> float:
        if not self.positions:
            return 0.0
        return sum(p.coverage for p in self.positions) / float(len(self.positions))

    def validate(self) -> None:
        """Raise ValueError if ordering or span invariants do not hold."""
        if self.contributor_count < 1:
            raise ValueError(f"contributor_count must be >= 1, got {self.contributor_count}")
        for prev, cur in zip(self.positions, self.positions[1:]):
            if pos_cmp(prev, cur) is not Cmp.LT:
                raise ValueError(
                    f"positions out of order: ({prev.describe()}) before ({cur.describe()})"
                )
        for p in self.positions:
            if not p.base_mask:
                raise ValueError(f"zero base mask at column {p.column}")
        if self.positions:
            first = self.positions[0].column
            last = self.positions[-1].column
            if not (self.left_bound <= first <= last <= self.right_bound):
                raise ValueError(
                    f"positions [{first}, {last}] outside span "
                    f"[{self.left_bound}, {self.right_bound}]"
                )
