"""Exceptions raised by the merge engine.

``MergeFailure`` and its subclasses are ordinary outcomes of trying a pair of
profiles: the cluster engine catches them and moves on to the next candidate.
``FatalMergeError`` is reserved for conditions that must abort clustering.
"""

from __future__ import annotations

from typing import Optional

from .models import Position


class MergeFailure(Exception):
    """Two profiles could not be merged."""

    reason = "merge rejected"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        x_pos: Optional[Position] = None,
        y_pos: Optional[Position] = None,
    ) -> None:
        super().__init__(message or self.reason)
        self.x_pos = x_pos
        self.y_pos = y_pos

    def describe(self) -> str:
        """Message plus the two positions under comparison, when known."""
        if self.x_pos is None or self.y_pos is None:
            return str(self)
        return f"{self}: {self.x_pos.describe()}, {self.y_pos.describe()}"


class EmptyInput(MergeFailure):
    reason = "insufficient length"


class NoOverlapOpportunity(MergeFailure):
    reason = "no opportunity for sufficient overlap"


class GapNotAllowed(MergeFailure):
    """A site present in one profile is missing from the other.

    ``culprit`` names the profile (``"x"`` or ``"y"``) lacking the site.
    """

    reason = "gap not allowed"

    def __init__(self, culprit: str, **kwargs) -> None:
        super().__init__(f"gap not allowed in {culprit}", **kwargs)
        self.culprit = culprit


class BaseMismatch(MergeFailure):
    reason = "mismatch"


class InsufficientOverlap(MergeFailure):
    reason = "insufficient overlap"

    def __init__(self, overlap: int, required: int) -> None:
        super().__init__(f"insufficient overlap ({overlap} < {required})")
        self.overlap = overlap
        self.required = required


class FatalMergeError(RuntimeError):
    """Raised when clustering cannot continue."""


class AllocationFailure(FatalMergeError):
    """Storage for a merged profile could not be allocated."""
