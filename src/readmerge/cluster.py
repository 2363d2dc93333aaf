from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .config import MergeConfig
from .errors import MergeFailure
from .merge import merge_two
from .models import Profile

logger = logging.getLogger(__name__)

ProgressFn = Callable[[int, int], None]


def merge_clusters(
    profiles: List[Profile],
    config: MergeConfig,
    *,
    progress: Optional[ProgressFn] = None,
) -> int:
    """Merge profiles in place until no pair can be merged.

    Each pass sorts the list by contributor count (heaviest first; ties keep
    their current order, so results are reproducible) and lets every profile
    absorb as many later profiles as it can, restarting its candidate scan
    after each merge. Passes repeat until one completes without merging.

    Parameters
    ----------
    profiles:
        Working collection; merged pairs are replaced by their consensus.
    config:
        Merge parameters; ``config.min_reads`` decides which clusters count.
    progress:
        Optional callback ``progress(merges_so_far, n_profiles)`` invoked after
        every successful merge.

    Returns
    -------
    int
        Number of final profiles with ``contributor_count >= config.min_reads``.

    Fatal errors (:class:`~readmerge.errors.FatalMergeError`) propagate
    unchanged; the list is then left as it was after the last merge.
    """
    debug = logger.isEnabledFor(logging.DEBUG)
    n_merges = 0
    n_passes = 0

    while True:
        n_passes += 1
        merged_this_pass = False
        n_retained = 0

        profiles.sort(key=lambda p: p.contributor_count, reverse=True)

        i = 0
        while i < len(profiles):
            j = i + 1
            while j < len(profiles):
                try:
                    merged = merge_two(profiles[i], profiles[j], config)
                except MergeFailure as err:
                    if debug:
                        logger.debug("pair (%d, %d) rejected: %s", i, j, err.describe())
                    j += 1
                    continue

                profiles[i] = merged
                del profiles[j]
                n_merges += 1
                merged_this_pass = True
                if progress is not None:
                    progress(n_merges, len(profiles))
                # rescan: the grown profile may now reach earlier candidates
                j = i + 1

            if profiles[i].contributor_count >= config.min_reads:
                n_retained += 1
            i += 1

        logger.debug(
            "pass %d: %d merges so far, %d profiles, %d retained",
            n_passes,
            n_merges,
            len(profiles),
            n_retained,
        )
        if not merged_this_pass:
            logger.info(
                "Clustering converged after %d passes (%d merges, %d profiles, %d retained)",
                n_passes,
                n_merges,
                len(profiles),
                n_retained,
            )
            return n_retained
