"""Time-windowed suppression of stories that dropped out of the cache."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=7)


class SuppressionTracker:
    """Tracks when each processed story was first seen upstream.

    Operates on the snapshot's ``suppressed`` mapping in place. An id with
    an entry but no cached record was tracked before and has since left
    the candidate list, so it is not admitted again until its entry ages
    out of the retention window.
    """

    def __init__(self, suppressed: dict[int, datetime]) -> None:
        self._suppressed = suppressed

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._suppressed

    def __len__(self) -> int:
        return len(self._suppressed)

    def admit(self, candidates: Iterable[int], cached: set[int]) -> list[int]:
        """Drop candidates that are suppressed and not currently cached."""
        admitted: list[int] = []
        for item_id in candidates:
            if item_id in self._suppressed and item_id not in cached:
                logger.debug("Suppressing %d (seen %s)", item_id, self._suppressed[item_id])
                continue
            admitted.append(item_id)
        return admitted

    def record(self, item_id: int, origin_time: datetime) -> None:
        """Remember a processed story, anchored at its upstream post time."""
        self._suppressed[item_id] = origin_time

    def prune(self, now: datetime, retention: timedelta = DEFAULT_RETENTION) -> int:
        """Remove entries older than ``now - retention``. Returns the count removed."""
        cutoff = now - retention
        expired = [item_id for item_id, seen in self._suppressed.items() if seen < cutoff]
        for item_id in expired:
            del self._suppressed[item_id]
        if expired:
            logger.info("Pruned %d suppression entries older than %s", len(expired), cutoff)
        return len(expired)
