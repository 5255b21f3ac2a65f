"""In-memory cache of story records for a single run."""

from __future__ import annotations

from frontpage.models import CachedRecord


class CacheStore:
    """Prior records keyed by story id, plus the records kept this run.

    Lookups go against the records loaded from the previous snapshot.
    Only records upserted during this run are returned by :meth:`all`,
    so stories that were not revisited fall out of the cache.
    """

    def __init__(self, prior: list[CachedRecord]) -> None:
        self._prior: dict[int, CachedRecord] = {r.item_id: r for r in prior}
        self._current: dict[int, CachedRecord] = {}

    def lookup(self, item_id: int) -> CachedRecord | None:
        """Return the prior record for a story, or None if not cached."""
        return self._prior.get(item_id)

    def upsert(self, record: CachedRecord) -> None:
        """Insert or replace a record for this run."""
        self._current.pop(record.item_id, None)
        self._current[record.item_id] = record

    def all(self) -> list[CachedRecord]:
        """Records kept this run, in upsert order."""
        return list(self._current.values())

    def cached_ids(self) -> set[int]:
        """Ids with a record from the previous run."""
        return set(self._prior)
