"""Base class for candidate id sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum

import httpx


class SourceName(StrEnum):
    """Supported candidate sources."""

    FRONT = "front"
    BEST = "best"
    RSS = "rss"


class CandidateSource(ABC):
    """Produces an ordered list of story ids worth considering this run.

    Each source implements ``fetch_ids()``. Results are truncated to
    ``limit`` ids, preserving upstream order.
    """

    def __init__(self, *, limit: int = 20) -> None:
        self._limit = limit

    @property
    @abstractmethod
    def name(self) -> SourceName:
        """The source identifier."""

    @abstractmethod
    async def fetch_ids(self, client: httpx.AsyncClient) -> list[int]:
        """Fetch the current ordered list of candidate ids.

        Raises:
            httpx.HTTPError: On transport or status failures.
        """
