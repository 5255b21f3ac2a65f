"""Candidate sources backed by the Hacker News API and site."""

from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup

from frontpage.sources.base import CandidateSource, SourceName

logger = logging.getLogger(__name__)

BEST_STORIES_URL = "https://hacker-news.firebaseio.com/v0/beststories.json"
FRONT_PAGE_URL = "https://news.ycombinator.com/front"


class BestStoriesSource(CandidateSource):
    """Top of the Firebase ``beststories`` list."""

    @property
    def name(self) -> SourceName:
        return SourceName.BEST

    async def fetch_ids(self, client: httpx.AsyncClient) -> list[int]:
        resp = await client.get(BEST_STORIES_URL)
        resp.raise_for_status()
        ids = resp.json() or []
        if not isinstance(ids, list):
            raise ValueError(f"Expected a list of ids, got {type(ids).__name__}")
        return [int(i) for i in ids[: self._limit]]


class FrontPageSource(CandidateSource):
    """Stories listed on the ``/front`` page (the past day's front page)."""

    @property
    def name(self) -> SourceName:
        return SourceName.FRONT

    async def fetch_ids(self, client: httpx.AsyncClient) -> list[int]:
        resp = await client.get(FRONT_PAGE_URL)
        resp.raise_for_status()
        return parse_front_page(resp.text, limit=self._limit)


def parse_front_page(html: str, *, limit: int = 20) -> list[int]:
    """Return the ids of the first ``limit`` story rows on a listing page."""
    soup = BeautifulSoup(html, "html.parser")
    ids: list[int] = []
    for row in soup.select(".athing")[:limit]:
        raw = row.get("id", "")
        try:
            ids.append(int(raw))
        except (TypeError, ValueError):
            logger.debug("Skipping story row with bad id %r", raw)
    return ids
