"""Candidate sources merged into a single ordered list of story ids."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import httpx

from frontpage.config import SourcesConfig
from frontpage.sources.base import CandidateSource, SourceName

logger = logging.getLogger(__name__)


def create_source(name: SourceName | str, *, limit: int = 20) -> CandidateSource:
    """Create a candidate source by name.

    Raises:
        ValueError: If the source is unknown.
    """
    if isinstance(name, str):
        name = SourceName(name)

    from frontpage.sources.hackernews import BestStoriesSource, FrontPageSource
    from frontpage.sources.rss import RssSource

    sources: dict[SourceName, type[CandidateSource]] = {
        SourceName.FRONT: FrontPageSource,
        SourceName.BEST: BestStoriesSource,
        SourceName.RSS: RssSource,
    }

    if name in sources:
        return sources[name](limit=limit)

    raise ValueError(f"Unknown candidate source: {name!r}")


def create_sources(config: SourcesConfig) -> list[CandidateSource]:
    """Return the sources enabled in config, front page first."""
    enabled = [
        (SourceName.FRONT, config.front_page),
        (SourceName.BEST, config.best_stories),
        (SourceName.RSS, config.rss),
    ]
    return [create_source(name, limit=config.num_stories) for name, on in enabled if on]


def merge_candidates(lists: Iterable[Iterable[int]]) -> list[int]:
    """Union of several id lists, each id once, in first-seen order."""
    seen: set[int] = set()
    merged: list[int] = []
    for ids in lists:
        for item_id in ids:
            if item_id not in seen:
                seen.add(item_id)
                merged.append(item_id)
    return merged


async def collect_candidates(
    sources: Iterable[CandidateSource],
    client: httpx.AsyncClient,
) -> list[int]:
    """Query every source and merge the results.

    A failing source is logged and contributes nothing.
    """
    lists: list[list[int]] = []
    for source in sources:
        try:
            ids = await source.fetch_ids(client)
        except (httpx.HTTPError, ValueError, TypeError):
            logger.warning("Candidate source %s failed", source.name.value, exc_info=True)
            continue
        logger.info("Got %d candidates from %s", len(ids), source.name.value)
        lists.append(ids)
    return merge_candidates(lists)


__all__ = [
    "CandidateSource",
    "SourceName",
    "collect_candidates",
    "create_source",
    "create_sources",
    "merge_candidates",
]
