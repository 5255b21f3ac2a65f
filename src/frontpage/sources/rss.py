"""Hacker News RSS feed as a candidate source."""

from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlparse

import feedparser
import httpx

from frontpage.sources.base import CandidateSource, SourceName

logger = logging.getLogger(__name__)

RSS_URL = "https://news.ycombinator.com/rss"


class RssSource(CandidateSource):
    """Stories from the front-page RSS feed.

    The feed links to the article; the story id is read from each
    entry's ``comments`` link (``item?id=N``).
    """

    @property
    def name(self) -> SourceName:
        return SourceName.RSS

    async def fetch_ids(self, client: httpx.AsyncClient) -> list[int]:
        resp = await client.get(RSS_URL)
        resp.raise_for_status()
        return parse_feed_ids(resp.text, limit=self._limit)


def parse_feed_ids(document: str, *, limit: int = 20) -> list[int]:
    """Extract story ids from an RSS document."""
    feed = feedparser.parse(document)
    if feed.bozo and not feed.entries:
        logger.warning("Feed error: %s", feed.bozo_exception)
        return []

    ids: list[int] = []
    for entry in feed.entries:
        item_id = _entry_item_id(entry)
        if item_id is None:
            continue
        ids.append(item_id)
        if len(ids) >= limit:
            break
    return ids


def _entry_item_id(entry: feedparser.FeedParserDict) -> int | None:
    """Read the ``id`` query parameter from an entry's discussion link."""
    for link in (entry.get("comments", ""), entry.get("link", "")):
        if not link:
            continue
        query = parse_qs(urlparse(link).query)
        values = query.get("id")
        if values and values[0].isdigit():
            return int(values[0])
    return None
