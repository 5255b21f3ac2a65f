"""HTTP fetching for Hacker News items, discussions and linked articles."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

import httpx
import trafilatura
from bs4 import BeautifulSoup

from frontpage.errors import FetchError
from frontpage.models import StoryInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
HN_ITEM_URL = f"{HN_API_BASE}/item/{{id}}.json"
HN_DISCUSSION_URL = "https://news.ycombinator.com/item?id={id}"

# Upstream statuses worth another attempt; anything else fails at once.
RETRYABLE_STATUSES = frozenset({408, 413, 429, 500, 502, 503, 504})


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------


def exponential_backoff(base: float) -> Callable[[int], float]:
    """Delay function ``attempt -> 2**attempt * base`` (attempt counts from 0)."""

    def delay(attempt: int) -> float:
        return (2**attempt) * base

    return delay


def is_retryable(exc: BaseException) -> bool:
    """Whether a failed request should be attempted again."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUSES
    return isinstance(exc, httpx.TransportError)


async def retry_async(
    op: Callable[[], Awaitable[T]],
    *,
    limit: int,
    delay: Callable[[int], float],
    label: str = "request",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``op`` up to ``limit + 1`` times, sleeping ``delay(attempt)`` between tries.

    Args:
        op: Zero-argument coroutine factory performing one attempt.
        limit: Number of retries after the first attempt.
        delay: Maps the 0-based index of the failed attempt to seconds.
        label: Used in log and error messages.
        sleep: Awaitable sleep, replaceable in tests.

    Returns:
        The result of the first successful attempt.

    Raises:
        FetchError: When every attempt failed, or a failure is not retryable.
    """
    attempts = limit + 1
    for attempt in range(attempts):
        try:
            return await op()
        except httpx.HTTPError as exc:
            if not is_retryable(exc):
                raise FetchError(f"{label}: {exc}", attempts=attempt + 1) from exc
            if attempt + 1 >= attempts:
                raise FetchError(
                    f"{label}: failed after {attempts} attempts: {exc}",
                    attempts=attempts,
                ) from exc
            wait = delay(attempt)
            logger.debug(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                label,
                attempt + 1,
                attempts,
                wait,
                exc,
            )
            await sleep(wait)
    raise FetchError(f"{label}: no attempts made", attempts=0)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_comments(html: str) -> str:
    """Concatenate the text of every comment on a discussion page."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    return "".join(node.get_text() for node in soup.select(".commtext"))


def extract_article_text(html: str) -> str:
    """Extract readable article text, falling back to the raw body."""
    if not html.strip():
        return ""
    try:
        extracted = trafilatura.extract(
            html,
            include_comments=False,
            include_tables=True,
            output_format="txt",
        )
    except Exception as exc:
        logger.debug("Extraction failed, keeping raw body: %s", exc)
        return html
    return extracted or html


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class HackerNewsClient:
    """Fetches item metadata, discussion pages and linked articles.

    Each public method performs one request; retry policy is applied by
    the caller through :func:`retry_async`.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    async def fetch_info(self, item_id: int) -> StoryInfo | None:
        """Return the item's metadata, or None if upstream has no such item."""
        resp = await self._client.get(HN_ITEM_URL.format(id=item_id))
        resp.raise_for_status()
        try:
            data = resp.json()
            if data is None:
                return None
            return StoryInfo.model_validate(data)
        except ValueError as exc:
            raise FetchError(f"item {item_id}: malformed item JSON: {exc}") from exc

    async def fetch_discussion(self, item_id: int) -> str:
        """Return the comment text of the item's discussion page."""
        resp = await self._client.get(HN_DISCUSSION_URL.format(id=item_id))
        resp.raise_for_status()
        return parse_comments(resp.text)

    async def fetch_article(self, url: str) -> str:
        """Return the readable text of a linked article."""
        try:
            resp = await self._client.get(url, follow_redirects=True)
        except httpx.InvalidURL as exc:
            raise FetchError(f"article {url!r}: {exc}") from exc
        resp.raise_for_status()
        return extract_article_text(resp.text)


def create_http_client(*, timeout: float = 30.0, user_agent: str = "") -> httpx.AsyncClient:
    """Build the shared ``httpx.AsyncClient`` for a run."""
    headers = {"User-Agent": user_agent} if user_agent else {}
    return httpx.AsyncClient(timeout=timeout, headers=headers)


class ItemFetcher(Protocol):
    """What the refresh engine needs from a fetcher."""

    async def fetch_info(self, item_id: int) -> StoryInfo | None: ...

    async def fetch_discussion(self, item_id: int) -> str: ...

    async def fetch_article(self, url: str) -> str: ...
