"""Per-story refresh: reuse or fetch, summarize, and stamp changes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from frontpage.errors import FetchError, RunReport, SummarizeError
from frontpage.fetch import ItemFetcher, exponential_backoff, retry_async
from frontpage.models import CachedRecord, StoryInfo, SummaryKind, records_equal
from frontpage.summarizer import SummaryMemo

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _stale_kinds(page_stale: bool, comments_stale: bool) -> list[SummaryKind]:
    kinds = [(SummaryKind.PAGE, page_stale), (SummaryKind.COMMENTS, comments_stale)]
    return [kind for kind, stale in kinds if stale]


class RefreshEngine:
    """Builds the up-to-date record for one story at a time.

    The engine never touches persistence: it takes the prior record (if
    any) and returns the new one, leaving the caller to commit it.
    """

    def __init__(
        self,
        fetcher: ItemFetcher,
        memo: SummaryMemo,
        *,
        retry_limit: int = 2,
        retry_base_seconds: float = 1.0,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        report: RunReport | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._memo = memo
        self._retry_limit = retry_limit
        self._delay = exponential_backoff(retry_base_seconds)
        self._clock = clock
        self._sleep = sleep
        self._report = report if report is not None else RunReport()

    # ── Public API ───────────────────────────────────────────────

    async def refresh(self, item_id: int, cached: CachedRecord | None) -> CachedRecord | None:
        """Fetch and summarize a story, reusing what the cache already has.

        Args:
            item_id: Story to refresh.
            cached: The story's record from the previous run, if any.

        Returns:
            The new record, or None if upstream no longer has a live story.

        Raises:
            FetchError: If the metadata or discussion could not be fetched.
        """
        info, comments = await self._fetch_info_and_discussion(item_id)
        if info is None or not info.is_live_story:
            logger.info("Dropping %d: not a live story", item_id)
            return None

        if cached is not None and cached.page:
            page = cached.page
            self._report.reused += 1
        else:
            page = await self._fetch_page(info)

        page_summary, page_stale = await self._derive(
            SummaryKind.PAGE,
            page,
            cached.page_summary if cached else None,
            cached.summary_source(SummaryKind.PAGE) if cached else None,
            item_id=item_id,
            title=info.title,
        )
        comment_summary, comments_stale = await self._derive(
            SummaryKind.COMMENTS,
            comments,
            cached.comment_summary if cached else None,
            cached.summary_source(SummaryKind.COMMENTS) if cached else None,
            item_id=item_id,
            title=info.title,
            context=page_summary,
        )

        candidate = CachedRecord(
            info=info,
            comments=comments,
            page=page,
            page_summary=page_summary,
            comment_summary=comment_summary,
            stale_summaries=_stale_kinds(page_stale, comments_stale),
        )
        return self._stamp(candidate, cached)

    async def resummarize(self, record: CachedRecord) -> CachedRecord:
        """Re-derive both summaries from cached text, without any fetching."""
        item_id = record.item_id
        title = record.info.title
        page_summary, page_stale = await self._derive(
            SummaryKind.PAGE,
            record.page,
            record.page_summary,
            record.summary_source(SummaryKind.PAGE),
            force=True,
            item_id=item_id,
            title=title,
        )
        comment_summary, comments_stale = await self._derive(
            SummaryKind.COMMENTS,
            record.comments,
            record.comment_summary,
            record.summary_source(SummaryKind.COMMENTS),
            force=True,
            item_id=item_id,
            title=title,
            context=page_summary,
        )
        candidate = record.model_copy(
            update={
                "page_summary": page_summary,
                "comment_summary": comment_summary,
                "stale_summaries": _stale_kinds(page_stale, comments_stale),
            }
        )
        return self._stamp(candidate, record)

    # ── Private helpers ──────────────────────────────────────────

    def _stamp(self, candidate: CachedRecord, prior: CachedRecord | None) -> CachedRecord:
        """Keep the prior ``updated`` if nothing observable changed."""
        if prior is not None and records_equal(candidate, prior):
            return candidate.model_copy(update={"updated": prior.updated})
        return candidate.model_copy(update={"updated": self._clock()})

    async def _retry(self, op: Callable[[], Awaitable[Any]], label: str) -> Any:
        return await retry_async(
            op,
            limit=self._retry_limit,
            delay=self._delay,
            label=label,
            sleep=self._sleep,
        )

    async def _fetch_info_and_discussion(self, item_id: int) -> tuple[StoryInfo | None, str]:
        """Fetch metadata and discussion concurrently."""
        results = await asyncio.gather(
            self._retry(lambda: self._fetcher.fetch_info(item_id), f"item {item_id}"),
            self._retry(
                lambda: self._fetcher.fetch_discussion(item_id), f"discussion {item_id}"
            ),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        info, comments = results
        return info, comments

    async def _fetch_page(self, info: StoryInfo) -> str:
        """Fetch the linked article; failures leave the page empty."""
        if not info.url:
            return ""
        try:
            page = await self._retry(
                lambda: self._fetcher.fetch_article(info.url), f"article {info.id}"
            )
        except FetchError as exc:
            logger.warning("Could not fetch article for %d: %s", info.id, exc)
            self._report.add_error(
                "article", str(exc), item_id=info.id, error_type="fetch_error"
            )
            return ""
        self._report.fetched += 1
        return page

    async def _derive(
        self,
        kind: SummaryKind,
        source_text: str,
        prior_output: str | None,
        prior_source_text: str | None,
        *,
        item_id: int,
        title: str,
        context: str | None = None,
        force: bool = False,
    ) -> tuple[str | None, bool]:
        """Run the memoized summarizer, keeping the prior output on failure.

        Returns:
            The summary and whether it is stale, i.e. a prior summary kept
            although it no longer matches ``source_text``.
        """
        try:
            summary = await self._memo.derive(
                kind,
                source_text,
                prior_output,
                prior_source_text,
                force=force,
                title=title,
                context=context,
            )
        except SummarizeError as exc:
            logger.warning("Summarizing %s for %d failed: %s", kind.value, item_id, exc)
            self._report.add_error(
                "summarize", str(exc), item_id=item_id, error_type=f"{kind.value}_summary_error"
            )
            stale = prior_output is not None and not self._memo.is_current(
                source_text, prior_source_text
            )
            return prior_output, stale
        return summary, False
