"""Refresh pipeline: candidate ids to cached, summarized stories."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from frontpage.config import FrontpageConfig
from frontpage.engine import RefreshEngine
from frontpage.errors import FetchError, RunReport
from frontpage.feed import write_app_data
from frontpage.fetch import HackerNewsClient, ItemFetcher, create_http_client
from frontpage.models import CachedRecord, Snapshot
from frontpage.snapshot import load_snapshot, save_snapshot
from frontpage.sources import CandidateSource, collect_candidates, create_sources
from frontpage.store import CacheStore
from frontpage.summarizer import ClaudeSummarizer, Summarizer, SummaryMemo
from frontpage.suppression import SuppressionTracker

logger = logging.getLogger(__name__)


class RunResult(BaseModel):
    """Outcome of one refresh run."""

    records: list[CachedRecord] = Field(default_factory=list)
    report: RunReport = Field(default_factory=RunReport)
    summarizer_calls: int = 0
    written: list[Path] = Field(default_factory=list)


async def run_refresh(
    config: FrontpageConfig,
    *,
    resummarize: bool = False,
    rewrite_only: bool = False,
    sources: list[CandidateSource] | None = None,
    fetcher: ItemFetcher | None = None,
    summarizer: Summarizer | None = None,
    clock: Callable[[], datetime] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> RunResult:
    """Run one refresh cycle and persist the result.

    Args:
        config: Loaded configuration.
        resummarize: Re-derive summaries of cached stories; no fetching.
        rewrite_only: Re-emit the previous snapshot without fetching or
            summarizing.
        sources: Candidate sources. Defaults to those enabled in config.
        fetcher: Item fetcher. Defaults to an HTTP-backed client.
        summarizer: Summarization backend. Defaults to Claude.
        clock: Returns the current time. Defaults to ``datetime.now(UTC)``.
        sleep: Awaitable used for retry backoff.

    Returns:
        The records kept this run, the run report and the written paths.

    Raises:
        SnapshotWriteError: If the snapshot or app data could not be written.
    """
    now = clock or (lambda: datetime.now(tz=UTC))
    snapshot_path = config.output.snapshot_path
    snapshot = load_snapshot(snapshot_path)

    report = RunReport()
    store = CacheStore(snapshot.items)
    tracker = SuppressionTracker(snapshot.suppressed)

    if summarizer is None:
        summarizer = ClaudeSummarizer(
            model=config.summarize.model,
            timeout=config.summarize.timeout_seconds,
        )
    memo = SummaryMemo(summarizer, exact_compare_limit=config.summarize.exact_compare_limit)

    async with create_http_client(
        timeout=config.fetch.timeout_seconds,
        user_agent=config.fetch.user_agent,
    ) as client:
        if fetcher is None:
            fetcher = HackerNewsClient(client)

        engine = RefreshEngine(
            fetcher,
            memo,
            retry_limit=config.fetch.retry_limit,
            retry_base_seconds=config.fetch.retry_base_seconds,
            clock=now,
            sleep=sleep,
            report=report,
        )

        if rewrite_only:
            logger.info("Rewrite only: re-emitting %d cached stories", len(snapshot.items))
            for record in snapshot.items:
                store.upsert(record)
        elif resummarize:
            logger.info("Re-summarizing %d cached stories", len(snapshot.items))
            for record in snapshot.items:
                store.upsert(await engine.resummarize(record))
        else:
            if sources is None:
                sources = create_sources(config.sources)
            candidates = await collect_candidates(sources, client)
            await _refresh_candidates(
                candidates,
                engine=engine,
                store=store,
                tracker=tracker,
                report=report,
                max_concurrent=config.fetch.max_concurrent_items,
            )

    run_time = now()
    tracker.prune(run_time, config.suppression.retention)

    snapshot.items = store.all()
    snapshot.last_run = run_time
    save_snapshot(snapshot, snapshot_path)

    app_data_path = config.output.app_data_path
    write_app_data(snapshot.items, app_data_path, app_path=str(Path(__file__).resolve()))

    logger.info(
        "Refresh complete: %d stories, %d summarizer calls, %d errors",
        len(snapshot.items),
        memo.calls,
        len(report.errors),
    )
    return RunResult(
        records=snapshot.items,
        report=report,
        summarizer_calls=memo.calls,
        written=[snapshot_path, app_data_path],
    )


async def _refresh_candidates(
    candidates: list[int],
    *,
    engine: RefreshEngine,
    store: CacheStore,
    tracker: SuppressionTracker,
    report: RunReport,
    max_concurrent: int = 1,
) -> None:
    """Refresh admitted candidates and commit the outcomes in candidate order."""
    report.candidates = len(candidates)
    admitted = tracker.admit(candidates, store.cached_ids())
    report.suppressed = len(candidates) - len(admitted)
    if report.suppressed:
        logger.info("Suppressed %d previously seen stories", report.suppressed)

    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def refresh_one(item_id: int) -> CachedRecord | FetchError | None:
        async with semaphore:
            try:
                return await engine.refresh(item_id, store.lookup(item_id))
            except FetchError as exc:
                return exc

    outcomes = await asyncio.gather(*(refresh_one(item_id) for item_id in admitted))

    for item_id, outcome in zip(admitted, outcomes):
        if isinstance(outcome, FetchError):
            prior = store.lookup(item_id)
            logger.warning("Fetch failed for %d: %s", item_id, outcome)
            report.add_error("fetch", str(outcome), item_id=item_id, error_type="fetch_error")
            if prior is not None:
                store.upsert(prior)
                report.carried_forward += 1
            continue
        if outcome is None:
            report.dropped += 1
            continue
        store.upsert(outcome)
        tracker.record(item_id, outcome.info.origin_time)


def refresh(config: FrontpageConfig, **kwargs: Any) -> RunResult:
    """Synchronous entry point around :func:`run_refresh`."""
    return asyncio.run(run_refresh(config, **kwargs))


def load_state(config: FrontpageConfig) -> Snapshot:
    """Load the current snapshot for inspection."""
    return load_snapshot(config.output.snapshot_path)
