"""End-to-end tests for the refresh pipeline."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from conftest import T0, FakeClock, FakeFetcher, FakeSource, FakeSummarizer, SleepRecorder
from frontpage.config import FrontpageConfig
from frontpage.errors import SnapshotWriteError
from frontpage.models import SummaryKind
from frontpage.pipeline import RunResult, load_state, run_refresh
from frontpage.summarizer import ClaudeSummarizer


@pytest.fixture
def run(
    config: FrontpageConfig,
    fetcher: FakeFetcher,
    summarizer: FakeSummarizer,
    clock: FakeClock,
    sleeper: SleepRecorder,
):
    """Run one refresh against the shared fakes."""

    def _run(ids: list[int] | None = None, **kwargs) -> RunResult:
        kwargs.setdefault("summarizer", summarizer)
        return asyncio.run(
            run_refresh(
                config,
                sources=[FakeSource(ids or [])],
                fetcher=fetcher,
                clock=clock,
                sleep=sleeper,
                **kwargs,
            )
        )

    return _run


def _ids(result: RunResult) -> list[int]:
    return [r.item_id for r in result.records]


class TestFirstRun:
    """Tests for a run starting from an empty snapshot."""

    def test_failed_item_is_omitted(
        self, run, fetcher: FakeFetcher, config: FrontpageConfig
    ) -> None:
        """An uncached item whose fetch fails is left out of cache and suppression list."""
        for item_id in (1, 2, 3):
            fetcher.add(item_id)
        fetcher.failing_items.add(2)

        result = run([1, 2, 3])

        assert _ids(result) == [1, 3]
        assert result.report.candidates == 3
        assert [(e.stage, e.item_id) for e in result.report.errors] == [("fetch", 2)]
        snapshot = load_state(config)
        assert [r.item_id for r in snapshot.items] == [1, 3]
        assert set(snapshot.suppressed) == {1, 3}
        assert snapshot.last_run == T0

    def test_writes_app_data(self, run, fetcher: FakeFetcher, config: FrontpageConfig) -> None:
        """The app-data document lists stories in candidate order."""
        fetcher.add(1)
        fetcher.add(2)

        result = run([2, 1])

        assert result.written == [config.output.snapshot_path, config.output.app_data_path]
        doc = json.loads(config.output.app_data_path.read_text(encoding="utf-8"))
        assert doc["name"] == "Hacker News"
        assert doc["stateful"] is True
        assert doc["schedule"] == [{"cron": "0 */3 * * *"}]
        assert [item["id"] for item in doc["items"]] == ["2", "1"]
        assert doc["items"][0]["data"]["title"] == "Story 2"

    def test_records_follow_candidate_order_when_concurrent(
        self, run, fetcher: FakeFetcher, config: FrontpageConfig
    ) -> None:
        """Concurrent processing still commits in candidate order."""
        config.fetch.max_concurrent_items = 4
        ids = [5, 3, 9, 1, 7]
        for item_id in ids:
            fetcher.add(item_id)

        assert _ids(run(ids)) == ids

    def test_dead_items_dropped(self, run, fetcher: FakeFetcher) -> None:
        """Dead stories are counted as dropped."""
        fetcher.add(1, dead=True)
        fetcher.add(2)

        result = run([1, 2])

        assert _ids(result) == [2]
        assert result.report.dropped == 1


class TestSteadyState:
    """Tests for consecutive runs over the same stories."""

    def test_second_run_is_stable(
        self, run, fetcher: FakeFetcher, summarizer: FakeSummarizer, clock: FakeClock
    ) -> None:
        """An identical second run reuses everything and keeps timestamps."""
        for item_id in (1, 2):
            fetcher.add(item_id)
        first = run([1, 2])
        assert first.summarizer_calls == 4

        clock.advance(hours=3)
        second = run([1, 2])

        assert second.summarizer_calls == 0
        assert [r.updated for r in second.records] == [T0, T0]
        assert second.report.reused == 2
        assert fetcher.calls["article:https://example.com/1"] == 1

    def test_only_changed_story_gets_new_timestamp(
        self, run, fetcher: FakeFetcher, clock: FakeClock
    ) -> None:
        """Only the story whose metadata changed advances ``updated``."""
        fetcher.add(1)
        fetcher.add(2)
        run([1, 2])

        clock.advance(hours=3)
        fetcher.add(2, score=999)
        result = run([1, 2])

        assert [r.updated for r in result.records] == [T0, T0 + timedelta(hours=3)]

    def test_fetch_failure_carries_prior_record(
        self, run, fetcher: FakeFetcher, clock: FakeClock
    ) -> None:
        """A cached story whose fetch fails is carried forward unchanged."""
        fetcher.add(1)
        fetcher.add(2)
        first = run([1, 2])

        clock.advance(hours=3)
        fetcher.failing_items.add(2)
        second = run([1, 2])

        assert _ids(second) == [1, 2]
        assert second.records[1] == first.records[1]
        assert second.report.carried_forward == 1

    def test_story_leaving_candidates_leaves_cache(self, run, fetcher: FakeFetcher) -> None:
        """Stories no longer listed are not kept in the cache."""
        fetcher.add(1)
        fetcher.add(2)
        run([1, 2])

        assert _ids(run([1])) == [1]


class TestSummarizerOutage:
    """Tests for summarizer failures across runs."""

    def test_unrunnable_cli_does_not_abort_run(
        self, run, fetcher: FakeFetcher, config: FrontpageConfig, monkeypatch
    ) -> None:
        """Every story is still committed when the Claude CLI cannot be spawned."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("FRONTPAGE_USE_CLI", raising=False)
        fetcher.add(1)
        fetcher.add(2)

        with patch(
            "frontpage.llm.asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            side_effect=PermissionError("claude not executable"),
        ):
            result = run([1, 2], summarizer=ClaudeSummarizer())

        assert _ids(result) == [1, 2]
        assert result.records[0].comments == "comments 1"
        assert result.records[0].comment_summary is None
        assert {e.stage for e in result.report.errors} == {"summarize"}
        assert len(result.report.errors) == 4
        assert [r.item_id for r in load_state(config).items] == [1, 2]

    def test_outage_heals_on_next_run(
        self, run, fetcher: FakeFetcher, summarizer: FakeSummarizer, clock: FakeClock,
        config: FrontpageConfig,
    ) -> None:
        """New comments seen during an outage are summarized once the summarizer is back."""
        fetcher.add(1, comments="thread v1")
        run([1])

        clock.advance(hours=3)
        fetcher.add(1, comments="thread v2")
        summarizer.fail = True
        during = run([1])
        assert during.records[0].comment_summary == "comments summary of thread v1"
        assert load_state(config).items[0].stale_summaries == [SummaryKind.COMMENTS]

        clock.advance(hours=3)
        summarizer.fail = False
        after = run([1])

        record = after.records[0]
        assert record.comment_summary == "comments summary of thread v2"
        assert record.stale_summaries == []
        assert record.updated == T0 + timedelta(hours=6)


class TestSuppression:
    """Tests for suppression across runs."""

    def test_dropped_story_is_suppressed_until_retention_expires(
        self, run, fetcher: FakeFetcher, clock: FakeClock, config: FrontpageConfig
    ) -> None:
        """A story that left the cache stays out until its entry ages past retention."""
        fetcher.add(1)
        fetcher.add(2)
        run([1, 2])
        clock.advance(hours=3)
        run([1])

        clock.advance(hours=3)
        back = run([1, 2])
        assert _ids(back) == [1]
        assert back.report.suppressed == 1

        clock.advance(days=8)
        expired = run([1, 2])
        assert _ids(expired) == [1]
        assert 2 not in load_state(config).suppressed

        clock.advance(hours=3)
        assert _ids(run([1, 2])) == [1, 2]


class TestModes:
    """Tests for rewrite-only and resummarize runs."""

    def test_rewrite_only_does_not_fetch(
        self, run, fetcher: FakeFetcher, summarizer: FakeSummarizer, clock: FakeClock
    ) -> None:
        """Rewrite-only re-emits the cached records without fetching or summarizing."""
        fetcher.add(1)
        first = run([1])
        fetcher.calls.clear()
        calls_before = summarizer.total_calls

        clock.advance(hours=1)
        result = run(rewrite_only=True)

        assert result.records == first.records
        assert not fetcher.calls
        assert summarizer.total_calls == calls_before

    def test_resummarize_rederives_without_fetching(
        self, run, fetcher: FakeFetcher, summarizer: FakeSummarizer, clock: FakeClock
    ) -> None:
        """Resummarize forces both summaries from cached text."""
        fetcher.add(1)
        run([1])
        fetcher.calls.clear()

        clock.advance(hours=1)
        summarizer.prefix = "v2 "
        result = run(resummarize=True)

        assert not fetcher.calls
        assert result.summarizer_calls == 2
        record = result.records[0]
        assert record.page_summary == "v2 page summary of article 1"
        assert record.updated == T0 + timedelta(hours=1)


class TestWriteFailure:
    """Tests for snapshot write failures."""

    def test_failed_save_keeps_previous_snapshot(
        self, run, fetcher: FakeFetcher, config: FrontpageConfig, clock: FakeClock
    ) -> None:
        """A failed rename raises SnapshotWriteError and leaves the old file intact."""
        fetcher.add(1)
        run([1])
        before = config.output.snapshot_path.read_bytes()

        clock.advance(hours=3)
        fetcher.add(2)
        with patch("frontpage.snapshot.os.replace", side_effect=OSError("read-only fs")):
            with pytest.raises(SnapshotWriteError):
                run([1, 2])

        assert config.output.snapshot_path.read_bytes() == before
