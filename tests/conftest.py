"""Shared fakes for the refresh pipeline tests."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest

from frontpage.config import FrontpageConfig, OutputConfig
from frontpage.errors import SummarizeError
from frontpage.models import CachedRecord, StoryInfo, SummaryKind
from frontpage.sources.base import CandidateSource, SourceName

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def story(item_id: int, **overrides: object) -> dict[str, object]:
    """Upstream item JSON for a live story."""
    data: dict[str, object] = {
        "id": item_id,
        "type": "story",
        "by": "pg",
        "title": f"Story {item_id}",
        "url": f"https://example.com/{item_id}",
        "score": 100,
        "descendants": 10,
        "time": int(T0.timestamp()) - 3600,
        "kids": [],
    }
    data.update(overrides)
    return data


def make_record(item_id: int, *, updated: datetime = T0, **overrides: object) -> CachedRecord:
    """A cached record as a previous run would have left it."""
    fields: dict[str, object] = {
        "info": StoryInfo.model_validate(story(item_id)),
        "comments": f"comments {item_id}",
        "page": f"article {item_id}",
        "page_summary": f"page summary of article {item_id}",
        "comment_summary": f"comments summary of comments {item_id}",
        "updated": updated,
    }
    fields.update(overrides)
    return CachedRecord(**fields)


class FakeFetcher:
    """In-memory stand-in for the Hacker News client."""

    def __init__(self) -> None:
        self.items: dict[int, dict[str, object] | None] = {}
        self.discussions: dict[int, str] = {}
        self.articles: dict[str, str] = {}
        self.failing_items: set[int] = set()
        self.failing_articles: set[str] = set()
        self.calls: Counter[str] = Counter()

    def add(self, item_id: int, *, comments: str | None = None, page: str | None = None,
            **overrides: object) -> None:
        data = story(item_id, **overrides)
        self.items[item_id] = data
        self.discussions[item_id] = comments if comments is not None else f"comments {item_id}"
        url = str(data.get("url", ""))
        if url:
            self.articles[url] = page if page is not None else f"article {item_id}"

    async def fetch_info(self, item_id: int) -> StoryInfo | None:
        self.calls[f"info:{item_id}"] += 1
        if item_id in self.failing_items:
            raise httpx.ConnectError(f"cannot reach item {item_id}")
        data = self.items.get(item_id)
        if data is None:
            return None
        return StoryInfo.model_validate(data)

    async def fetch_discussion(self, item_id: int) -> str:
        self.calls[f"discussion:{item_id}"] += 1
        return self.discussions.get(item_id, "")

    async def fetch_article(self, url: str) -> str:
        self.calls[f"article:{url}"] += 1
        if url in self.failing_articles:
            raise httpx.ConnectError(f"cannot reach {url}")
        return self.articles.get(url, "")


class FakeSummarizer:
    """Deterministic summarizer that counts invocations."""

    def __init__(self) -> None:
        self.calls: Counter[tuple[str, str]] = Counter()
        self.contexts: list[str | None] = []
        self.fail = False
        self.prefix = ""

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def summarize(
        self,
        kind: SummaryKind,
        text: str,
        *,
        title: str = "",
        context: str | None = None,
    ) -> str:
        self.calls[(kind.value, text)] += 1
        self.contexts.append(context)
        if self.fail:
            raise SummarizeError("summarizer unavailable")
        return f"{self.prefix}{kind.value} summary of {text}"


class FakeSource(CandidateSource):
    """Candidate source returning a fixed list."""

    def __init__(self, ids: list[int], name: SourceName = SourceName.FRONT) -> None:
        super().__init__(limit=len(ids) or 1)
        self.ids = ids
        self._name = name

    @property
    def name(self) -> SourceName:
        return self._name

    async def fetch_ids(self, client: httpx.AsyncClient) -> list[int]:
        return list(self.ids)


class FakeClock:
    """Settable clock."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class SleepRecorder:
    """Records backoff delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def config(tmp_path: Path) -> FrontpageConfig:
    return FrontpageConfig(output=OutputConfig(directory=str(tmp_path / "data")))
