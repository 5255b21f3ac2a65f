"""Pure data models for the refresh pipeline.

All Pydantic models and enums live here. No I/O, no business logic,
no network calls. Services import from this module; this module only
imports from stdlib and third-party packages.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Upstream item
# ---------------------------------------------------------------------------


class StoryInfo(BaseModel):
    """Item JSON as returned by the Hacker News Firebase API.

    Unknown upstream keys are kept so they take part in change
    detection just like the known ones.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    type: str = "story"
    by: str = ""
    title: str = ""
    url: str = ""
    text: str = ""
    score: int = 0
    descendants: int = 0
    time: int = 0
    dead: bool = False
    deleted: bool = False
    kids: list[int] = Field(default_factory=list)

    @property
    def is_live_story(self) -> bool:
        return self.type == "story" and not self.dead and not self.deleted

    @property
    def origin_time(self) -> datetime:
        """When the item was posted upstream."""
        return datetime.fromtimestamp(self.time, tz=UTC)


# ---------------------------------------------------------------------------
# Cache models
# ---------------------------------------------------------------------------


class SummaryKind(StrEnum):
    """Which text a summary was derived from."""

    PAGE = "page"
    COMMENTS = "comments"


class CachedRecord(BaseModel):
    """Last-known state of one tracked story."""

    info: StoryInfo
    comments: str = ""
    page: str = ""
    page_summary: str | None = None
    comment_summary: str | None = None
    # Kinds whose summary was kept from older text after a failed re-derive.
    stale_summaries: list[SummaryKind] = Field(default_factory=list)
    updated: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def item_id(self) -> int:
        return self.info.id

    def summary_source(self, kind: SummaryKind) -> str | None:
        """The text this record's ``kind`` summary was derived from.

        None when the summary is stale, so the next run re-derives it.
        """
        if kind in self.stale_summaries:
            return None
        return self.page if kind == SummaryKind.PAGE else self.comments


def records_equal(a: CachedRecord, b: CachedRecord) -> bool:
    """Compare two records on their content, ignoring ``updated`` and staleness."""
    return (
        a.info == b.info
        and a.comments == b.comments
        and a.page == b.page
        and a.page_summary == b.page_summary
        and a.comment_summary == b.comment_summary
    )


class Snapshot(BaseModel):
    """Durable state: cached records plus the suppression list."""

    items: list[CachedRecord] = Field(default_factory=list)
    suppressed: dict[int, datetime] = Field(default_factory=dict)
    last_run: datetime | None = None


# ---------------------------------------------------------------------------
# App data feed
# ---------------------------------------------------------------------------


class AppItemData(BaseModel):
    """Display information for a feed item."""

    title: str
    subtitle: str | None = None
    detail: str | None = None


class AppItem(BaseModel):
    """One item published to the dashboard."""

    id: str
    updated: datetime
    data: AppItemData


class AppSchedule(BaseModel):
    """When the dashboard should re-run the app."""

    cron: str


class AppData(BaseModel):
    """Top-level app-data document."""

    name: str
    path: str
    items: list[AppItem] = Field(default_factory=list)
    schedule: list[AppSchedule] = Field(default_factory=list)
    stateful: bool = True
