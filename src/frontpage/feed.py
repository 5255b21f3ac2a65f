"""Project cached records to the dashboard's app-data document."""

from __future__ import annotations

import html
import logging
from datetime import UTC, datetime
from pathlib import Path

from frontpage.models import AppData, AppItem, AppItemData, AppSchedule, CachedRecord
from frontpage.snapshot import atomic_write

logger = logging.getLogger(__name__)

APP_NAME = "Hacker News"
APP_SCHEDULE = "0 */3 * * *"


def _subtitle(record: CachedRecord) -> str:
    info = record.info
    posted = datetime.fromtimestamp(info.time, tz=UTC).strftime("%a %b %d %Y")
    return f"{posted}, {info.score} votes, {info.descendants} comments"


def _detail(record: CachedRecord) -> str:
    comments = ""
    if record.comment_summary:
        comments = f"From the comments:\n{record.comment_summary.strip()}"
    page = (record.page_summary or "").strip()
    body = "\n\n".join(part for part in (page, comments) if part)
    return f"<pre>{html.escape(body)}</pre>"


def build_app_items(records: list[CachedRecord]) -> list[AppItem]:
    """Turn records into dashboard items, keeping record order."""
    return [
        AppItem(
            id=str(record.item_id),
            updated=record.updated,
            data=AppItemData(
                title=record.info.title,
                subtitle=_subtitle(record),
                detail=_detail(record),
            ),
        )
        for record in records
    ]


def write_app_data(records: list[CachedRecord], path: Path, *, app_path: str = "") -> AppData:
    """Atomically write the app-data document for ``records``.

    Raises:
        SnapshotWriteError: If the file could not be written.
    """
    data = AppData(
        name=APP_NAME,
        path=app_path,
        items=build_app_items(records),
        schedule=[AppSchedule(cron=APP_SCHEDULE)],
        stateful=True,
    )
    atomic_write(path, data.model_dump_json(indent=2))
    logger.info("Wrote %d app items to %s", len(data.items), path)
    return data
