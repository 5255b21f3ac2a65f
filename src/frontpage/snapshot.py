"""Snapshot persistence with atomic replace."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from frontpage.errors import SnapshotWriteError
from frontpage.models import Snapshot

logger = logging.getLogger(__name__)


def atomic_write(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temp file and ``os.replace``.

    The canonical file is either left as it was or fully replaced.

    Raises:
        SnapshotWriteError: If the file could not be written or renamed.
    """
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise SnapshotWriteError(f"Failed to write {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_name)


def load_snapshot(path: Path) -> Snapshot:
    """Load the snapshot from disk; missing or corrupt files give an empty one."""
    if not path.exists():
        return Snapshot()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Snapshot.model_validate(data)
    except (json.JSONDecodeError, ValueError, KeyError, OSError):
        logger.warning("Corrupt snapshot at %s, starting fresh", path)
        return Snapshot()


def save_snapshot(snapshot: Snapshot, path: Path) -> None:
    """Atomically write the snapshot to disk.

    Raises:
        SnapshotWriteError: If the snapshot could not be persisted.
    """
    atomic_write(path, snapshot.model_dump_json(indent=2))
    logger.info("Saved %d records to %s", len(snapshot.items), path)
