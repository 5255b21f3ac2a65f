"""Error types and the per-run error report."""

from __future__ import annotations

from pydantic import BaseModel, Field


class FetchError(Exception):
    """Raised when a network fetch fails after all retries."""

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class SummarizeError(Exception):
    """Raised when the summarization transform fails."""


class SnapshotWriteError(Exception):
    """Raised when the snapshot cannot be durably written."""


class RunError(BaseModel):
    """A single non-fatal failure recorded during a run."""

    stage: str
    item_id: int | None = None
    error_type: str = ""
    message: str = ""


class RunReport(BaseModel):
    """Counters and non-fatal errors collected during one refresh run."""

    candidates: int = 0
    suppressed: int = 0
    fetched: int = 0
    reused: int = 0
    dropped: int = 0
    carried_forward: int = 0
    errors: list[RunError] = Field(default_factory=list)

    def add_error(
        self,
        stage: str,
        message: str,
        *,
        item_id: int | None = None,
        error_type: str = "",
    ) -> None:
        self.errors.append(
            RunError(stage=stage, item_id=item_id, error_type=error_type, message=message)
        )

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
