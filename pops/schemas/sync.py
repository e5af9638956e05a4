"""Sync run and cursor schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from pops.services.datetime_service import format_iso

if TYPE_CHECKING:
    from pops.services.run_tracker import SyncRun


class SyncRunRequest(BaseModel):
    """Start an on-demand sync. An empty ``kinds`` list means every source."""

    kinds: list[str] = Field(default_factory=list)


class SyncRunAccepted(BaseModel):
    run_id: str
    status: str


class SyncPassResponse(BaseModel):
    kind: str
    fetched: int
    upserted: int
    cursor: str | None = None
    error: str | None = None


class SyncRunResponse(BaseModel):
    run_id: str
    status: str
    started_at: str
    finished_at: str | None = None
    results: list[SyncPassResponse] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_run(cls, run: SyncRun) -> SyncRunResponse:
        finished = (
            format_iso(datetime.fromtimestamp(run.finished_at, tz=timezone.utc))
            if run.finished_at is not None
            else None
        )
        return cls(
            run_id=run.run_id,
            status=run.status,
            started_at=format_iso(datetime.fromtimestamp(run.started_at, tz=timezone.utc)),
            finished_at=finished,
            results=[SyncPassResponse(**result) for result in run.results],
            error=run.error,
        )


class CursorResponse(BaseModel):
    database_id: str
    last_edited_time: str


class CursorListResponse(BaseModel):
    store: str
    cursors: list[CursorResponse]
