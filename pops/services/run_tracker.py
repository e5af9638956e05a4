"""Time-limited in-memory status of on-demand sync runs. State is lost on restart."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pops.services.sync_service import SyncReport


@dataclass
class SyncRun:
    run_id: str
    status: str = "running"
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    results: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None


class SyncRunTracker:
    """Track sync runs; finished runs expire ``ttl_seconds`` after finishing.

    Expired entries are evicted lazily by ``cleanup``, which the environment
    watcher calls on each tick. There is no per-entry timer.
    """

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 100) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._runs: dict[str, SyncRun] = {}

    def _expired(self, run: SyncRun, now: float) -> bool:
        return run.finished_at is not None and now - run.finished_at > self._ttl

    def start(self) -> SyncRun:
        """Register a new running sync and return it."""
        self.cleanup()
        if len(self._runs) >= self._max_entries:
            oldest_key = min(self._runs, key=lambda k: self._runs[k].started_at)
            del self._runs[oldest_key]
        run = SyncRun(run_id=secrets.token_urlsafe(12))
        self._runs[run.run_id] = run
        return run

    def finish(self, run_id: str, report: SyncReport) -> None:
        run = self._runs.get(run_id)
        if run is None:
            return
        run.status = "succeeded" if report.ok else "failed"
        run.results = [
            {
                "kind": r.kind,
                "fetched": r.fetched,
                "upserted": r.upserted,
                "cursor": r.cursor_after,
                "error": r.error,
            }
            for r in report.results
        ]
        run.finished_at = time.time()

    def fail(self, run_id: str, error: str) -> None:
        run = self._runs.get(run_id)
        if run is None:
            return
        run.status = "failed"
        run.error = error
        run.finished_at = time.time()

    def get(self, run_id: str) -> SyncRun | None:
        run = self._runs.get(run_id)
        if run is None:
            return None
        if self._expired(run, time.time()):
            del self._runs[run_id]
            return None
        return run

    def cleanup(self) -> int:
        """Remove expired runs. Returns how many were removed."""
        now = time.time()
        expired = [k for k, run in self._runs.items() if self._expired(run, now)]
        for k in expired:
            del self._runs[k]
        return len(expired)
