"""Background TTL sweep for named environments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pops.services.periodic import PeriodicTask

if TYPE_CHECKING:
    from pops.services.env_registry import EnvironmentRegistry
    from pops.services.run_tracker import SyncRunTracker

logger = logging.getLogger(__name__)


class EnvironmentWatcher:
    """Delete expired environments on a fixed interval.

    Each tick re-lists expired records, so a watcher that starts after a
    restart needs no carried-over state. The run tracker, if given, is swept
    on the same tick.
    """

    def __init__(
        self,
        registry: EnvironmentRegistry,
        interval_seconds: float,
        run_tracker: SyncRunTracker | None = None,
    ) -> None:
        self._registry = registry
        self._run_tracker = run_tracker
        self._task = PeriodicTask("env-ttl-watcher", interval_seconds, self.tick)

    @property
    def is_running(self) -> bool:
        return self._task.is_running

    async def tick(self) -> list[str]:
        """Run one sweep. Returns the names that were deleted."""
        deleted: list[str] = []
        try:
            expired = await self._registry.list_expired()
        except Exception:
            logger.exception("Failed to list expired environments")
            expired = []

        for info in expired:
            try:
                if await self._registry.delete_if_expired(info.name):
                    deleted.append(info.name)
            except Exception:
                logger.exception("Failed to delete expired environment %s", info.name)

        if deleted:
            logger.info("TTL sweep removed %d environment(s): %s", len(deleted), ", ".join(deleted))

        if self._run_tracker is not None:
            removed = self._run_tracker.cleanup()
            if removed:
                logger.debug("Evicted %d finished sync run(s)", removed)
        return deleted

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()
