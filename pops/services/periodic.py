"""Single recurring asyncio task used by every background sweep."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

_STOP_TIMEOUT = 5.0


class PeriodicTask:
    """Run ``callback`` every ``interval_seconds`` until stopped.

    The task keeps no state of its own between ticks, so a restarted process
    simply starts ticking again. Exceptions from a tick are logged and the
    loop continues.

    Args:
        name: Label used in logs and as the asyncio task name.
        interval_seconds: Delay between the end of one tick and the next.
        callback: Coroutine function invoked once per tick.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], Awaitable[object]],
    ) -> None:
        if interval_seconds <= 0:
            msg = f"interval_seconds must be > 0, got {interval_seconds}"
            raise ValueError(msg)
        self._name = name
        self._interval = interval_seconds
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Periodic task %s failed; will retry next tick", self._name)

    def start(self) -> None:
        """Start ticking. Idempotent."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)
        logger.info("Started periodic task %s (every %.1fs)", self._name, self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish. Idempotent."""
        if self._task is None:
            return
        task = self._task
        self._task = None
        task.cancel()
        try:
            await asyncio.wait_for(task, timeout=_STOP_TIMEOUT)
        except (asyncio.CancelledError, TimeoutError):
            pass
        logger.info("Stopped periodic task %s", self._name)
