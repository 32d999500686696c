"""Fixed-interval driver for observation callbacks."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Awaitable, Callable

from peerlink.logging import get_logger

log = get_logger(__name__)


class PeriodicScheduler:
    """Calls ``callback`` every ``interval`` seconds until stopped."""

    def __init__(self, callback: Callable[[], Awaitable[Any]], interval: float, name: str = "observe") -> None:
        self._callback = callback
        self._interval = interval
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                await self._callback()
            except Exception:
                log.exception("scheduled_callback_failed", name=self._name)
            await asyncio.sleep(self._interval)
