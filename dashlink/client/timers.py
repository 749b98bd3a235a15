"""Cancellable periodic tasks on the running event loop."""

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

TickCallback = Callable[[], Awaitable[bool]]


class Ticker:
    """Calls ``callback`` every ``interval`` seconds until it returns False.

    ``delay`` postpones the first call. ``stop()`` only ends local ticking;
    it never touches remote state.
    """

    def __init__(self, interval: float, callback: TickCallback, delay: float | None = None):
        self.interval = interval
        self.callback = callback
        self.delay = interval if delay is None else delay
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.stop()
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait until the ticker finishes on its own."""
        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        while True:
            try:
                keep_going = await self.callback()
            except Exception as e:
                logger.error(f"Tick failed: {e}")
                keep_going = True
            if not keep_going:
                return
            await asyncio.sleep(self.interval)
