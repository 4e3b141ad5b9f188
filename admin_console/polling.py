import asyncio
import logging
from contextlib import suppress
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("admin_console.polling")


class ScheduledPoll:
    """Runs ``action`` every ``interval`` seconds between start() and stop().

    The poll belongs to whoever started it (a view, the app lifespan) and is
    cancelled when that owner goes away. A failing tick is logged and the
    poll keeps going.
    """

    def __init__(self, name: str, interval: float, action: Callable[[], Awaitable[object]]):
        if interval <= 0:
            raise ValueError("poll interval must be positive")
        self.name = name
        self.interval = interval
        self.action = action
        self.ticks = 0
        self.failures = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "ScheduledPoll":
        if not self.running:
            self._task = asyncio.create_task(self._loop(), name=f"poll:{self.name}")
        return self

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.action()
                self.ticks += 1
            except Exception as e:
                self.failures += 1
                logger.warning("poll %s failed: %s", self.name, e,
                               extra={"component": "polling"})

    async def __aenter__(self) -> "ScheduledPoll":
        return self.start()

    async def __aexit__(self, *exc) -> None:
        await self.stop()
