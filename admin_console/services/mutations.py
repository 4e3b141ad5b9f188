import asyncio
import logging
from typing import Any, Awaitable, Iterable, Set

from .cache import MUTATION_DEPENDENTS, QueryCache

logger = logging.getLogger("admin_console.mutations")


class MutationRunner:
    """Runs backend mutations with read-your-writes cache refresh.

    Each mutation runs in its own task behind ``asyncio.shield``: if the
    caller goes away (view closed, request cancelled) the request still
    completes and its cache refresh still happens.
    """

    def __init__(self, cache: QueryCache):
        self.cache = cache
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def run(self, operation: Awaitable[Any],
                  refresh: Iterable[str] = MUTATION_DEPENDENTS,
                  refresh_on_failure: bool = False) -> Any:
        task = asyncio.ensure_future(self._apply(operation, tuple(refresh), refresh_on_failure))
        self._pending.add(task)
        task.add_done_callback(self._finished)
        return await asyncio.shield(task)

    async def _apply(self, operation: Awaitable[Any], refresh, refresh_on_failure: bool) -> Any:
        try:
            result = await operation
        except Exception:
            if refresh_on_failure:
                await self.cache.refresh(refresh)
            raise
        await self.cache.refresh(refresh)
        return result

    def _finished(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("mutation failed: %r", exc, extra={"component": "mutations"})

    async def drain(self) -> None:
        """Wait for in-flight mutations (shutdown, tests)"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
