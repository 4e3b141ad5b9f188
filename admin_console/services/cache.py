import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger("admin_console.cache")

# Query keys shared by the controllers
TENANTS = "tenants"
BUCKETS = "buckets"
USERS = "users"
ACCESS_KEYS = "access_keys"
SETTINGS = "settings"

# Views that depend on server-computed counters; refreshed after any mutation
MUTATION_DEPENDENTS = (TENANTS, BUCKETS, USERS, ACCESS_KEYS)

Loader = Callable[[], Awaitable[Any]]


class _Entry:
    __slots__ = ("value", "fetched_at", "stale")

    def __init__(self, value: Any):
        self.value = value
        self.fetched_at = time.time()
        self.stale = False


class QueryCache:
    """Short-lived query cache keyed by view name.

    A loader is registered per key. ``get`` serves the cached value until it
    is invalidated or older than ``stale_after`` seconds; ``refresh`` marks
    keys stale and immediately re-fetches those that have been loaded before,
    so open views converge to server state after a mutation.
    """

    def __init__(self, stale_after: float = 30.0, history: int = 1000):
        self.stale_after = stale_after
        self._loaders: Dict[str, Loader] = {}
        self._entries: Dict[str, _Entry] = {}
        self.invalidations = deque(maxlen=history)

    def register(self, key: str, loader: Loader) -> None:
        self._loaders[key] = loader

    def peek(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        return entry.value if entry else None

    def set(self, key: str, value: Any) -> None:
        """Replace a cached value locally (optimistic updates)"""
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = _Entry(value)
        else:
            entry.value = value

    def is_stale(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return True
        return entry.stale or (time.time() - entry.fetched_at) > self.stale_after

    async def get(self, key: str) -> Any:
        if not self.is_stale(key):
            return self._entries[key].value
        return await self.fetch(key)

    async def fetch(self, key: str) -> Any:
        loader = self._loaders.get(key)
        if loader is None:
            raise KeyError(f"no loader registered for query {key!r}")
        value = await loader()
        self._entries[key] = _Entry(value)
        return value

    def invalidate(self, *keys: str) -> None:
        for key in keys:
            self.invalidations.append((key, time.time()))
            entry = self._entries.get(key)
            if entry is not None:
                entry.stale = True

    def invalidated_keys(self) -> List[str]:
        return [key for key, _ in self.invalidations]

    async def refresh(self, keys: Iterable[str]) -> List[Tuple[str, Optional[Exception]]]:
        """Invalidate ``keys`` and re-fetch the ones currently loaded.

        A failing re-fetch leaves its key stale (the next ``get`` retries)
        and is reported back to the caller instead of aborting the others.
        """
        keys = list(keys)
        self.invalidate(*keys)
        results = []
        for key in keys:
            if key not in self._entries or key not in self._loaders:
                continue
            try:
                await self.fetch(key)
                results.append((key, None))
            except Exception as e:
                logger.warning("refetch of %s failed: %s", key, e,
                               extra={"component": "cache"})
                results.append((key, e))
        return results


def register_backend_queries(cache: QueryCache, backend) -> QueryCache:
    """Wire the standard console queries to a BackendClient"""
    cache.register(TENANTS, backend.get_tenants)
    cache.register(BUCKETS, backend.get_buckets)
    cache.register(USERS, backend.get_users)
    cache.register(ACCESS_KEYS, backend.get_access_keys)
    cache.register(SETTINGS, backend.list_settings)
    return cache
