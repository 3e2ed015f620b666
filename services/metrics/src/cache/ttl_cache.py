import asyncio
import time
import weakref
from typing import Any, Callable, Optional

from src.cache.store import CacheStore
from src.domain.models import CacheEntry

Clock = Callable[[], float]


class TTLCache:
    """Last known-good payloads with a caller-chosen freshness window.

    The cache is TTL-agnostic: each ``get`` states how old an entry may be.
    Stale entries are never deleted, only reported as absent, so a later
    successful refresh simply overwrites them.
    """

    def __init__(self, store: CacheStore, clock: Clock = time.time):
        self.store = store
        self.clock = clock
        # a key's lock lives only while a write to that key holds it
        self._write_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    async def get(self, key: str, ttl_seconds: float) -> Optional[Any]:
        entry = await self.store.read(key)
        if entry is None:
            return None
        if self.clock() - entry.stored_at > ttl_seconds:
            return None
        return entry.value

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Raw entry regardless of age (diagnostics)."""
        return await self.store.read(key)

    async def set(self, key: str, value: Any) -> None:
        if value is None:
            raise ValueError("Refusing to cache an empty payload")
        async with self._lock_for(key):
            await self.store.write(
                CacheEntry(key=key, value=value, stored_at=self.clock())
            )

    async def ping(self) -> bool:
        return await self.store.ping()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._write_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._write_locks[key] = lock
        return lock
