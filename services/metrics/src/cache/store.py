from typing import Optional, Protocol

from src.domain.models import CacheEntry


class CacheStore(Protocol):
    """Key-value persistence behind the TTL cache.

    Implementations must make ``write`` a single atomic replacement so a
    concurrent ``read`` never observes a half-written entry.
    """

    async def read(self, key: str) -> Optional[CacheEntry]: ...

    async def write(self, entry: CacheEntry) -> None: ...

    async def ping(self) -> bool: ...
