import json
from typing import Optional

from redis.asyncio import Redis
from src.domain.models import CacheEntry

from shared.constants import RedisKeys


class RedisCacheStore:
    """Redis-backed cache store.

    Notes:
        - One hash per entry holding the JSON payload and its storage time.
        - Both fields are written by a single HSET, so readers never see a
          payload paired with another write's timestamp.
        - No expiry is set; freshness is decided by the TTL cache.
    """

    def __init__(self, redis: Redis):
        self.r = redis

    async def read(self, key: str) -> Optional[CacheEntry]:
        data = await self.r.hgetall(  # type: ignore[misc]
            RedisKeys.cache_entry_key(key)
        )
        if not data:
            return None
        raw_value = data.get(RedisKeys.CACHE_FIELD_VALUE)
        raw_stored_at = data.get(RedisKeys.CACHE_FIELD_STORED_AT)
        if raw_value is None or raw_stored_at is None:
            return None
        return CacheEntry(
            key=key, value=json.loads(raw_value), stored_at=float(raw_stored_at)
        )

    async def write(self, entry: CacheEntry) -> None:
        await self.r.hset(  # type: ignore[misc]
            RedisKeys.cache_entry_key(entry.key),
            mapping={
                RedisKeys.CACHE_FIELD_VALUE: json.dumps(entry.value),
                RedisKeys.CACHE_FIELD_STORED_AT: repr(entry.stored_at),
            },
        )

    async def ping(self) -> bool:
        return bool(await self.r.ping())
