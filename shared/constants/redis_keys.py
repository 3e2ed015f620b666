from typing import Optional


class RedisKeys:
    """Centralised Redis key pattern definitions"""

    # Cached source payloads (hash: value, stored_at)
    CACHE_ENTRY_HASH = "metrics:cache:{key}"
    CACHE_FIELD_VALUE = "value"
    CACHE_FIELD_STORED_AT = "stored_at"

    @classmethod
    def cache_entry_key(cls, key: str) -> str:
        """Generate the Redis hash key holding one cache entry."""
        if not key:
            raise ValueError("Cache key must be a non-empty string")
        return cls.CACHE_ENTRY_HASH.format(key=key)

    # Scope placeholder when a request is not filtered by resource group
    ALL_RESOURCE_GROUPS = "*"

    @classmethod
    def source_cache_key(
        cls, subscription_id: str, resource_group: Optional[str], source: str
    ) -> str:
        """Cache key for one source's payload within a request scope.

        ARM names are case-insensitive, so both scope parts are lower-cased.
        """
        scope = (resource_group or cls.ALL_RESOURCE_GROUPS).lower()
        return f"{subscription_id.lower()}:{scope}:{source}"
