import copy
from typing import Dict, Optional

from src.domain.models import CacheEntry


class InMemoryCacheStore:
    """Process-local store.

    Values are deep-copied in both directions so callers can never mutate a
    stored payload through a reference they were handed.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    async def read(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.model_copy(update={"value": copy.deepcopy(entry.value)})

    async def write(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry.model_copy(
            update={"value": copy.deepcopy(entry.value)}
        )

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._entries)
