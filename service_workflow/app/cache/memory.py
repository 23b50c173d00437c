"""
In-process cache with lazy expiry.
"""

import time
from typing import Callable, Dict, Optional

from shared.logging import get_logger
from .base import Cache
from ..models import CacheEntry


class MemoryCache(Cache):
    """Dictionary-backed cache owned by a single service instance.

    Entries are not swept in the background; an expired entry is removed the
    next time it is read.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.logger = get_logger("workflow.cache.memory")

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self.logger.debug("Expired entry evicted", cache_key=key)
            return None

        return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)
        return True

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self.logger.info("Cache cleared", count=count)
        return count

    def __len__(self) -> int:
        return len(self._entries)
