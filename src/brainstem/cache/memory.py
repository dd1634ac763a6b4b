"""In-process cache with TTLs, for local runs and tests."""

import copy
import time
from collections.abc import Callable

from brainstem.cache.base import CacheKey, CacheLayer
from brainstem.core.typing import JSONDict


class InMemoryCache(CacheLayer):
    """Dict-backed cache; entries expire lazily on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, tuple[JSONDict, float | None]] = {}
        self._clock = clock

    async def set(self, key: CacheKey, value: JSONDict, ttl_seconds: int) -> bool:
        expires_at = self._clock() + ttl_seconds if ttl_seconds > 0 else None
        self._entries[CacheKey(key).value] = (copy.deepcopy(value), expires_at)
        return True

    async def get(self, key: CacheKey) -> JSONDict | None:
        entry = self._entries.get(CacheKey(key).value)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[CacheKey(key).value]
            return None
        return copy.deepcopy(value)

    def ttl(self, key: CacheKey) -> float | None:
        """Seconds left before key expires, None if absent or without TTL."""
        entry = self._entries.get(CacheKey(key).value)
        if entry is None or entry[1] is None:
            return None
        return max(0.0, entry[1] - self._clock())
