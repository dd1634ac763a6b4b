"""
Cache interface and key namespace.

The cache only mirrors summaries derived from the memory store. A miss means
"re-derive from the store if the value matters", never "false" or "empty".
"""

from abc import ABC, abstractmethod
from enum import Enum

from brainstem.core.typing import JSONDict


class CacheKey(str, Enum):
    """The fixed set of keys the sync coordinator maintains."""

    AGENTS = "brainstem:agents:registry"
    TRACES = "brainstem:traces:recent"
    STATE = "brainstem:state:current"


class CacheLayer(ABC):
    """Best-effort key/value mirror with TTLs.

    Implementations must not raise from set() or get(): transport problems
    become False (set) or a miss (get).
    """

    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    async def set(self, key: CacheKey, value: JSONDict, ttl_seconds: int) -> bool:
        """Store a JSON object under key. Returns False on failure."""
        ...

    @abstractmethod
    async def get(self, key: CacheKey) -> JSONDict | None:
        """Get the JSON object under key, or None on a miss."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        return None
