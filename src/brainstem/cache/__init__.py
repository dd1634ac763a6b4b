"""
Cache module - best-effort mirror of summarized memory state.

Backends:
- upstash: Redis REST endpoint
- memory: in-process dict with TTLs

Only the sync coordinator writes here.
"""

from brainstem.cache.base import CacheKey, CacheLayer
from brainstem.cache.memory import InMemoryCache
from brainstem.cache.upstash import UpstashCache

__all__ = ["CacheKey", "CacheLayer", "InMemoryCache", "UpstashCache"]
