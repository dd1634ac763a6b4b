"""Tests for sync coordinator."""

from pathlib import Path
from typing import Any

import pytest

from brainstem.cache.base import CacheKey, CacheLayer
from brainstem.cache.memory import InMemoryCache
from brainstem.core.policy import Policy
from brainstem.memory.base import MemoryRecord, MemoryType
from brainstem.memory.store import SQLiteMemoryStore
from brainstem.sync.coordinator import SyncCoordinator, SyncPhase
from brainstem.tracing.trace import TraceRecorder


class BrokenCache(CacheLayer):
    """A cache whose transport raises on every call."""

    async def set(self, key: CacheKey, value: dict[str, Any], ttl_seconds: int) -> bool:
        raise ConnectionError("cache unreachable")

    async def get(self, key: CacheKey) -> dict[str, Any] | None:
        raise ConnectionError("cache unreachable")


@pytest.fixture
async def memory_store(tmp_path: Path):
    store = SQLiteMemoryStore(tmp_path / "sync.db")
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def coordinator(memory_store, cache):
    return SyncCoordinator(memory_store, cache, TraceRecorder(memory_store), Policy())


async def _register_agents(store: SQLiteMemoryStore, *names: str) -> None:
    for name in names:
        await store.write(
            MemoryRecord(content=f"AGENT {name}", memory_type=MemoryType.AGENT_REGISTRY)
        )


@pytest.mark.asyncio
async def test_restore_cold_cache(coordinator):
    assert await coordinator.restore() == {"state": None, "agents": None, "traces": None}


@pytest.mark.asyncio
async def test_sync_agents_caches_summary(coordinator, memory_store, cache):
    await _register_agents(memory_store, "SYNC", "MEMORY", "HEALTH")

    result = await coordinator.sync_agents()

    assert result["agent_count"] == 3
    assert result["cached"] is True
    cached = await cache.get(CacheKey.AGENTS)
    assert cached["agent_count"] == 3
    assert cache.ttl(CacheKey.AGENTS) == pytest.approx(300, abs=1)


@pytest.mark.asyncio
async def test_sync_agents_writes_sync_record(coordinator, memory_store):
    await _register_agents(memory_store, "SYNC")
    await coordinator.sync_agents()

    records = await memory_store.recent_with_tag("agents", limit=10)
    assert len(records) == 1
    assert records[0].content.startswith("SYNC AGENTS")
    assert records[0].importance == 3
    assert "sync" in records[0].tags


@pytest.mark.asyncio
async def test_sync_traces_caps_tail(memory_store, cache):
    policy = Policy(trace_window=20, trace_tail_cap=5)
    coordinator = SyncCoordinator(memory_store, cache, TraceRecorder(), policy)
    for i in range(12):
        await memory_store.write(MemoryRecord(content=f"TRACE {i}", tags=["trace"]))

    result = await coordinator.sync_traces()

    assert result["trace_count"] == 12
    cached = await cache.get(CacheKey.TRACES)
    assert len(cached["traces"]) == 5
    assert cached["traces"][0]["content"] == "TRACE 11"


@pytest.mark.asyncio
async def test_sync_all_aggregate(coordinator, memory_store, cache):
    await _register_agents(memory_store, "SYNC", "MEMORY")

    aggregate = await coordinator.sync_all({"mode": "nightly"})

    assert aggregate["agents"]["agent_count"] == 2
    assert aggregate["input_state"] == {"mode": "nightly"}
    assert aggregate["cache_connected"] is True
    assert await cache.get(CacheKey.STATE) == aggregate
    assert coordinator.phase == SyncPhase.IDLE


@pytest.mark.asyncio
async def test_sync_all_then_restore(coordinator, memory_store):
    await _register_agents(memory_store, "SYNC")
    aggregate = await coordinator.sync_all()

    restored = await coordinator.restore()
    assert restored["state"] == aggregate
    assert restored["agents"]["agent_count"] == 1
    assert restored["traces"] is not None


@pytest.mark.asyncio
async def test_sync_all_with_unreachable_cache(memory_store):
    """Aggregate still comes back, derived only from the store."""
    coordinator = SyncCoordinator(memory_store, BrokenCache(), TraceRecorder(memory_store))
    await _register_agents(memory_store, "SYNC", "MEMORY")

    aggregate = await coordinator.sync_all()

    assert aggregate["agents"]["agent_count"] == 2
    assert aggregate["agents"]["cached"] is False
    assert aggregate["cache_connected"] is False
    assert await coordinator.restore() == {"state": None, "agents": None, "traces": None}


@pytest.mark.asyncio
async def test_sync_persists_traces(coordinator, memory_store):
    await coordinator.sync_all()

    traces = await memory_store.recent_with_tag("trace", limit=10)
    notations = [t.content for t in traces]
    assert any("SCHEDULER*SYNC*ALL" in c for c in notations)
    assert any("SCHEDULER*SYNC*CACHE" in c for c in notations)
