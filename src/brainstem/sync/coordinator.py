"""Sync coordinator - projects memory store summaries into the cache.

Cycle: IDLE -> SYNCING_AGENTS -> SYNCING_TRACES -> SYNCING_AGGREGATE -> IDLE,
triggered by the scheduler or a manual call. restore() is a separate path
used at boot.

Each cycle is computed purely from current store contents, so concurrent
cycles may interleave; the last write to each cache key wins.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from brainstem.cache.base import CacheKey, CacheLayer
from brainstem.core.best_effort import best_effort
from brainstem.core.logging import get_logger
from brainstem.core.policy import Policy
from brainstem.memory.base import MemoryRecord, MemoryStore, MemoryType
from brainstem.tracing.trace import TraceRecorder

logger = get_logger("sync.coordinator")


class SyncPhase(Enum):
    IDLE = "idle"
    SYNCING_AGENTS = "syncing_agents"
    SYNCING_TRACES = "syncing_traces"
    SYNCING_AGGREGATE = "syncing_aggregate"
    RESTORING = "restoring"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncCoordinator:
    """Owns the cache: the only component that writes to it."""

    def __init__(
        self,
        store: MemoryStore,
        cache: CacheLayer,
        tracer: TraceRecorder,
        policy: Policy | None = None,
    ):
        self.store = store
        self.cache = cache
        self.tracer = tracer
        self.policy = policy or Policy()
        self._cycles: dict[str, SyncPhase] = {}

    @property
    def phase(self) -> SyncPhase:
        """Phase of the most recently started active cycle, or IDLE."""
        if not self._cycles:
            return SyncPhase.IDLE
        return next(reversed(self._cycles.values()))

    @property
    def active_cycles(self) -> int:
        return len(self._cycles)

    def _enter(self, cycle_id: str, phase: SyncPhase) -> None:
        self._cycles[cycle_id] = phase
        logger.debug(f"Sync cycle {cycle_id}: {phase.value}")

    def _leave(self, cycle_id: str) -> None:
        self._cycles.pop(cycle_id, None)

    async def _cache_set(self, key: CacheKey, value: dict[str, Any], ttl: int) -> bool:
        return bool(await best_effort(f"Cache SET {key.value}", self.cache.set(key, value, ttl), False))

    async def _cache_get(self, key: CacheKey) -> dict[str, Any] | None:
        return await best_effort(f"Cache GET {key.value}", self.cache.get(key))

    # Steps

    async def _sync_agents(self) -> dict[str, Any]:
        trace = self.tracer.record("SCHEDULER", "SYNC", "CACHE", "Syncing agent registry", "SYNCING")

        agents = await self.store.list_by_type(
            MemoryType.AGENT_REGISTRY, limit=self.policy.agent_registry_limit
        )
        summary = {"timestamp": _now(), "agent_count": len(agents)}
        cached = await self._cache_set(CacheKey.AGENTS, summary, self.policy.agents_ttl)

        await self.store.write(
            MemoryRecord(
                content=f"SYNC AGENTS [{summary['timestamp']}]: {len(agents)} agents synced",
                memory_type=MemoryType.SYSTEM,
                categories=["sync", "agents"],
                importance=3,
                is_system=True,
                source=f"sync_agents_{uuid4().hex[:12]}",
                tags=["sync", "agents"],
            )
        )

        await self.tracer.persist(trace.with_result(f"{len(agents)} agents synced"))
        return {**summary, "cached": cached}

    async def _sync_traces(self) -> dict[str, Any]:
        trace = self.tracer.record("SCHEDULER", "SYNC", "CACHE", "Syncing traces", "SYNCING")

        traces = await self.store.recent_with_tag("trace", limit=self.policy.trace_window)
        summary = {"timestamp": _now(), "trace_count": len(traces)}
        tail = [
            {"content": r.content, "created_at": r.created_at.isoformat()}
            for r in traces[: self.policy.trace_tail_cap]
        ]
        cached = await self._cache_set(
            CacheKey.TRACES, {**summary, "traces": tail}, self.policy.traces_ttl
        )

        await self.tracer.persist(trace.with_result(f"{len(traces)} traces synced"))
        return {**summary, "cached": cached}

    # Public operations

    async def sync_agents(self) -> dict[str, Any]:
        """Count agent registry records and mirror the summary."""
        cycle_id = uuid4().hex[:8]
        self._enter(cycle_id, SyncPhase.SYNCING_AGENTS)
        try:
            return await self._sync_agents()
        finally:
            self._leave(cycle_id)

    async def sync_traces(self) -> dict[str, Any]:
        """Mirror a summary and capped tail of recent traces."""
        cycle_id = uuid4().hex[:8]
        self._enter(cycle_id, SyncPhase.SYNCING_TRACES)
        try:
            return await self._sync_traces()
        finally:
            self._leave(cycle_id)

    async def sync_all(self, input_state: dict[str, Any] | None = None) -> dict[str, Any]:
        """Full cycle: agents, traces, then the merged aggregate."""
        cycle_id = uuid4().hex[:8]
        trace = self.tracer.record("SCHEDULER", "SYNC", "ALL", "Full sync starting", "SYNCING")
        try:
            self._enter(cycle_id, SyncPhase.SYNCING_AGENTS)
            agents = await self._sync_agents()

            self._enter(cycle_id, SyncPhase.SYNCING_TRACES)
            traces = await self._sync_traces()

            self._enter(cycle_id, SyncPhase.SYNCING_AGGREGATE)
            aggregate = {
                "timestamp": _now(),
                "agents": agents,
                "traces": traces,
                "input_state": input_state or {},
                "cache_connected": agents["cached"] and traces["cached"],
            }
            await self._cache_set(CacheKey.STATE, aggregate, self.policy.state_ttl)
        finally:
            self._leave(cycle_id)

        await self.tracer.persist(trace.with_result("Full sync complete"))
        logger.info(
            f"Sync complete: {agents['agent_count']} agents, {traces['trace_count']} traces, "
            f"cache {'connected' if aggregate['cache_connected'] else 'unavailable'}"
        )
        return aggregate

    async def restore(self) -> dict[str, dict[str, Any] | None]:
        """Read back all mirrored state. Missing pieces are None."""
        cycle_id = uuid4().hex[:8]
        self._enter(cycle_id, SyncPhase.RESTORING)
        trace = self.tracer.record("BOOT", "SYNC", "CACHE", "Restoring state", "RESTORING")
        try:
            restored = {
                "state": await self._cache_get(CacheKey.STATE),
                "agents": await self._cache_get(CacheKey.AGENTS),
                "traces": await self._cache_get(CacheKey.TRACES),
            }
        finally:
            self._leave(cycle_id)

        present = ", ".join(f"{k}={v is not None}" for k, v in restored.items())
        await self.tracer.persist(trace.with_result(f"Restored: {present}"))
        return restored
