"""Routing traces - who passed what to whom.

A trace notation is the literal triple "PASSER*AGENT*RECEIVER". Downstream
parsers split on "*", so the order of the three parts is fixed.
"""

import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from brainstem.core.best_effort import best_effort
from brainstem.core.logging import get_logger
from brainstem.memory.base import MemoryRecord, MemoryStore, MemoryType

logger = get_logger("tracing.trace")

TRACE_IMPORTANCE = 2


@dataclass(frozen=True)
class TraceEntry:
    notation: str
    action: str
    result: str
    timestamp: str
    agent: str

    def with_result(self, result: str) -> "TraceEntry":
        """Same step, new outcome."""
        return replace(self, result=result)

    def to_record(self) -> MemoryRecord:
        """Memory record form used when a trace is persisted."""
        agent = self.agent.lower()
        return MemoryRecord(
            content=f"TRACE [{self.timestamp}]: {self.notation} | {self.action} | {self.result}",
            memory_type=MemoryType.SYSTEM,
            categories=["trace", agent],
            importance=TRACE_IMPORTANCE,
            is_system=True,
            source=f"trace_{self.agent}_{int(time.time() * 1000)}",
            tags=["trace", "routing", agent],
        )


class TraceRecorder:
    """Builds trace entries and optionally persists them to the memory store."""

    def __init__(self, store: MemoryStore | None = None):
        self.store = store

    def record(
        self,
        passer: str,
        agent: str,
        receiver: str,
        action: str,
        result: str = "OK",
    ) -> TraceEntry:
        """Build a trace entry. Pure construction plus a log line."""
        entry = TraceEntry(
            notation=f"{passer}*{agent}*{receiver}",
            action=action,
            result=result,
            timestamp=datetime.now(timezone.utc).isoformat(),
            agent=agent,
        )
        logger.info(f"[TRACE] {entry.notation} | {action} | {result}")
        return entry

    async def persist(self, entry: TraceEntry) -> bool:
        """Write entry to the memory store. Failures are logged, never raised."""
        if self.store is None:
            return False
        stored = await best_effort(f"Trace persist {entry.notation}", self.store.write(entry.to_record()))
        return stored is not None
