"""Capability service - the request handlers behind each agent endpoint.

Capabilities:
- sync: sync_all (default), sync_agents, sync_traces, restore
- memory: search (default), semantic, backfill, write
- escalate: forward an urgency-scored message
- health: run the health audit

Every call answers with one envelope shape and reports its outcome to the
status endpoint. Malformed input is "skipped" (HTTP 200); anything that
fails while doing the work is an "error" (HTTP 500).
"""

from typing import Any

from brainstem.agents.requests import (
    AuditRequest,
    BackfillRequest,
    EscalateRequest,
    RestoreRequest,
    SemanticSearchRequest,
    SyncAgentsRequest,
    SyncAllRequest,
    SyncTracesRequest,
    TextSearchRequest,
    WriteRequest,
    parse_request,
)
from brainstem.core.errors import UpstreamError, ValidationError
from brainstem.core.logging import get_logger
from brainstem.core.policy import Policy
from brainstem.dispatch.report import StatusReporter
from brainstem.escalation.health import HealthAuditor
from brainstem.escalation.router import EscalationRouter
from brainstem.memory.base import MemoryRecord, MemoryStore
from brainstem.sync.coordinator import SyncCoordinator
from brainstem.tracing.trace import TraceRecorder

logger = get_logger("agents.service")

MIN_QUERY_LENGTH = 2
PREVIEW_LENGTH = 200


class CapabilityService:
    """Maps (capability, body) to a response envelope."""

    def __init__(
        self,
        store: MemoryStore,
        coordinator: SyncCoordinator,
        router: EscalationRouter,
        tracer: TraceRecorder,
        reporter: StatusReporter | None = None,
        auditor: HealthAuditor | None = None,
        policy: Policy | None = None,
    ):
        self.store = store
        self.coordinator = coordinator
        self.router = router
        self.tracer = tracer
        self.reporter = reporter or StatusReporter()
        self.auditor = auditor
        self.policy = policy or Policy()

    async def handle(self, capability: str, body: Any) -> tuple[int, dict[str, Any]]:
        """Run one request. Returns (http_status, envelope); never raises."""
        agent = capability.upper()

        try:
            request = parse_request(capability, body)
            data = await self._run(request)
            status_code = 200
            payload = {"agent": agent, "status": "complete", "action": request.action, "data": data}
        except ValidationError as e:
            logger.info(f"[{agent}] Skipped: {e}")
            status_code = 200
            payload = {"agent": agent, "status": "skipped", "reason": str(e)}
        except Exception as e:
            logger.error(f"[{agent}] Request failed: {e}", exc_info=True)
            status_code = 500
            payload = {"agent": agent, "status": "error", "error": str(e)}

        await self.reporter.report(agent, payload["status"], payload)
        return status_code, payload

    async def _run(self, request) -> Any:
        # Sync
        if isinstance(request, SyncAllRequest):
            return await self.coordinator.sync_all(request.state)
        if isinstance(request, SyncAgentsRequest):
            return await self.coordinator.sync_agents()
        if isinstance(request, SyncTracesRequest):
            return await self.coordinator.sync_traces()
        if isinstance(request, RestoreRequest):
            return await self.coordinator.restore()

        # Memory
        if isinstance(request, TextSearchRequest):
            return await self._text_search(request)
        if isinstance(request, SemanticSearchRequest):
            return await self._semantic_search(request)
        if isinstance(request, BackfillRequest):
            return await self._backfill(request)
        if isinstance(request, WriteRequest):
            return await self._write(request)

        # Escalation and health
        if isinstance(request, EscalateRequest):
            escalated = await self.router.escalate(request.urgency, request.message, request.source)
            return {"escalated": escalated, "urgency": request.urgency}
        if isinstance(request, AuditRequest):
            if self.auditor is None:
                raise UpstreamError("Health auditor not configured")
            snapshot = await self.auditor.audit()
            return snapshot.to_dict()

        raise TypeError(f"Unhandled request type: {type(request).__name__}")

    @staticmethod
    def _require_query(query: str) -> str:
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise ValidationError(f"Query too short (minimum {MIN_QUERY_LENGTH} characters)")
        return query

    async def _text_search(self, request: TextSearchRequest) -> dict[str, Any]:
        query = self._require_query(request.query)
        trace = self.tracer.record("CALLER", "MEMORY", "STORE", f"Searching: {query[:50]}", "SEARCHING")

        records = await self.store.text_search(query, limit=request.limit)

        await self.tracer.persist(trace.with_result(f"Found {len(records)} results"))
        return {
            "query": query,
            "count": len(records),
            "results": [r.to_dict(preview=PREVIEW_LENGTH) for r in records],
        }

    async def _semantic_search(self, request: SemanticSearchRequest) -> dict[str, Any]:
        query = self._require_query(request.query)
        if self.store.embedder is None:
            raise UpstreamError("No embedding provider configured for semantic search")

        threshold = (
            request.threshold if request.threshold is not None else self.policy.semantic_threshold
        )
        trace = self.tracer.record(
            "CALLER", "MEMORY", "STORE", f"Semantic search: {query[:50]}", "SEARCHING"
        )

        vector = await self.store.embedder.embed(query)
        matches = await self.store.semantic_search(vector, limit=request.limit, threshold=threshold)

        await self.tracer.persist(trace.with_result(f"Found {len(matches)} semantic matches"))
        return {
            "query": query,
            "threshold": threshold,
            "count": len(matches),
            "results": [
                {**m.record.to_dict(preview=PREVIEW_LENGTH), "similarity": round(m.similarity, 4)}
                for m in matches
            ],
        }

    async def _backfill(self, request: BackfillRequest) -> dict[str, int]:
        if self.store.embedder is None:
            raise UpstreamError("No embedding provider configured for backfill")

        trace = self.tracer.record("CALLER", "MEMORY", "EMBEDDER", "Backfilling embeddings", "EMBEDDING")
        result = await self.store.backfill_embeddings(batch_size=request.limit)
        await self.tracer.persist(trace.with_result(f"Embedded {result.processed}/{result.total}"))
        return result.to_dict()

    async def _write(self, request: WriteRequest) -> dict[str, Any]:
        if not request.content.strip():
            raise ValidationError("Memory content must not be empty")

        stored = await self.store.write(
            MemoryRecord(
                content=request.content,
                memory_type=request.memory_type,
                categories=request.categories,
                importance=request.importance,
                is_system=request.is_system,
                source=request.source,
                tags=request.tags,
            )
        )
        trace = self.tracer.record("CALLER", "MEMORY", "STORE", f"Stored {stored.id}")
        await self.tracer.persist(trace)
        return stored.to_dict()
