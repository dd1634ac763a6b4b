"""Health audit - composite trust score from independent checks.

Every check carries a weight; a failed check subtracts its weight from 100.
A score under the policy's trust threshold escalates to a human.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

import httpx

from brainstem.core.best_effort import best_effort
from brainstem.core.logging import get_logger
from brainstem.core.policy import Policy
from brainstem.escalation.router import EscalationRouter
from brainstem.memory.base import MemoryRecord, MemoryStore, MemoryType

logger = get_logger("escalation.health")

STORE_CHECK_NAME = "STORE_READ"


@dataclass
class HealthCheck:
    """An HTTP endpoint expected to answer 2xx."""

    name: str
    url: str
    weight: int = 10


@dataclass
class CheckResult:
    name: str
    passed: bool
    weight: int
    detail: str = ""
    latency_ms: int | None = None

    @property
    def severity(self) -> str:
        return "CRITICAL" if self.name.endswith("_ALIVE") else "WARNING"


@dataclass
class HealthSnapshot:
    cycle_id: str
    timestamp: str
    results: list[CheckResult] = field(default_factory=list)

    @property
    def trust_score(self) -> int:
        lost = sum(r.weight for r in self.results if not r.passed)
        return max(0, 100 - lost)

    @property
    def failures(self) -> list[CheckResult]:
        return [r for r in self.results if not r.passed]

    def to_dict(self) -> dict:
        return {
            "cycle_id": self.cycle_id,
            "timestamp": self.timestamp,
            "trust_score": self.trust_score,
            "checks_run": len(self.results),
            "checks_passed": len(self.results) - len(self.failures),
            "findings": [
                {"check": r.name, "detail": r.detail, "severity": r.severity}
                for r in self.failures
            ],
        }


class HealthAuditor:
    """Runs health checks, records a snapshot, escalates on low trust."""

    def __init__(
        self,
        checks: list[HealthCheck],
        store: MemoryStore,
        router: EscalationRouter,
        policy: Policy | None = None,
        store_weight: int = 15,
        client: httpx.AsyncClient | None = None,
    ):
        self.checks = checks
        self.store = store
        self.router = router
        self.policy = policy or Policy()
        self.store_weight = store_weight
        self._client = client

    async def _check_endpoint(self, client: httpx.AsyncClient, check: HealthCheck) -> CheckResult:
        start = time.monotonic()
        try:
            response = await client.get(check.url, timeout=self.policy.health_timeout)
        except httpx.HTTPError as e:
            return CheckResult(
                name=check.name,
                passed=False,
                weight=check.weight,
                detail=f"unreachable: {e}",
                latency_ms=int((time.monotonic() - start) * 1000),
            )

        latency_ms = int((time.monotonic() - start) * 1000)
        passed = response.is_success
        return CheckResult(
            name=check.name,
            passed=passed,
            weight=check.weight,
            detail="operational" if passed else f"status {response.status_code}",
            latency_ms=latency_ms,
        )

    async def _check_store(self) -> CheckResult:
        try:
            await self.store.list_by_type(MemoryType.SYSTEM, limit=1)
        except Exception as e:
            return CheckResult(STORE_CHECK_NAME, False, self.store_weight, f"inaccessible: {e}")
        return CheckResult(STORE_CHECK_NAME, True, self.store_weight, "accessible")

    async def run(self) -> HealthSnapshot:
        """Run every check once and compute the trust score."""
        snapshot = HealthSnapshot(
            cycle_id=f"health_{uuid4().hex[:12]}",
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

        if self._client is not None:
            for check in self.checks:
                snapshot.results.append(await self._check_endpoint(self._client, check))
        else:
            async with httpx.AsyncClient(timeout=self.policy.health_timeout) as client:
                for check in self.checks:
                    snapshot.results.append(await self._check_endpoint(client, check))

        snapshot.results.append(await self._check_store())

        logger.info(
            f"Health audit {snapshot.cycle_id}: trust {snapshot.trust_score}%, "
            f"{len(snapshot.failures)}/{len(snapshot.results)} checks failed"
        )
        return snapshot

    async def audit(self) -> HealthSnapshot:
        """Run checks, escalate if trust is low, then store the snapshot."""
        snapshot = await self.run()
        low_trust = snapshot.trust_score < self.policy.trust_alert_threshold

        # Alert before writing: the store may be the thing that is down
        critical = [r.name for r in snapshot.failures if r.severity == "CRITICAL"]
        message = f"HEALTH: Trust {snapshot.trust_score}%\n{len(critical)} critical: {', '.join(critical)}"
        await self.router.escalate_trust(snapshot.trust_score, message, "health_audit")

        record = MemoryRecord(
            content=(
                f"HEALTH SNAPSHOT [{snapshot.timestamp}]: Trust {snapshot.trust_score}%. "
                f"Checks: {len(snapshot.results)}. "
                f"Passed: {len(snapshot.results) - len(snapshot.failures)}. "
                f"Findings: {len(snapshot.failures)}"
            ),
            memory_type=MemoryType.SYSTEM,
            categories=["health", "snapshot", "audit"],
            importance=9 if low_trust else 4,
            is_system=True,
            source=snapshot.cycle_id,
            tags=["health", "snapshot", "alert" if low_trust else "ok"],
        )
        await best_effort("Health snapshot write", self.store.write(record))
        return snapshot
