"""Service wiring.

Builds every component from Settings and Policy in dependency order, and
tears them down in reverse. Nothing here reads the environment directly.
"""

from dataclasses import dataclass
from datetime import timedelta

from brainstem.agents.service import CapabilityService
from brainstem.cache.base import CacheLayer
from brainstem.cache.memory import InMemoryCache
from brainstem.cache.upstash import UpstashCache
from brainstem.core.config import Settings
from brainstem.core.logging import get_logger
from brainstem.core.policy import Policy
from brainstem.core.scheduler import Scheduler, TaskPriority
from brainstem.dispatch.client import DispatchClient
from brainstem.dispatch.report import StatusReporter
from brainstem.escalation.base import NotificationChannel
from brainstem.escalation.channels import EscalationEndpointChannel, SmsChannel, TelegramChannel
from brainstem.escalation.health import HealthAuditor, HealthCheck
from brainstem.escalation.router import EscalationRouter
from brainstem.llm.embeddings import EmbeddingProvider, LiteLLMEmbeddingProvider
from brainstem.memory.store import SQLiteMemoryStore
from brainstem.sync.coordinator import SyncCoordinator
from brainstem.tracing.trace import TraceRecorder

logger = get_logger("core.services")


@dataclass
class Services:
    settings: Settings
    policy: Policy
    store: SQLiteMemoryStore
    cache: CacheLayer
    tracer: TraceRecorder
    coordinator: SyncCoordinator
    router: EscalationRouter
    auditor: HealthAuditor
    dispatch: DispatchClient
    reporter: StatusReporter
    capabilities: CapabilityService

    async def close(self) -> None:
        await self.router.close()
        await self.dispatch.close()
        await self.reporter.close()
        await self.cache.close()
        await self.store.close()
        logger.info("Services closed")


def build_embedder(settings: Settings) -> EmbeddingProvider | None:
    if not settings.embedding_model:
        return None
    return LiteLLMEmbeddingProvider(
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        api_key=settings.embedding_api_key or None,
        api_base=settings.embedding_api_base or None,
        timeout=settings.http_timeout,
    )


def build_cache(settings: Settings) -> CacheLayer:
    if settings.cache_url and settings.cache_token:
        return UpstashCache(settings.cache_url, settings.cache_token, timeout=settings.http_timeout)
    logger.warning("Cache not configured, using in-process cache")
    return InMemoryCache()


def build_channels(settings: Settings) -> list[NotificationChannel]:
    channels: list[NotificationChannel] = []
    if settings.reach_url and settings.alert_phone:
        channels.append(SmsChannel(settings.reach_url, settings.alert_phone, timeout=settings.http_timeout))
    if settings.reach_url:
        channels.append(EscalationEndpointChannel(settings.reach_url, timeout=settings.http_timeout))
    if settings.telegram_token and settings.telegram_owner_id:
        channels.append(TelegramChannel(settings.telegram_token, settings.telegram_owner_id))
    logger.info(f"Notification channels: {[c.name for c in channels] or 'none'}")
    return channels


async def create_services(settings: Settings, policy: Policy | None = None) -> Services:
    """Connect the store and wire every component."""
    policy = policy or Policy()

    store = SQLiteMemoryStore(settings.db_path, embedder=build_embedder(settings))
    await store.connect()

    cache = build_cache(settings)
    tracer = TraceRecorder(store)
    coordinator = SyncCoordinator(store, cache, tracer, policy)
    router = EscalationRouter(build_channels(settings), policy)
    auditor = HealthAuditor(
        [
            HealthCheck(name, check.url, check.weight)
            for name, check in settings.health_checks.items()
        ],
        store,
        router,
        policy,
    )
    dispatch = DispatchClient(settings.functions_url, settings.functions_key, settings.http_timeout)
    reporter = StatusReporter(settings.report_url, settings.http_timeout)
    capabilities = CapabilityService(
        store=store,
        coordinator=coordinator,
        router=router,
        tracer=tracer,
        reporter=reporter,
        auditor=auditor,
        policy=policy,
    )

    return Services(
        settings=settings,
        policy=policy,
        store=store,
        cache=cache,
        tracer=tracer,
        coordinator=coordinator,
        router=router,
        auditor=auditor,
        dispatch=dispatch,
        reporter=reporter,
        capabilities=capabilities,
    )


def schedule_background(scheduler: Scheduler, services: Services) -> None:
    """Register the periodic sync, backfill and audit tasks."""
    policy = services.policy

    scheduler.schedule_task(
        "sync_all",
        "Sync state to cache",
        services.coordinator.sync_all,
        interval=timedelta(seconds=policy.sync_interval),
        priority=TaskPriority.HIGH,
    )
    if services.store.embedder is not None:
        scheduler.schedule_task(
            "backfill",
            "Backfill embeddings",
            lambda: services.store.backfill_embeddings(policy.backfill_batch),
            interval=timedelta(seconds=policy.backfill_interval),
            priority=TaskPriority.LOW,
            delay=timedelta(seconds=60),
        )
    scheduler.schedule_task(
        "health_audit",
        "Health audit",
        services.auditor.audit,
        interval=timedelta(seconds=policy.audit_interval),
        delay=timedelta(seconds=30),
    )
