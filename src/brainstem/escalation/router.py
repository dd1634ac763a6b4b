"""Escalation router - forwards urgent or low-trust signals to humans.

Delivery is fire-and-forget: each channel is tried once, failures are
logged, and the caller only learns whether the policy threshold was met.
There is no cooldown, so a condition that keeps firing keeps alerting.
"""

from brainstem.core.best_effort import best_effort
from brainstem.core.logging import get_logger
from brainstem.core.policy import Policy
from brainstem.escalation.base import EscalationEvent, NotificationChannel

logger = get_logger("escalation.router")


class EscalationRouter:
    """Evaluates signals against the policy table and notifies channels."""

    def __init__(self, channels: list[NotificationChannel], policy: Policy | None = None):
        self.channels = channels
        self.policy = policy or Policy()

    def truncate(self, channel: NotificationChannel, message: str) -> str:
        cap = self.policy.channel_cap(channel.name, channel.max_length)
        return message[:cap]

    async def escalate(self, urgency: int, message: str, source: str) -> bool:
        """Notify if urgency meets the threshold. Returns whether it did."""
        if urgency < self.policy.urgency_threshold:
            logger.debug(
                f"Urgency {urgency} from {source} below threshold {self.policy.urgency_threshold}"
            )
            return False

        await self._deliver(EscalationEvent(message=message, source=source, urgency=urgency))
        return True

    async def escalate_trust(self, trust_score: int, message: str, source: str) -> bool:
        """Notify if a composite trust score falls below the alert threshold."""
        if trust_score >= self.policy.trust_alert_threshold:
            logger.debug(f"Trust {trust_score} from {source} is healthy")
            return False

        await self._deliver(EscalationEvent(message=message, source=source, trust_score=trust_score))
        return True

    async def _deliver(self, event: EscalationEvent) -> int:
        channels = [
            c for c in self.channels if event.urgency is not None or not c.requires_urgency
        ]
        if not channels:
            logger.warning(f"No notification channels available, dropping alert from {event.source}")
            return 0

        delivered = 0
        for channel in channels:
            ok = await best_effort(
                f"Escalation via {channel.name}",
                self._send(channel, event),
                False,
            )
            delivered += int(bool(ok))
        logger.info(f"Escalated from {event.source}: {delivered}/{len(channels)} channels")
        return delivered

    async def _send(self, channel: NotificationChannel, event: EscalationEvent) -> bool:
        await channel.deliver(event, self.truncate(channel, event.message))
        return True

    async def close(self) -> None:
        for channel in self.channels:
            await channel.close()
