"""
Escalation event and notification channel protocol.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class EscalationEvent:
    """A transient trigger for human notification. Never persisted here."""

    message: str
    source: str
    urgency: int | None = None  # 1-10
    trust_score: int | None = None  # 0-100
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationChannel(ABC):
    """A way to reach a human."""

    name: str = "channel"
    max_length: int = 1500
    # Trust-only events carry no urgency and skip these channels
    requires_urgency: bool = False

    @abstractmethod
    async def deliver(self, event: EscalationEvent, message: str) -> None:
        """Send message (already truncated) for event. May raise on failure."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        return None
