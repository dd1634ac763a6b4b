"""
Policy table - thresholds, TTLs and caps shared by escalation and sync.

Defaults reflect the values the agent fleet runs with. Any of them can be
overridden from a YAML file:

    urgency_threshold: 7
    channel_caps:
      sms: 140
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from brainstem.core.logging import get_logger

logger = get_logger("core.policy")


class Policy(BaseModel):
    # Escalation
    urgency_threshold: int = Field(default=8, ge=1, le=10)
    trust_alert_threshold: int = Field(default=80, ge=0, le=100)
    channel_caps: dict[str, int] = Field(
        default_factory=lambda: {"sms": 160, "escalate": 1500, "telegram": 4000}
    )

    # Cache TTLs (seconds)
    agents_ttl: int = 300
    traces_ttl: int = 600
    state_ttl: int = 300

    # Sync windows
    agent_registry_limit: int = 100
    trace_window: int = 100
    trace_tail_cap: int = 50

    # Search / embeddings
    semantic_threshold: float = 0.5
    backfill_batch: int = 10

    # Timers (seconds)
    sync_interval: int = 300
    backfill_interval: int = 900
    audit_interval: int = 1800
    health_timeout: float = 10.0

    def channel_cap(self, channel: str, default: int) -> int:
        """Message cap for a channel, falling back to the channel's own limit."""
        return self.channel_caps.get(channel, default)


def load_policy(path: Path | None = None) -> Policy:
    """Load policy from YAML, or defaults when no file is given."""
    if path is None:
        return Policy()

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    policy = Policy.model_validate(data)
    logger.info(f"Loaded policy overrides from {path}: {', '.join(sorted(data)) or 'none'}")
    return policy
