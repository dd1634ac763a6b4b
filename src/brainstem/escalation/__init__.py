"""
Escalation module - getting a human's attention.

Components:
- router: Urgency / trust thresholds from the policy table
- channels: SMS, escalation endpoint, Telegram
- health: Composite trust score from endpoint and store checks
"""

from brainstem.escalation.base import EscalationEvent, NotificationChannel
from brainstem.escalation.router import EscalationRouter

__all__ = ["EscalationEvent", "EscalationRouter", "NotificationChannel"]
