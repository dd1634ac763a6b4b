"""
Dispatch module - calls between agents.

Components:
- client: Synchronous hand-off to another agent's endpoint
- report: Best-effort status reports
"""

from brainstem.dispatch.client import DispatchClient
from brainstem.dispatch.report import StatusReporter

__all__ = ["DispatchClient", "StatusReporter"]
