"""
Core module - configuration, policy, shared errors.

Components:
- config: Settings management via pydantic-settings
- policy: Thresholds and TTLs shared across components
- errors: Error taxonomy (validation, upstream, persistence)
- best_effort: Wrapper for secondary operations
- scheduler: Interval task runner
- logging: Structured logging setup
"""

from brainstem.core.config import Settings
from brainstem.core.errors import PersistenceError, UpstreamError, ValidationError
from brainstem.core.policy import Policy

__all__ = ["Settings", "Policy", "PersistenceError", "UpstreamError", "ValidationError"]
