"""
Sync module - keeps the cache mirror fresh and restores it at boot.
"""

from brainstem.sync.coordinator import SyncCoordinator, SyncPhase

__all__ = ["SyncCoordinator", "SyncPhase"]
