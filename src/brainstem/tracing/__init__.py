"""
Tracing module - provenance of cross-agent messages.

Traces are always logged; persisting them to the memory store is
best-effort and never fails the traced operation.
"""

from brainstem.tracing.trace import TraceEntry, TraceRecorder

__all__ = ["TraceEntry", "TraceRecorder"]
