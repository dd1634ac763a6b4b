"""
Error taxonomy.

- ValidationError: missing or too-short input. Handlers skip the operation.
- UpstreamError: a dependency (store, embedding provider, dispatch target)
  failed or answered with a non-success response. Fails the primary result.
- PersistenceError: the memory store rejected a read or write.

Secondary failures (tracing, cache, escalation delivery, reporting) never
surface as exceptions; see brainstem.core.best_effort.
"""


class BrainstemError(Exception):
    """Base class for substrate errors."""


class ValidationError(BrainstemError):
    """Input is missing or too short to act on."""


class UpstreamError(BrainstemError):
    """An external dependency failed."""


class PersistenceError(UpstreamError):
    """The memory store rejected an operation."""
