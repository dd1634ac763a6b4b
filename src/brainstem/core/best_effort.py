"""Best-effort execution for secondary operations.

Trace persistence, cache writes, escalation delivery and status reports all
run through best_effort(): a failure is logged and replaced by a default,
so the primary result of the enclosing operation is never affected.
"""

import logging
from collections.abc import Awaitable
from typing import TypeVar

from brainstem.core.logging import get_logger

logger = get_logger("core.best_effort")

T = TypeVar("T")


async def best_effort(label: str, operation: Awaitable[T], default: T | None = None) -> T | None:
    """Await operation, logging and discarding any exception."""
    try:
        return await operation
    except Exception as e:
        logger.warning(f"{label} failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
        return default
