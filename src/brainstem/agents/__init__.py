"""Agent capabilities exposed over HTTP."""

from brainstem.agents.requests import UnknownCapabilityError, parse_request
from brainstem.agents.service import CapabilityService

__all__ = ["CapabilityService", "UnknownCapabilityError", "parse_request"]
