"""Capability request models.

Each capability accepts a closed set of request kinds, discriminated by
`action`. A body without an action gets the capability's default.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from brainstem.core.errors import BrainstemError, ValidationError
from brainstem.memory.base import MemoryType


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Sync capability


class SyncAllRequest(_Request):
    action: Literal["sync_all"] = "sync_all"
    state: dict[str, Any] | None = None


class SyncAgentsRequest(_Request):
    action: Literal["sync_agents"]


class SyncTracesRequest(_Request):
    action: Literal["sync_traces"]


class RestoreRequest(_Request):
    action: Literal["restore"]


SyncRequest = Annotated[
    Union[SyncAllRequest, SyncAgentsRequest, SyncTracesRequest, RestoreRequest],
    Field(discriminator="action"),
]


# Memory capability


class _QueryRequest(_Request):
    query: str = ""
    limit: int = Field(default=10, ge=1, le=100)
    intent: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _query_from_intent(self):
        # Dispatched calls carry the text as intent.content
        if not self.query and self.intent and isinstance(self.intent.get("content"), str):
            self.query = self.intent["content"]
        return self


class TextSearchRequest(_QueryRequest):
    action: Literal["search"] = "search"


class SemanticSearchRequest(_QueryRequest):
    action: Literal["semantic"]
    threshold: float | None = Field(default=None, ge=-1.0, le=1.0)


class BackfillRequest(_Request):
    action: Literal["backfill"]
    limit: int = Field(default=10, ge=1, le=500)


class WriteRequest(_Request):
    action: Literal["write"]
    content: str
    memory_type: MemoryType = MemoryType.SYSTEM
    categories: list[str] = Field(default_factory=list)
    importance: float = 5
    is_system: bool = False
    source: str = ""
    tags: list[str] = Field(default_factory=list)


MemoryRequest = Annotated[
    Union[TextSearchRequest, SemanticSearchRequest, BackfillRequest, WriteRequest],
    Field(discriminator="action"),
]


# Escalation and health capabilities


class EscalateRequest(_Request):
    action: Literal["escalate"] = "escalate"
    urgency: int = Field(ge=1, le=10)
    message: str
    source: str = "api"


class AuditRequest(_Request):
    action: Literal["audit"] = "audit"


CAPABILITIES: dict[str, tuple[TypeAdapter, str]] = {
    "sync": (TypeAdapter(SyncRequest), "sync_all"),
    "memory": (TypeAdapter(MemoryRequest), "search"),
    "escalate": (TypeAdapter(EscalateRequest), "escalate"),
    "health": (TypeAdapter(AuditRequest), "audit"),
}


class UnknownCapabilityError(BrainstemError):
    """No capability with that name."""


def parse_request(capability: str, body: Any):
    """Validate a request body for capability.

    Raises ValidationError for malformed bodies and UnknownCapabilityError
    for names outside CAPABILITIES.
    """
    if capability not in CAPABILITIES:
        raise UnknownCapabilityError(f"Unknown capability: {capability}")

    if body is not None and not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    adapter, default_action = CAPABILITIES[capability]
    data = dict(body or {})
    # Dispatched calls wrap their arguments as {intent, request}
    if isinstance(data.get("request"), dict):
        for key, value in data["request"].items():
            data.setdefault(key, value)
    data.setdefault("action", default_action)

    try:
        return adapter.validate_python(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid {capability} request: {problems}") from e
