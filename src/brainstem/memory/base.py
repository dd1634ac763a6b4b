"""
Memory store interface and record types.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from brainstem.core.logging import get_logger
from brainstem.core.typing import Vector

if TYPE_CHECKING:
    from brainstem.llm.embeddings import EmbeddingProvider

logger = get_logger("memory.base")

MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10
DEFAULT_IMPORTANCE = 5


class MemoryType(Enum):
    SYSTEM = "system"
    USER = "user"
    AGENT_REGISTRY = "agent_registry"


def clamp_importance(value: float | int) -> int:
    """Clamp importance into [1, 10]. Infinities clamp to the bounds, NaN gets the default."""
    if math.isnan(value):
        return DEFAULT_IMPORTANCE
    if math.isinf(value):
        return MAX_IMPORTANCE if value > 0 else MIN_IMPORTANCE
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, int(round(value))))


def unique(values) -> list[str]:
    """De-duplicate while keeping first-seen order."""
    return list(dict.fromkeys(values or ()))


@dataclass
class MemoryRecord:
    """Single memory record. Only `embedding` may change after write."""

    content: str
    memory_type: MemoryType = MemoryType.SYSTEM
    categories: list[str] = field(default_factory=list)
    importance: int = DEFAULT_IMPORTANCE
    is_system: bool = False
    source: str = ""
    tags: list[str] = field(default_factory=list)
    embedding: Vector | None = None
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self, preview: int | None = None) -> dict:
        """JSON-safe view without the vector; preview truncates content."""
        content = self.content if preview is None else self.content[:preview]
        return {
            "id": self.id,
            "content": content,
            "memory_type": self.memory_type.value,
            "categories": list(self.categories),
            "importance": self.importance,
            "is_system": self.is_system,
            "source": self.source,
            "tags": list(self.tags),
            "has_embedding": self.embedding is not None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class SemanticMatch:
    """A record returned by vector search with its cosine similarity."""

    record: MemoryRecord
    similarity: float


@dataclass
class BackfillResult:
    processed: int
    total: int

    def to_dict(self) -> dict[str, int]:
        return {"processed": self.processed, "total": self.total}


class MemoryStore(ABC):
    """Append-only memory storage interface."""

    def __init__(self, embedder: "EmbeddingProvider | None" = None):
        self.embedder = embedder

    @abstractmethod
    async def write(self, record: MemoryRecord) -> MemoryRecord:
        """Store record, assigning id and timestamps. Raises PersistenceError."""
        ...

    @abstractmethod
    async def get(self, memory_id: str) -> MemoryRecord | None:
        """Get specific record by ID."""
        ...

    @abstractmethod
    async def text_search(self, query: str, limit: int = 10) -> list[MemoryRecord]:
        """Full-text search ranked by importance, then recency."""
        ...

    @abstractmethod
    async def semantic_search(
        self,
        vector: Vector,
        limit: int = 10,
        threshold: float = 0.5,
    ) -> list[SemanticMatch]:
        """Vector search over embedded records, ranked by similarity."""
        ...

    @abstractmethod
    async def list_by_type(self, memory_type: MemoryType, limit: int = 100) -> list[MemoryRecord]:
        """Records of one type, most important first."""
        ...

    @abstractmethod
    async def recent_with_tag(self, tag: str, limit: int = 100) -> list[MemoryRecord]:
        """Records carrying a tag, newest first."""
        ...

    @abstractmethod
    async def pending_embeddings(self, limit: int) -> list[MemoryRecord]:
        """Records that have no embedding yet."""
        ...

    @abstractmethod
    async def set_embedding(self, memory_id: str, vector: Vector) -> None:
        """Attach an embedding to an existing record."""
        ...

    async def backfill_embeddings(self, batch_size: int = 10) -> BackfillResult:
        """Embed up to batch_size records that lack a vector.

        A failure on one record is logged and skipped; the rest of the batch
        still runs. Selecting the batch itself may raise PersistenceError.
        """
        if self.embedder is None:
            raise RuntimeError("No embedding provider configured for backfill")

        pending = await self.pending_embeddings(batch_size)
        processed = 0
        for record in pending:
            try:
                vector = await self.embedder.embed(record.content)
                await self.set_embedding(record.id, vector)
                processed += 1
            except Exception as e:
                logger.warning(f"Failed to embed {record.id}: {e}")

        logger.info(f"Backfill processed {processed}/{len(pending)}")
        return BackfillResult(processed=processed, total=len(pending))
