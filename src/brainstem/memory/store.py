"""SQLite memory store with FTS5 text search and cosine vector search."""

import json
import math
import re
import sqlite3
from dataclasses import replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from uuid import uuid4

import aiosqlite

from brainstem.core.errors import PersistenceError
from brainstem.core.logging import get_logger
from brainstem.llm.embeddings import EmbeddingProvider
from brainstem.memory.base import (
    MemoryRecord,
    MemoryStore,
    MemoryType,
    SemanticMatch,
    clamp_importance,
    unique,
)

logger = get_logger("memory.store")


def _adapt_datetime(dt: datetime) -> str:
    """Convert datetime to fixed-width ISO string so text order is time order."""
    return dt.isoformat(timespec="microseconds")


def _convert_datetime(val: bytes) -> datetime:
    """Convert ISO format string from SQLite to datetime."""
    return datetime.fromisoformat(val.decode())


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("DATETIME", _convert_datetime)


@lru_cache(maxsize=4096)
def _decode_vector(payload: str) -> tuple[float, ...]:
    return tuple(float(x) for x in json.loads(payload))


def _cosine_similarity(a: str | None, b: str | None) -> float | None:
    """SQL function: cosine similarity of two JSON vectors, NULL if undefined."""
    if a is None or b is None:
        return None
    try:
        u = _decode_vector(a)
        v = _decode_vector(b)
    except (ValueError, TypeError):
        return None
    if not u or len(u) != len(v):
        return None

    norm_u = math.sqrt(sum(x * x for x in u))
    norm_v = math.sqrt(sum(x * x for x in v))
    if norm_u == 0 or norm_v == 0:
        return None
    return sum(x * y for x, y in zip(u, v)) / (norm_u * norm_v)


SCHEMA = """
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    content TEXT NOT NULL,
    memory_type TEXT NOT NULL,
    categories TEXT NOT NULL DEFAULT '[]',  -- JSON array
    importance INTEGER NOT NULL CHECK (importance BETWEEN 1 AND 10),
    is_system INTEGER NOT NULL DEFAULT 0,
    source TEXT NOT NULL DEFAULT '',
    tags TEXT NOT NULL DEFAULT '[]',  -- JSON array
    embedding TEXT,  -- JSON array, NULL until backfilled
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_memories_type ON memories(memory_type);
CREATE INDEX IF NOT EXISTS idx_memories_pending
    ON memories(created_at) WHERE embedding IS NULL;

CREATE VIRTUAL TABLE IF NOT EXISTS memory_fts USING fts5(
    id UNINDEXED,
    content,
    tokenize='porter'
);

CREATE TRIGGER IF NOT EXISTS memories_ai AFTER INSERT ON memories BEGIN
    INSERT INTO memory_fts(id, content) VALUES (new.id, new.content);
END;

-- Append-only: rows are never deleted, and only the embedding may change
CREATE TRIGGER IF NOT EXISTS memories_no_delete BEFORE DELETE ON memories BEGIN
    SELECT RAISE(ABORT, 'memories are append-only');
END;

CREATE TRIGGER IF NOT EXISTS memories_immutable
BEFORE UPDATE OF id, content, memory_type, categories, importance, is_system,
                 source, tags, created_at, updated_at ON memories BEGIN
    SELECT RAISE(ABORT, 'only the embedding of a memory may change');
END;
"""

COLUMNS = (
    "id",
    "content",
    "memory_type",
    "categories",
    "importance",
    "is_system",
    "source",
    "tags",
    "embedding",
    "created_at",
    "updated_at",
)
SELECT_COLUMNS = ", ".join(f"m.{c}" for c in COLUMNS)

# Ranking contract for text search, independent of the matching engine
TEXT_RANK = "m.importance DESC, m.created_at DESC, m.rowid DESC"


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class SQLiteMemoryStore(MemoryStore):
    """SQLite-backed memory store with FTS5 search."""

    def __init__(self, db_path: Path, embedder: EmbeddingProvider | None = None):
        super().__init__(embedder)
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection, schema and SQL functions."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(
            self.db_path,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        )
        await self._conn.executescript(SCHEMA)
        await self._conn.create_function(
            "cosine_similarity", 2, _cosine_similarity, deterministic=True
        )
        await self._conn.commit()
        logger.info(f"Connected to memory store: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise PersistenceError("Memory store not connected. Call connect() first.")
        return self._conn

    async def _fetchall(self, sql: str, params) -> list[tuple]:
        try:
            async with self.conn.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except (sqlite3.Error, ValueError) as e:
            raise PersistenceError(f"Memory read failed: {e}") from e

    @staticmethod
    def _row_to_record(row: tuple) -> MemoryRecord:
        return MemoryRecord(
            id=row[0],
            content=row[1],
            memory_type=MemoryType(row[2]),
            categories=json.loads(row[3]),
            importance=row[4],
            is_system=bool(row[5]),
            source=row[6],
            tags=json.loads(row[7]),
            embedding=list(_decode_vector(row[8])) if row[8] else None,
            created_at=_as_datetime(row[9]),
            updated_at=_as_datetime(row[10]),
        )

    # Writes

    async def write(self, record: MemoryRecord) -> MemoryRecord:
        """Append a record. Importance is clamped into [1, 10]."""
        now = datetime.now(timezone.utc)
        stored = replace(
            record,
            id=uuid4().hex,
            categories=unique(record.categories),
            tags=unique(record.tags),
            importance=clamp_importance(record.importance),
            created_at=now,
            updated_at=now,
        )

        try:
            await self.conn.execute(
                f"INSERT INTO memories ({', '.join(COLUMNS)}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    stored.id,
                    stored.content,
                    stored.memory_type.value,
                    json.dumps(stored.categories),
                    stored.importance,
                    int(stored.is_system),
                    stored.source,
                    json.dumps(stored.tags),
                    json.dumps(stored.embedding) if stored.embedding is not None else None,
                    stored.created_at,
                    stored.updated_at,
                ),
            )
            await self.conn.commit()
        except (sqlite3.Error, ValueError) as e:
            raise PersistenceError(f"Memory write rejected: {e}") from e

        logger.debug(f"Stored memory {stored.id} ({stored.memory_type.value}, importance {stored.importance})")
        return stored

    async def set_embedding(self, memory_id: str, vector: list[float]) -> None:
        """Attach an embedding. The only update the schema allows."""
        try:
            await self.conn.execute(
                "UPDATE memories SET embedding = ? WHERE id = ?",
                (json.dumps(vector), memory_id),
            )
            await self.conn.commit()
        except (sqlite3.Error, ValueError) as e:
            raise PersistenceError(f"Embedding update rejected for {memory_id}: {e}") from e

    # Reads

    async def get(self, memory_id: str) -> MemoryRecord | None:
        """Get specific record by ID."""
        rows = await self._fetchall(
            f"SELECT {SELECT_COLUMNS} FROM memories m WHERE m.id = ?", (memory_id,)
        )
        return self._row_to_record(rows[0]) if rows else None

    @staticmethod
    def _escape_fts_query(query: str) -> str:
        """Quote every term so punctuation and FTS5 operators are literal."""
        terms = [t for t in re.split(r"\s+", query.strip()) if any(ch.isalnum() for ch in t)]
        return " ".join('"' + t.replace('"', '""') + '"' for t in terms)

    async def text_search(self, query: str, limit: int = 10) -> list[MemoryRecord]:
        """Full-text search ranked by importance, then recency."""
        fts_query = self._escape_fts_query(query)
        if not fts_query:
            return []

        sql = f"""
            SELECT {SELECT_COLUMNS}
            FROM memory_fts
            JOIN memories m ON m.id = memory_fts.id
            WHERE memory_fts MATCH ?
            ORDER BY {TEXT_RANK}
            LIMIT ?
        """
        try:
            async with self.conn.execute(sql, (fts_query, limit)) as cursor:
                rows = list(await cursor.fetchall())
        except sqlite3.OperationalError as e:
            logger.warning(f"FTS search failed, falling back to LIKE: {e}")
            rows = await self._fetchall(
                f"SELECT {SELECT_COLUMNS} FROM memories m "
                f"WHERE m.content LIKE ? ORDER BY {TEXT_RANK} LIMIT ?",
                (f"%{query.strip()}%", limit),
            )
        except ValueError as e:
            raise PersistenceError(f"Memory read failed: {e}") from e

        logger.debug(f"Text search returned {len(rows)} results for query: {query}")
        return [self._row_to_record(r) for r in rows]

    async def semantic_search(
        self,
        vector: list[float],
        limit: int = 10,
        threshold: float = 0.5,
    ) -> list[SemanticMatch]:
        """Cosine search over records that have an embedding."""
        rows = await self._fetchall(
            f"""
            SELECT {SELECT_COLUMNS},
                   cosine_similarity(m.embedding, :query_embedding) AS similarity
            FROM memories m
            WHERE m.embedding IS NOT NULL
              AND cosine_similarity(m.embedding, :query_embedding) >= :match_threshold
            ORDER BY similarity DESC, {TEXT_RANK}
            LIMIT :match_count
            """,
            {
                "query_embedding": json.dumps(vector),
                "match_threshold": threshold,
                "match_count": limit,
            },
        )
        return [SemanticMatch(record=self._row_to_record(r), similarity=r[-1]) for r in rows]

    async def list_by_type(self, memory_type: MemoryType, limit: int = 100) -> list[MemoryRecord]:
        rows = await self._fetchall(
            f"SELECT {SELECT_COLUMNS} FROM memories m WHERE m.memory_type = ? "
            f"ORDER BY {TEXT_RANK} LIMIT ?",
            (memory_type.value, limit),
        )
        return [self._row_to_record(r) for r in rows]

    async def recent_with_tag(self, tag: str, limit: int = 100) -> list[MemoryRecord]:
        rows = await self._fetchall(
            f"""
            SELECT {SELECT_COLUMNS} FROM memories m
            WHERE EXISTS (SELECT 1 FROM json_each(m.tags) WHERE json_each.value = ?)
            ORDER BY m.created_at DESC, m.rowid DESC
            LIMIT ?
            """,
            (tag, limit),
        )
        return [self._row_to_record(r) for r in rows]

    async def pending_embeddings(self, limit: int) -> list[MemoryRecord]:
        rows = await self._fetchall(
            f"SELECT {SELECT_COLUMNS} FROM memories m WHERE m.embedding IS NULL "
            "ORDER BY m.created_at, m.rowid LIMIT ?",
            (limit,),
        )
        return [self._row_to_record(r) for r in rows]
