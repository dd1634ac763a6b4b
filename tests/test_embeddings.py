"""Tests for embedding provider and backfill."""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from brainstem.core.errors import UpstreamError
from brainstem.llm import embeddings
from brainstem.llm.embeddings import MAX_EMBEDDING_INPUT, EmbeddingProvider, LiteLLMEmbeddingProvider
from brainstem.memory.base import MemoryRecord
from brainstem.memory.store import SQLiteMemoryStore


class FlakyEmbedder(EmbeddingProvider):
    """Fails on every content listed in `fail_on`."""

    dimensions = 3

    def __init__(self, fail_on: set[str] | None = None):
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise UpstreamError(f"provider refused {text}")
        return [1.0, 0.0, float(len(text))]


def _response(vector):
    return SimpleNamespace(data=[{"embedding": vector}])


@pytest.fixture
def fake_aembedding(monkeypatch):
    mock = AsyncMock(return_value=_response([0.1, 0.2, 0.3]))
    monkeypatch.setattr(embeddings, "aembedding", mock)
    return mock


@pytest.mark.asyncio
async def test_embed_returns_vector(fake_aembedding):
    provider = LiteLLMEmbeddingProvider(model="test-model", dimensions=3)
    vector = await provider.embed("hello")

    assert vector == [0.1, 0.2, 0.3]
    kwargs = fake_aembedding.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["input"] == ["hello"]
    assert kwargs["max_retries"] == 0


@pytest.mark.asyncio
async def test_embed_truncates_long_input(fake_aembedding):
    provider = LiteLLMEmbeddingProvider(dimensions=3)
    await provider.embed("x" * (MAX_EMBEDDING_INPUT + 500))

    sent = fake_aembedding.call_args.kwargs["input"][0]
    assert len(sent) == MAX_EMBEDDING_INPUT


@pytest.mark.asyncio
async def test_embed_accepts_object_items(monkeypatch):
    item = SimpleNamespace(embedding=[1, 2, 3])
    monkeypatch.setattr(
        embeddings, "aembedding", AsyncMock(return_value=SimpleNamespace(data=[item]))
    )
    provider = LiteLLMEmbeddingProvider(dimensions=3)
    assert await provider.embed("hi") == [1.0, 2.0, 3.0]


@pytest.mark.asyncio
async def test_embed_dimension_mismatch(fake_aembedding):
    provider = LiteLLMEmbeddingProvider(dimensions=1536)
    with pytest.raises(UpstreamError, match="dimensions"):
        await provider.embed("hello")


@pytest.mark.asyncio
async def test_embed_request_failure(monkeypatch):
    monkeypatch.setattr(
        embeddings, "aembedding", AsyncMock(side_effect=RuntimeError("rate limited"))
    )
    provider = LiteLLMEmbeddingProvider(dimensions=3)
    with pytest.raises(UpstreamError, match="rate limited"):
        await provider.embed("hello")


@pytest.mark.asyncio
async def test_embed_malformed_response(monkeypatch):
    monkeypatch.setattr(
        embeddings, "aembedding", AsyncMock(return_value=SimpleNamespace(data=[]))
    )
    provider = LiteLLMEmbeddingProvider(dimensions=3)
    with pytest.raises(UpstreamError, match="Malformed"):
        await provider.embed("hello")


# Backfill


@pytest.fixture
async def store_factory(tmp_path: Path):
    stores = []

    async def make(embedder):
        store = SQLiteMemoryStore(tmp_path / f"backfill_{len(stores)}.db", embedder=embedder)
        await store.connect()
        stores.append(store)
        return store

    yield make
    for store in stores:
        await store.close()


@pytest.mark.asyncio
async def test_backfill_partial_failure(store_factory):
    """3 of 10 failing calls: processed 7, total 10, no exception."""
    embedder = FlakyEmbedder(fail_on={"record 2", "record 5", "record 8"})
    store = await store_factory(embedder)
    for i in range(10):
        await store.write(MemoryRecord(content=f"record {i}"))

    result = await store.backfill_embeddings(10)

    assert result.to_dict() == {"processed": 7, "total": 10}
    pending = await store.pending_embeddings(10)
    assert sorted(r.content for r in pending) == ["record 2", "record 5", "record 8"]


@pytest.mark.asyncio
async def test_backfill_respects_batch_size(store_factory):
    store = await store_factory(FlakyEmbedder())
    for i in range(5):
        await store.write(MemoryRecord(content=f"record {i}"))

    result = await store.backfill_embeddings(2)
    assert result.to_dict() == {"processed": 2, "total": 2}
    assert len(await store.pending_embeddings(10)) == 3


@pytest.mark.asyncio
async def test_backfill_nothing_pending(store_factory):
    embedder = FlakyEmbedder()
    store = await store_factory(embedder)

    result = await store.backfill_embeddings(10)
    assert result.to_dict() == {"processed": 0, "total": 0}
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_backfill_without_embedder(store_factory):
    store = await store_factory(None)
    with pytest.raises(RuntimeError):
        await store.backfill_embeddings(10)
