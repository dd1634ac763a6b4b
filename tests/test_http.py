"""Tests for the HTTP interface."""

from pathlib import Path

import httpx
import pytest

from brainstem.agents.service import CapabilityService
from brainstem.cache.memory import InMemoryCache
from brainstem.core.policy import Policy
from brainstem.dispatch.client import DispatchClient
from brainstem.escalation.router import EscalationRouter
from brainstem.interfaces.http import create_app
from brainstem.memory.base import MemoryRecord
from brainstem.memory.store import SQLiteMemoryStore
from brainstem.sync.coordinator import SyncCoordinator
from brainstem.tracing.trace import TraceRecorder


@pytest.fixture
async def memory_store(tmp_path: Path):
    store = SQLiteMemoryStore(tmp_path / "http.db")
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
async def client(memory_store):
    policy = Policy()
    tracer = TraceRecorder(memory_store)
    service = CapabilityService(
        store=memory_store,
        coordinator=SyncCoordinator(memory_store, InMemoryCache(), tracer, policy),
        router=EscalationRouter([], policy),
        tracer=tracer,
        policy=policy,
    )
    transport = httpx.ASGITransport(app=create_app(service))
    async with httpx.AsyncClient(transport=transport, base_url="http://brainstem.test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_empty_body_runs_default_action(client):
    response = await client.post("/functions/v1/sync")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "complete"
    assert body["action"] == "sync_all"


@pytest.mark.asyncio
async def test_memory_search(client, memory_store):
    await memory_store.write(MemoryRecord(content="JOB ALERT: Widget Co", importance=7))

    response = await client.post("/functions/v1/memory", json={"query": "widget"})

    assert response.status_code == 200
    assert response.json()["data"]["results"][0]["content"] == "JOB ALERT: Widget Co"


@pytest.mark.asyncio
async def test_malformed_json_is_skipped(client):
    response = await client.post(
        "/functions/v1/memory",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "skipped"


@pytest.mark.asyncio
async def test_unknown_capability_is_500(client):
    response = await client.post("/functions/v1/nope", json={})
    assert response.status_code == 500
    assert response.json() == {
        "agent": "NOPE",
        "status": "error",
        "error": "Unknown capability: nope",
    }


@pytest.mark.asyncio
async def test_dispatch_client_against_app(client):
    """One agent calling another through the same contract."""
    dispatcher = DispatchClient("http://brainstem.test", client=client)
    result = await dispatcher.dispatch("SYNC", {"content": "restore please"}, {"action": "restore"})

    assert result["status"] == "complete"
    assert result["action"] == "restore"
    assert result["data"] == {"state": None, "agents": None, "traces": None}


@pytest.mark.asyncio
@pytest.mark.parametrize("literal,expected", [(b"Infinity", 10), (b"-Infinity", 1), (b"NaN", 5)])
async def test_write_non_finite_importance_is_clamped(client, memory_store, literal, expected):
    response = await client.post(
        "/functions/v1/memory",
        content=b'{"action": "write", "content": "overflow", "importance": ' + literal + b"}",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "complete"
    assert body["data"]["importance"] == expected
    stored = await memory_store.get(body["data"]["id"])
    assert stored.importance == expected


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path,error",
    [
        ("GET", "/functions/v1/sync", "Method Not Allowed"),
        ("POST", "/functions/v1", "Not Found"),
        ("GET", "/missing", "Not Found"),
        ("POST", "/health", "Method Not Allowed"),
    ],
)
async def test_routing_failures_use_error_envelope(client, method, path, error):
    response = await client.request(method, path)
    assert response.status_code == 500
    assert response.json() == {"status": "error", "error": error}
