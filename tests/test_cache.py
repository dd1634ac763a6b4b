"""Tests for cache layers."""

import json

import httpx
import pytest

from brainstem.cache.base import CacheKey
from brainstem.cache.memory import InMemoryCache
from brainstem.cache.upstash import UpstashCache


class FakeRedis:
    """Minimal Upstash REST endpoint backed by a dict."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        command = parts[0]

        if command == "set":
            self.values[parts[1]] = request.content.decode()
            return httpx.Response(200, json={"result": "OK"})
        if command == "expire":
            self.ttls[parts[1]] = int(parts[2])
            return httpx.Response(200, json={"result": 1})
        if command == "get":
            return httpx.Response(200, json={"result": self.values.get(parts[1])})
        return httpx.Response(400, json={"error": f"unknown command {command}"})


@pytest.fixture
def redis():
    return FakeRedis()


@pytest.fixture
async def upstash(redis):
    client = httpx.AsyncClient(base_url="https://cache.test", transport=httpx.MockTransport(redis))
    cache = UpstashCache("https://cache.test", "token", client=client)
    yield cache
    await cache.close()


@pytest.mark.asyncio
async def test_upstash_set_then_get(upstash, redis):
    assert await upstash.set(CacheKey.AGENTS, {"agent_count": 3}, 300)
    assert await upstash.get(CacheKey.AGENTS) == {"agent_count": 3}

    assert json.loads(redis.values[CacheKey.AGENTS.value]) == {"agent_count": 3}
    assert redis.ttls[CacheKey.AGENTS.value] == 300


@pytest.mark.asyncio
async def test_upstash_set_without_ttl_skips_expire(upstash, redis):
    await upstash.set(CacheKey.STATE, {"ok": True}, 0)
    assert CacheKey.STATE.value not in redis.ttls


@pytest.mark.asyncio
async def test_upstash_miss_is_none(upstash):
    assert await upstash.get(CacheKey.TRACES) is None


@pytest.mark.asyncio
async def test_upstash_unreachable():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(base_url="https://cache.test", transport=httpx.MockTransport(refuse))
    cache = UpstashCache("https://cache.test", "token", client=client)

    assert await cache.set(CacheKey.AGENTS, {"agent_count": 1}, 300) is False
    assert await cache.get(CacheKey.AGENTS) is None
    await cache.close()


@pytest.mark.asyncio
async def test_upstash_error_body():
    def reject(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "WRONGPASS invalid password"})

    client = httpx.AsyncClient(base_url="https://cache.test", transport=httpx.MockTransport(reject))
    cache = UpstashCache("https://cache.test", "token", client=client)

    assert await cache.set(CacheKey.AGENTS, {"agent_count": 1}, 300) is False
    await cache.close()


@pytest.mark.asyncio
async def test_upstash_undecodable_payload(upstash, redis):
    redis.values[CacheKey.STATE.value] = "not json {"
    assert await upstash.get(CacheKey.STATE) is None


@pytest.mark.asyncio
async def test_upstash_unconfigured():
    cache = UpstashCache("", "")
    assert cache.configured is False
    assert await cache.set(CacheKey.AGENTS, {}, 300) is False
    assert await cache.get(CacheKey.AGENTS) is None


@pytest.mark.asyncio
async def test_in_memory_round_trip():
    cache = InMemoryCache()
    value = {"traces": [{"content": "a"}]}
    await cache.set(CacheKey.TRACES, value, 600)

    restored = await cache.get(CacheKey.TRACES)
    assert restored == value
    restored["traces"].append({"content": "b"})
    assert await cache.get(CacheKey.TRACES) == value


@pytest.mark.asyncio
async def test_in_memory_expiry():
    clock = [1000.0]
    cache = InMemoryCache(clock=lambda: clock[0])
    await cache.set(CacheKey.AGENTS, {"agent_count": 2}, 300)
    assert cache.ttl(CacheKey.AGENTS) == pytest.approx(300)

    clock[0] += 301
    assert await cache.get(CacheKey.AGENTS) is None
