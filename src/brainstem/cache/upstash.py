"""Redis REST cache (Upstash-compatible) over httpx.

Wire contract:
- SET:    POST {url}/set/{key}            body = JSON-encoded value
- EXPIRE: POST {url}/expire/{key}/{ttl}
- GET:    GET  {url}/get/{key}            -> {"result": "<json>" | null}
"""

import json
from typing import Any

import httpx

from brainstem.cache.base import CacheKey, CacheLayer
from brainstem.core.logging import get_logger
from brainstem.core.typing import JSONDict

logger = get_logger("cache.upstash")


class UpstashCache(CacheLayer):
    """Cache over a Redis REST endpoint."""

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.url and self.token)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        return self._client

    async def _command(self, method: str, path: str, content: str | None = None) -> Any:
        response = await self.client.request(method, path, content=content)
        response.raise_for_status()
        data = response.json()
        if isinstance(data, dict) and data.get("error"):
            raise httpx.HTTPError(f"Redis error: {data['error']}")
        return data.get("result") if isinstance(data, dict) else None

    async def set(self, key: CacheKey, value: JSONDict, ttl_seconds: int) -> bool:
        if not self.configured:
            return False

        key = CacheKey(key).value
        try:
            await self._command("POST", f"/set/{key}", content=json.dumps(value, default=str))
            if ttl_seconds > 0:
                await self._command("POST", f"/expire/{key}/{ttl_seconds}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Cache SET {key} failed: {e}")
            return False

        logger.debug(f"Cache SET {key} (ttl {ttl_seconds}s)")
        return True

    async def get(self, key: CacheKey) -> JSONDict | None:
        if not self.configured:
            return None

        key = CacheKey(key).value
        try:
            result = await self._command("GET", f"/get/{key}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Cache GET {key} failed: {e}")
            return None

        if result is None:
            return None
        try:
            return json.loads(result)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache GET {key} returned undecodable payload: {e}")
            return None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
