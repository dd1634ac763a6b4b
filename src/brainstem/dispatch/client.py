"""Dispatch client - hand work to another agent over HTTP.

One synchronous POST per call. No retry and no circuit breaker: a failed
call fails the caller's operation.
"""

from typing import Any

import httpx

from brainstem.core.errors import UpstreamError
from brainstem.core.logging import get_logger

logger = get_logger("dispatch.client")


class DispatchClient:
    """Calls agent endpoints at {functions_url}/functions/v1/{agent}."""

    def __init__(
        self,
        functions_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.functions_url = functions_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
            self._client = httpx.AsyncClient(
                base_url=self.functions_url,
                headers=headers,
                timeout=self.timeout,
            )
        return self._client

    def endpoint(self, target_agent_id: str) -> str:
        return f"/functions/v1/{target_agent_id.lower()}"

    async def dispatch(self, target_agent_id: str, intent: Any, request: Any) -> Any:
        """Invoke target agent with {intent, request}; return its JSON unchanged."""
        if not self.functions_url:
            raise UpstreamError("Dispatch target URL not configured. Set BRAINSTEM_FUNCTIONS_URL")

        path = self.endpoint(target_agent_id)
        logger.debug(f"Dispatching to {target_agent_id}: {path}")

        try:
            response = await self.client.post(path, json={"intent": intent, "request": request})
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Dispatch to {target_agent_id} timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Dispatch to {target_agent_id} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                f"Dispatch to {target_agent_id} returned non-JSON (HTTP {response.status_code})"
            ) from e

        if not response.is_success:
            detail = data.get("error") if isinstance(data, dict) else None
            raise UpstreamError(
                f"Dispatch to {target_agent_id} failed with HTTP {response.status_code}: "
                f"{detail or response.reason_phrase}"
            )

        logger.info(f"Dispatched to {target_agent_id} (HTTP {response.status_code})")
        return data

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
