"""Status reporting - agents tell the coordinator how each request went."""

from datetime import datetime, timezone
from typing import Any

import httpx

from brainstem.core.best_effort import best_effort
from brainstem.core.logging import get_logger

logger = get_logger("dispatch.report")


class StatusReporter:
    """Posts {agent, status, data, timestamp} to the report endpoint."""

    def __init__(
        self,
        report_url: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.report_url = report_url
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _post(self, payload: dict[str, Any]) -> bool:
        response = await self.client.post(self.report_url, json=payload)
        response.raise_for_status()
        return True

    async def report(self, agent_id: str, status: str, data: Any) -> bool:
        """Send a report. Never raises; no-op when unconfigured."""
        if not self.report_url:
            return False

        payload = {
            "agent": agent_id,
            "status": status,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        return bool(await best_effort(f"[{agent_id}] Status report", self._post(payload), False))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
