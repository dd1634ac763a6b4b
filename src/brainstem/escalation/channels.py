"""Notification channels: SMS and escalation endpoints over HTTP, Telegram."""

import httpx
from telegram import Bot

from brainstem.core.logging import get_logger
from brainstem.escalation.base import EscalationEvent, NotificationChannel

logger = get_logger("escalation.channels")


class _HTTPChannel(NotificationChannel):
    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def _post(self, path: str, payload: dict) -> None:
        response = await self.client.post(path, json=payload)
        response.raise_for_status()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class SmsChannel(_HTTPChannel):
    """Direct delivery: POST {to, message} to the notification service."""

    name = "sms"
    max_length = 160

    def __init__(
        self,
        base_url: str,
        to: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(base_url, timeout, client)
        self.to = to

    async def deliver(self, event: EscalationEvent, message: str) -> None:
        await self._post("/api/sms/send", {"to": self.to, "message": message})
        logger.info(f"SMS alert sent to {self.to} from {event.source}")


class EscalationEndpointChannel(_HTTPChannel):
    """Generic escalation endpoint: POST {urgency, message, source}."""

    name = "escalate"
    max_length = 1500
    requires_urgency = True

    async def deliver(self, event: EscalationEvent, message: str) -> None:
        await self._post(
            "/api/escalate",
            {"urgency": event.urgency, "message": message, "source": event.source},
        )
        logger.info(f"Escalation posted from {event.source} (urgency {event.urgency})")


class TelegramChannel(NotificationChannel):
    """Alerts to the owner's Telegram chat."""

    name = "telegram"
    max_length = 4000

    def __init__(self, token: str, chat_id: int, bot: Bot | None = None):
        self.chat_id = chat_id
        self.bot = bot or Bot(token)

    async def deliver(self, event: EscalationEvent, message: str) -> None:
        async with self.bot:
            await self.bot.send_message(chat_id=self.chat_id, text=message)
        logger.info(f"Telegram alert sent from {event.source}")
