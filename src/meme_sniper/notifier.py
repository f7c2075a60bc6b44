"""Notification sinks for launch alerts.

A sink takes a fully rendered message plus optional link buttons and
delivers it to one recipient. Delivery failures are logged and reported
as ``False``; nothing here retries.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


@dataclass(frozen=True, slots=True)
class LinkButton:
    text: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "url": self.url}


ButtonRows = Sequence[Sequence[LinkButton]]


class NotificationSink(Protocol):
    async def send(self, recipient: str, text: str, buttons: ButtonRows | None = None) -> bool:
        ...


class LoggingNotifier:
    """Sink used when no chat transport is configured."""

    async def send(self, recipient: str, text: str, buttons: ButtonRows | None = None) -> bool:
        logger.info(f"Alert for {recipient or 'log'}:\n{text}")
        return True


class TelegramNotifier:
    """Delivers messages through the Telegram Bot API ``sendMessage`` method."""

    def __init__(
        self,
        token: str,
        timeout: float = 30.0,
        api_url: str = TELEGRAM_API_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is required (TELEGRAM_TOKEN)")
        self.base_url = f"{api_url.rstrip('/')}/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def build_payload(recipient: str, text: str, buttons: ButtonRows | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chat_id": recipient,
            "text": text,
            "parse_mode": "Markdown",
        }
        if buttons:
            payload["reply_markup"] = {
                "inline_keyboard": [[button.to_dict() for button in row] for row in buttons]
            }
        return payload

    async def send(self, recipient: str, text: str, buttons: ButtonRows | None = None) -> bool:
        payload = self.build_payload(recipient, text, buttons)
        try:
            response = await self._client.post(f"{self.base_url}/sendMessage", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Failed to send message to {recipient}: {e}")
            return False

        if response.is_success:
            return True
        logger.error(f"Failed to send message to {recipient}: HTTP {response.status_code} {response.text}")
        return False


async def broadcast(
    sink: NotificationSink,
    recipients: Iterable[str],
    text: str,
    buttons: ButtonRows | None = None,
) -> int:
    """Send the same message to every recipient, returning how many succeeded."""
    delivered = 0
    for recipient in recipients:
        if await sink.send(recipient, text, buttons):
            delivered += 1
    return delivered
