from __future__ import annotations

import logging
from typing import Any

import httpx

from recordwatch.core import metrics
from recordwatch.core.settings import Settings

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramNotifier:
    """Fire-and-forget delivery of plain text messages to one Telegram chat."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._http_client = http_client
        self._timeout = timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, *, http_client: httpx.AsyncClient | None = None
    ) -> TelegramNotifier | None:
        if not settings.notifications_enabled:
            logger.debug("Telegram bot token or chat id missing; notifications disabled")
            return None
        return cls(
            settings.telegram_bot_token,  # type: ignore[arg-type]
            settings.telegram_chat_id,  # type: ignore[arg-type]
            http_client=http_client,
        )

    @property
    def chat_id(self) -> str:
        return self._chat_id

    async def send_message(self, text: str) -> bool:
        url = f"{TELEGRAM_API_URL}/bot{self._bot_token}/sendMessage"
        payload: dict[str, Any] = {
            "chat_id": self._chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        try:
            if self._http_client is None:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=payload)
            else:
                response = await self._http_client.post(url, json=payload)
        except httpx.HTTPError as exc:
            metrics.increment("telegram.failed")
            logger.error("Telegram message to chat %s failed: %s", self._chat_id, exc)
            return False

        if response.status_code >= 400:
            metrics.increment("telegram.failed")
            logger.warning(
                "Telegram rejected message to chat %s with status %s: %s",
                self._chat_id,
                response.status_code,
                response.text,
            )
            return False

        metrics.increment("telegram.sent")
        return True


__all__ = ["TelegramNotifier"]
