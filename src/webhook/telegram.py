"""Telegram webhook relay.

Handles Telegram Bot API webhook updates: optional secret-token
verification, message extraction and reply delivery. Delivery is a
single attempt; there are no retries.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any

import httpx

from src.models import InboundMessage, OutboundReply, ReplyFormat

logger = logging.getLogger(__name__)

_TELEGRAM_API_BASE = "https://api.telegram.org"
_SECRET_HEADER = "x-telegram-bot-api-secret-token"


class DeliveryError(Exception):
    """Raised when a message could not be handed to the Telegram Bot API."""


class TelegramRelay:
    """Handles Telegram Bot API webhook updates."""

    def __init__(
        self,
        bot_token: str,
        webhook_secret: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bot_token = bot_token
        self._webhook_secret = webhook_secret
        self._timeout = timeout_seconds
        self._transport = transport

    def verify_webhook(self, headers: dict[str, str]) -> bool:
        """Verify the secret token header when a webhook secret is configured.

        Constant-time comparison via hmac.compare_digest.
        """
        if not self._webhook_secret:
            return True
        secret = headers.get(_SECRET_HEADER, "")
        if not secret:
            return False
        return hmac.compare_digest(secret.encode(), self._webhook_secret.encode())

    def extract_message(self, update: dict[str, Any]) -> InboundMessage | None:
        """Extract an InboundMessage, or None when there is no text message."""
        message = update.get("message")
        if not isinstance(message, dict):
            return None
        text = message.get("text")
        if not isinstance(text, str) or not text.strip():
            return None
        chat = message.get("chat")
        if not isinstance(chat, dict) or chat.get("id") is None:
            return None
        sender = message.get("from") or {}
        update_id = update.get("update_id")
        return InboundMessage(
            text=text.strip(),
            chat_id=chat["id"],
            sender_name=sender.get("first_name") if isinstance(sender, dict) else None,
            update_id=update_id if isinstance(update_id, int) else None,
        )

    def build_send_payload(
        self, chat_id: int | str, reply: OutboundReply,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": reply.text,
            "disable_web_page_preview": False,
        }
        if reply.formatting == ReplyFormat.MARKUP:
            payload["parse_mode"] = "Markdown"
        return payload

    async def send_response(self, chat_id: int | str, reply: OutboundReply) -> None:
        """Send a reply via the Telegram Bot API.

        Raises:
            DeliveryError: On transport failure or an error status.
        """
        await self._call(
            "sendMessage", self.build_send_payload(chat_id, reply),
        )

    async def send_chat_action(self, chat_id: int | str, action: str = "typing") -> None:
        """Best-effort chat action; failures are only logged."""
        try:
            await self._call("sendChatAction", {"chat_id": chat_id, "action": action})
        except DeliveryError as exc:
            logger.debug("sendChatAction failed: %s", exc)

    async def set_webhook(self, url: str) -> None:
        """Register the webhook URL, passing the shared secret when configured."""
        payload: dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if self._webhook_secret:
            payload["secret_token"] = self._webhook_secret
        await self._call("setWebhook", payload)

    async def _call(self, method: str, payload: dict[str, Any]) -> None:
        url = f"{_TELEGRAM_API_BASE}/bot{self._bot_token}/{method}"
        try:
            async with httpx.AsyncClient(
                verify=True, transport=self._transport,
            ) as client:
                resp = await client.post(url, json=payload, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"{method} failed: {exc!r}") from exc

        if resp.status_code >= 400:
            raise DeliveryError(f"{method} returned HTTP {resp.status_code}")
