"""Client for an OpenAI-compatible chat-completions endpoint."""

from __future__ import annotations

import json
from typing import Any

import httpx


class CompletionError(Exception):
    """Raised when the completion endpoint fails or returns a non-JSON body."""


class CompletionClient:
    """Single non-streamed completion requests, no retries."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        max_tokens: int = 512,
        temperature: float | None = 0.4,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout_seconds
        self._transport = transport

    def build_request(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "max_tokens": self._max_tokens,
        }
        if self._temperature is not None:
            body["temperature"] = self._temperature
        return body

    async def complete(self, messages: list[dict[str, str]]) -> str | None:
        """Return the first choice's content, or None if the body lacks one.

        Raises:
            CompletionError: On transport failure, HTTP error status or
                a body that is not JSON.
        """
        url = f"{self._base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    url,
                    json=self.build_request(messages),
                    headers=headers,
                    timeout=self._timeout,
                )
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            raise CompletionError(f"Completion request failed: {exc!r}") from exc
        except json.JSONDecodeError as exc:
            raise CompletionError("Completion response is not JSON") from exc

        return _first_choice_content(payload)


def _first_choice_content(payload: object) -> str | None:
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None
