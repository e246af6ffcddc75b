"""Tests for the chat-completions client."""

from __future__ import annotations

import json

import httpx
import pytest

from src.responder.completion import CompletionClient, CompletionError

MESSAGES = [{"role": "user", "content": "hello"}]


def _client(handler, **kwargs) -> CompletionClient:
    defaults = {
        "base_url": "https://llm.test/v1/",
        "api_key": "fw-key",
        "model": "test-model",
        "max_tokens": 128,
        "temperature": 0.4,
    }
    defaults.update(kwargs)
    return CompletionClient(transport=httpx.MockTransport(handler), **defaults)


class TestRequestShape:
    @pytest.mark.asyncio
    async def test_posts_chat_completion_with_bearer_token(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"choices": [{"message": {"content": "hi"}}]})

        await _client(handler).complete(MESSAGES)

        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == "https://llm.test/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer fw-key"
        body = json.loads(request.content)
        assert body == {
            "model": "test-model",
            "messages": MESSAGES,
            "max_tokens": 128,
            "temperature": 0.4,
        }
        assert "stream" not in body

    def test_temperature_omitted_when_none(self) -> None:
        client = CompletionClient("https://llm.test", "k", "m", temperature=None)
        assert "temperature" not in client.build_request(MESSAGES)


class TestResponseParsing:
    @pytest.mark.asyncio
    async def test_returns_first_choice_content(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [
                {"message": {"content": "first"}},
                {"message": {"content": "second"}},
            ]})

        assert await _client(handler).complete(MESSAGES) == "first"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {},
        {"choices": []},
        {"choices": [{}]},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
        [],
    ])
    async def test_malformed_body_returns_none(self, payload: object) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        assert await _client(handler).complete(MESSAGES) is None


class TestFailures:
    @pytest.mark.asyncio
    async def test_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "internal secret detail"})

        with pytest.raises(CompletionError):
            await _client(handler).complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(CompletionError):
            await _client(handler).complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(CompletionError, match="not JSON"):
            await _client(handler).complete(MESSAGES)
