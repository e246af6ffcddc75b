"""Tests for prompt composition and reply post-processing."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models import (
    ClassificationResult,
    EnrichmentContext,
    ProductSnippet,
    ReplyKind,
)
from src.responder.completion import CompletionClient, CompletionError
from src.responder.replies import ReplyCatalog
from src.responder.responder import Responder, build_messages
from tests.conftest import make_classification


def _responder(catalog: ReplyCatalog, content: object = "A fine answer.") -> Responder:
    client = MagicMock(spec=CompletionClient)
    if isinstance(content, Exception):
        client.complete = AsyncMock(side_effect=content)
    else:
        client.complete = AsyncMock(return_value=content)
    return Responder(client, catalog)


class TestBuildMessages:
    def test_empty_context_has_only_system_and_user(self) -> None:
        messages = build_messages("persona", "hello", EnrichmentContext())
        assert messages == [
            {"role": "system", "content": "persona"},
            {"role": "user", "content": "hello"},
        ]

    def test_context_blocks_in_order(self) -> None:
        context = EnrichmentContext(
            scraped_products=[ProductSnippet(source_url="https://a", title="Blender")],
            search_results=[ProductSnippet(source_url="https://b", title="Phone X")],
            static_facts={"returns": "7 days"},
        )
        messages = build_messages("persona", "question", context)

        assert [m["role"] for m in messages] == ["system"] * 4 + ["user"]
        assert "Blender" in messages[1]["content"]
        assert "Phone X" in messages[2]["content"]
        assert "7 days" in messages[3]["content"]
        assert messages[-1]["content"] == "question"

    def test_missing_snippet_fields_are_omitted(self) -> None:
        context = EnrichmentContext(
            scraped_products=[ProductSnippet(source_url="https://a", error="Could not fetch")],
        )
        block = build_messages("p", "q", context)[1]["content"]
        assert '"error": "Could not fetch"' in block
        assert "title" not in block

    def test_empty_search_results_are_omitted(self) -> None:
        messages = build_messages("p", "q", EnrichmentContext(search_results=[]))
        assert len(messages) == 2


class TestShortCircuit:
    @pytest.mark.asyncio
    async def test_greeting_returns_canned_greeting(self, reply_catalog: ReplyCatalog) -> None:
        responder = _responder(reply_catalog)
        reply = await responder.respond(
            "hi",
            ClassificationResult(in_domain=True, is_greeting=True),
            EnrichmentContext(),
        )
        assert reply.text == reply_catalog.replies.greeting
        assert reply.kind == ReplyKind.GREETING
        responder._client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_out_of_domain_skips_completion(self, reply_catalog: ReplyCatalog) -> None:
        responder = _responder(reply_catalog)
        reply = await responder.respond(
            "random", ClassificationResult(in_domain=False), EnrichmentContext(),
        )
        assert reply.text == reply_catalog.replies.out_of_domain
        assert reply.kind == ReplyKind.OUT_OF_DOMAIN
        responder._client.complete.assert_not_called()

    @pytest.mark.parametrize("command", ["start", "help"])
    def test_commands(self, reply_catalog: ReplyCatalog, command: str) -> None:
        reply = _responder(reply_catalog).short_circuit(
            ClassificationResult(in_domain=True, command=command),
        )
        assert reply is not None
        assert reply.text == getattr(reply_catalog.replies, command)
        assert reply.kind == ReplyKind.COMMAND

    def test_in_domain_needs_completion(self, reply_catalog: ReplyCatalog) -> None:
        assert _responder(reply_catalog).short_circuit(make_classification()) is None


class TestCompletionPath:
    @pytest.mark.asyncio
    async def test_answer_is_cleaned(self, reply_catalog: ReplyCatalog) -> None:
        responder = _responder(reply_catalog, "  Damn, that's a good deal.  ")
        reply = await responder.respond("q", make_classification(), EnrichmentContext())
        assert reply.text == "darn, that's a good deal."
        assert reply.kind == ReplyKind.ANSWER

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "   "])
    async def test_missing_content_uses_fallback(
        self, reply_catalog: ReplyCatalog, content: object,
    ) -> None:
        responder = _responder(reply_catalog, content)
        reply = await responder.respond("q", make_classification(), EnrichmentContext())
        assert reply.text == reply_catalog.replies.fallback
        assert reply.kind == ReplyKind.FALLBACK

    @pytest.mark.asyncio
    async def test_completion_error_becomes_apology(self, reply_catalog: ReplyCatalog) -> None:
        responder = _responder(
            reply_catalog, CompletionError("HTTP 500: upstream secret detail"),
        )
        reply = await responder.respond("q", make_classification(), EnrichmentContext())
        assert reply.text == reply_catalog.replies.internal_error
        assert "secret" not in reply.text
        assert reply.kind == ReplyKind.INTERNAL_ERROR

    @pytest.mark.asyncio
    async def test_prompt_includes_context(self, reply_catalog: ReplyCatalog) -> None:
        responder = _responder(reply_catalog)
        context = EnrichmentContext(
            search_results=[ProductSnippet(source_url="https://b", title="Phone X")],
        )
        await responder.respond("phones?", make_classification(), context)

        messages = responder._client.complete.call_args[0][0]
        assert messages[0]["content"] == reply_catalog.system_prompt
        assert any("Phone X" in m["content"] for m in messages)
        assert messages[-1] == {"role": "user", "content": "phones?"}
