"""Prompt composition, completion call and reply post-processing."""

from __future__ import annotations

import asyncio
import json
import logging

from src.models import (
    ClassificationResult,
    EnrichmentContext,
    OutboundReply,
    ProductSnippet,
    ReplyFormat,
    ReplyKind,
)
from src.responder.completion import CompletionClient, CompletionError
from src.responder.replies import ReplyCatalog
from src.sanitizer.profanity import ProfanityFilter

logger = logging.getLogger(__name__)


def _dump_snippets(snippets: list[ProductSnippet]) -> str:
    return json.dumps(
        [s.model_dump(exclude_none=True) for s in snippets],
        indent=2,
        ensure_ascii=False,
    )


def build_messages(
    system_prompt: str, text: str, context: EnrichmentContext,
) -> list[dict[str, str]]:
    """Persona prompt, then one block per non-empty context part, then user text."""
    messages = [{"role": "system", "content": system_prompt}]

    if context.scraped_products:
        messages.append({
            "role": "system",
            "content": (
                "Scraped product info (use if helpful):\n"
                + _dump_snippets(context.scraped_products)
            ),
        })
    if context.search_results:
        messages.append({
            "role": "system",
            "content": (
                "Search results (use if helpful):\n"
                + _dump_snippets(context.search_results)
            ),
        })
    if context.static_facts:
        messages.append({
            "role": "system",
            "content": (
                "Store facts (authoritative):\n"
                + json.dumps(context.static_facts, indent=2, ensure_ascii=False)
            ),
        })

    messages.append({"role": "user", "content": text})
    return messages


class Responder:
    """Turns a classified, enriched message into exactly one OutboundReply."""

    def __init__(
        self,
        client: CompletionClient,
        catalog: ReplyCatalog,
        max_concurrent: int = 4,
        answer_format: ReplyFormat = ReplyFormat.PLAIN,
    ) -> None:
        self._client = client
        self._catalog = catalog
        self._profanity = ProfanityFilter(catalog.profanity)
        self._slots = asyncio.Semaphore(max_concurrent)
        self._answer_format = answer_format

    def canned(self, kind: ReplyKind, text: str | None = None) -> OutboundReply:
        replies = self._catalog.replies
        if text is None:
            text = {
                ReplyKind.GREETING: replies.greeting,
                ReplyKind.OUT_OF_DOMAIN: replies.out_of_domain,
                ReplyKind.INTERNAL_ERROR: replies.internal_error,
                ReplyKind.FALLBACK: replies.fallback,
                ReplyKind.RATE_LIMITED: replies.rate_limited,
            }[kind]
        return OutboundReply(text=text, kind=kind)

    def short_circuit(self, classification: ClassificationResult) -> OutboundReply | None:
        """Return a canned reply when no completion is needed, else None."""
        if classification.command == "start":
            return self.canned(ReplyKind.COMMAND, self._catalog.replies.start)
        if classification.command == "help":
            return self.canned(ReplyKind.COMMAND, self._catalog.replies.help)
        if classification.is_greeting:
            return self.canned(ReplyKind.GREETING)
        if not classification.in_domain:
            return self.canned(ReplyKind.OUT_OF_DOMAIN)
        return None

    async def respond(
        self,
        text: str,
        classification: ClassificationResult,
        context: EnrichmentContext,
    ) -> OutboundReply:
        canned = self.short_circuit(classification)
        if canned is not None:
            return canned

        messages = build_messages(self._catalog.system_prompt, text, context)
        try:
            async with self._slots:
                content = await self._client.complete(messages)
        except CompletionError as exc:
            logger.error("Completion failed: %s", exc)
            return self.canned(ReplyKind.INTERNAL_ERROR)

        content = self._profanity.clean((content or "").strip()).strip()
        if not content:
            return self.canned(ReplyKind.FALLBACK)

        return OutboundReply(
            text=content,
            formatting=self._answer_format,
            kind=ReplyKind.ANSWER,
        )
