"""Webhook message pipeline.

Orchestrates the three stages for one inbound message using direct
function calls.

Pipeline stages:
1. Classify (commands, greetings, domain keywords, product intent)
2. Rate limit per chat (completion-bound messages only)
3. Enrich (product page scrape or site search, static facts)
4. Respond (completion request, fallback, profanity substitution)
5. Deliver (single send attempt to Telegram)
6. Audit log

Every message yields exactly one OutboundReply; failures collapse into
canned replies and are never relayed verbatim to the user.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.models import (
    AuditEvent,
    AuditEventType,
    InboundMessage,
    OutboundReply,
    ReplyKind,
    RiskLevel,
)
from src.webhook.models import WebhookResult
from src.webhook.telegram import DeliveryError

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.classifier.classifier import MessageClassifier
    from src.enricher.enricher import ProductEnricher
    from src.responder.responder import Responder
    from src.webhook.rate_limiter import ChatRateLimiter
    from src.webhook.telegram import TelegramRelay

logger = logging.getLogger(__name__)


class WebhookPipeline:
    """Classifier -> Enricher -> Responder, then delivery."""

    def __init__(
        self,
        classifier: MessageClassifier,
        enricher: ProductEnricher,
        responder: Responder,
        relay: TelegramRelay,
        rate_limiter: ChatRateLimiter | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._classifier = classifier
        self._enricher = enricher
        self._responder = responder
        self._relay = relay
        self._rate_limiter = rate_limiter
        self._audit = audit_logger

    async def handle(self, message: InboundMessage) -> OutboundReply:
        """Produce exactly one reply for the message."""
        try:
            reply = await self._handle(message)
        except Exception as exc:
            logger.exception("Unhandled pipeline error for chat %s", message.chat_id)
            self._log(
                AuditEventType.PIPELINE_ERROR, message,
                result="failure", risk_level=RiskLevel.HIGH,
                details={"error": type(exc).__name__},
            )
            reply = self._responder.canned(ReplyKind.INTERNAL_ERROR)
        else:
            # Responder only yields INTERNAL_ERROR for a failed completion
            if reply.kind == ReplyKind.INTERNAL_ERROR:
                self._log(
                    AuditEventType.COMPLETION_FAILURE, message,
                    result="failure", risk_level=RiskLevel.MEDIUM,
                )
        self._log(
            AuditEventType.MESSAGE_HANDLED, message,
            result="success", details={"reply_kind": reply.kind.value},
        )
        return reply

    async def _handle(self, message: InboundMessage) -> OutboundReply:
        classification = self._classifier.classify(message.text)
        logger.info(
            "Chat %s classified in_domain=%s signal=%s",
            message.chat_id, classification.in_domain, classification.matched_signal,
        )

        canned = self._responder.short_circuit(classification)
        if canned is not None:
            return canned

        if self._rate_limiter and not self._rate_limiter.allow(message.chat_id):
            self._log(
                AuditEventType.RATE_LIMITED, message,
                result="skipped", risk_level=RiskLevel.LOW,
            )
            return self._responder.canned(ReplyKind.RATE_LIMITED)

        await self._relay.send_chat_action(message.chat_id)
        context = await self._enricher.enrich(message.text, classification)
        return await self._responder.respond(message.text, classification, context)

    async def deliver(self, message: InboundMessage, reply: OutboundReply) -> bool:
        """Send the reply once; failures are logged, never retried."""
        try:
            await self._relay.send_response(message.chat_id, reply)
            return True
        except DeliveryError as exc:
            logger.error("Delivery to chat %s failed: %s", message.chat_id, exc)
            self._log(
                AuditEventType.DELIVERY_FAILURE, message,
                result="failure", risk_level=RiskLevel.MEDIUM,
                details={"reply_kind": reply.kind.value},
            )
            return False

    async def process(self, message: InboundMessage) -> WebhookResult:
        """Handle and deliver; 500 only when an error apology itself failed to send."""
        reply = await self.handle(message)
        delivered = await self.deliver(message, reply)
        status_code = 200
        if not delivered and reply.kind == ReplyKind.INTERNAL_ERROR:
            status_code = 500
        return WebhookResult(reply=reply, delivered=delivered, status_code=status_code)

    def _log(
        self,
        event_type: AuditEventType,
        message: InboundMessage,
        result: str,
        risk_level: RiskLevel = RiskLevel.INFO,
        details: dict[str, object] | None = None,
    ) -> None:
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=event_type,
                chat_id=str(message.chat_id),
                action="webhook_message",
                result=result,
                risk_level=risk_level,
                details=details,
            ))
