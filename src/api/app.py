"""FastAPI webhook application."""

from __future__ import annotations

import json
import logging

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from src.audit.logger import AuditLogger
from src.classifier.classifier import MessageClassifier, Vocabulary
from src.config import Settings
from src.enricher.enricher import ProductEnricher
from src.enricher.extraction import EnrichmentConfig
from src.logging_config import configure_logging
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.responder.completion import CompletionClient
from src.responder.replies import ReplyCatalog
from src.responder.responder import Responder
from src.webhook.dedup import UpdateDeduplicator
from src.webhook.pipeline import WebhookPipeline
from src.webhook.rate_limiter import ChatRateLimiter
from src.webhook.telegram import TelegramRelay

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook/telegram"
_HEALTH_TEXT = "Jumia Telegram Assistant (webhook) - OK"


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return create_app(settings)


def build_pipeline(
    settings: Settings,
    relay: TelegramRelay,
    audit_logger: AuditLogger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WebhookPipeline:
    """Wire the classifier, enricher and responder from settings and config files."""
    classifier = MessageClassifier(Vocabulary.from_file(settings.vocabulary_path))
    enricher = ProductEnricher(
        EnrichmentConfig.from_file(settings.enrichment_config_path),
        timeout_seconds=settings.fetch_timeout_seconds,
        transport=transport,
    )
    completion = CompletionClient(
        base_url=settings.completion_base_url,
        api_key=settings.completion_api_key,
        model=settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        timeout_seconds=settings.completion_timeout_seconds,
        transport=transport,
    )
    responder = Responder(
        completion,
        ReplyCatalog.from_file(settings.replies_path),
        max_concurrent=settings.max_concurrent_completions,
    )
    return WebhookPipeline(
        classifier=classifier,
        enricher=enricher,
        responder=responder,
        relay=relay,
        rate_limiter=ChatRateLimiter(
            max_messages=settings.chat_rate_limit,
            window_seconds=settings.chat_rate_window_seconds,
        ),
        audit_logger=audit_logger,
    )


def create_app(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the webhook app. ``transport`` replaces all outbound HTTP (tests)."""
    audit_logger = AuditLogger(settings.audit_log_path) if settings.audit_log_path else None
    relay = TelegramRelay(
        bot_token=settings.telegram_bot_token,
        webhook_secret=settings.webhook_secret,
        transport=transport,
    )
    pipeline = build_pipeline(settings, relay, audit_logger, transport)
    deduplicator = UpdateDeduplicator(settings.dedup_window_seconds)

    app = FastAPI(docs_url=None, redoc_url=None)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route(WEBHOOK_PATH, methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
    async def telegram_webhook(request: Request) -> Response:
        if request.method == "GET":
            return PlainTextResponse(_HEALTH_TEXT)
        if request.method != "POST":
            return PlainTextResponse(
                "Method Not Allowed", status_code=405, headers={"Allow": "POST"},
            )

        if not relay.verify_webhook(dict(request.headers)):
            logger.warning("Invalid webhook secret token")
            if audit_logger:
                audit_logger.log(AuditEvent(
                    event_type=AuditEventType.AUTH_FAILURE,
                    action=f"{request.method} {request.url.path}",
                    result="failure",
                    risk_level=RiskLevel.HIGH,
                    details={
                        "source_ip": request.client.host if request.client else None,
                    },
                ))
            return JSONResponse({"error": "Invalid webhook secret token"}, status_code=401)

        # Always acknowledge malformed updates so Telegram does not redeliver them
        try:
            update = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse({"ok": True, "status": "ignored"})
        if not isinstance(update, dict):
            return JSONResponse({"ok": True, "status": "ignored"})

        message = relay.extract_message(update)
        if message is None:
            return JSONResponse({"ok": True, "status": "ignored"})

        if not deduplicator.first_delivery(message.update_id):
            logger.info("Duplicate update %s ignored", message.update_id)
            if audit_logger:
                audit_logger.log(AuditEvent(
                    event_type=AuditEventType.DUPLICATE_UPDATE,
                    chat_id=str(message.chat_id),
                    action="webhook_message",
                    result="skipped",
                    risk_level=RiskLevel.LOW,
                    details={"update_id": message.update_id},
                ))
            return JSONResponse({"ok": True, "status": "duplicate"})

        # A 5xx makes Telegram redeliver, so the id must not block that retry
        try:
            result = await pipeline.process(message)
        except Exception:
            logger.exception("Webhook handler fault")
            deduplicator.forget(message.update_id)
            return JSONResponse({"error": "Bot error"}, status_code=500)

        if result.status_code >= 500:
            deduplicator.forget(message.update_id)

        return JSONResponse(
            {"ok": result.status_code == 200, "delivered": result.delivered},
            status_code=result.status_code,
        )

    return app
