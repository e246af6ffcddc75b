"""Shared Pydantic data models for the shop assistant webhook."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class ReplyFormat(str, Enum):
    PLAIN = "plain"
    MARKUP = "markup"


class ReplyKind(str, Enum):
    ANSWER = "answer"
    GREETING = "greeting"
    COMMAND = "command"
    OUT_OF_DOMAIN = "out_of_domain"
    INTERNAL_ERROR = "internal_error"
    FALLBACK = "fallback"
    RATE_LIMITED = "rate_limited"


class AuditEventType(str, Enum):
    MESSAGE_HANDLED = "message_handled"
    AUTH_FAILURE = "auth_failure"
    COMPLETION_FAILURE = "completion_failure"
    DELIVERY_FAILURE = "delivery_failure"
    DUPLICATE_UPDATE = "duplicate_update"
    PIPELINE_ERROR = "pipeline_error"
    RATE_LIMITED = "rate_limited"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Pipeline Models ---


class InboundMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    chat_id: int | str
    sender_name: str | None = None
    update_id: int | None = None


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    in_domain: bool
    matched_signal: str | None = None
    is_greeting: bool = False
    product_intent: bool = False
    command: str | None = None  # "start" | "help"


class ProductSnippet(BaseModel):
    """Best-effort record of a scraped product; any field may be missing."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    title: str | None = None
    price: str | None = None
    availability: str | None = None
    error: str | None = None


class EnrichmentContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    scraped_products: list[ProductSnippet] = Field(default_factory=list)
    search_results: list[ProductSnippet] | None = None
    static_facts: dict[str, str] | None = None

    @property
    def is_empty(self) -> bool:
        return (
            not self.scraped_products
            and not self.search_results
            and not self.static_facts
        )


class OutboundReply(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1)
    formatting: ReplyFormat = ReplyFormat.PLAIN
    kind: ReplyKind = ReplyKind.ANSWER


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    chat_id: str | None = None
    action: str
    result: str  # "success" | "failure" | "skipped"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
