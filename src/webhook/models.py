"""Data models for the webhook pipeline."""

from __future__ import annotations

from dataclasses import dataclass

from src.models import OutboundReply


@dataclass
class WebhookResult:
    """Outcome of one webhook invocation, returned to the HTTP layer."""

    reply: OutboundReply
    delivered: bool
    status_code: int
