"""Shared test fixtures for the shop assistant webhook."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.audit.logger import AuditLogger
from src.classifier.classifier import Vocabulary
from src.config import Settings
from src.enricher.extraction import EnrichmentConfig
from src.models import ClassificationResult, InboundMessage
from src.responder.replies import ReplyCatalog

CONFIG_DIR = Path(__file__).parent.parent / "config"

SEARCH_PAGE_HTML = """
<html><body>
  <article class="prd">
    <a class="core" href="/tecno-spark-20-128gb-123.html">
      <h3 class="name">Tecno Spark 20 128GB</h3>
      <div class="prc">₦ 145,000</div>
    </a>
  </article>
  <article class="prd">
    <a class="core" href="https://www.jumia.com.ng/itel-a70-456.html">
      <h3 class="name">Itel A70 64GB</h3>
      <div class="prc">₦ 89,500</div>
    </a>
  </article>
</body></html>
"""

PRODUCT_PAGE_HTML = """
<html><head><meta property="og:title" content="OG Blender"></head><body>
  <h1>Binatone Blender 1.5L</h1>
  <div class="-fs24"><span>₦ 32,000</span></div>
  <p data-testid="stock-availability">In stock</p>
</body></html>
"""


@pytest.fixture
def config_dir() -> Path:
    return CONFIG_DIR


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def vocabulary() -> Vocabulary:
    return Vocabulary.from_file(str(CONFIG_DIR / "vocabulary.json"))


@pytest.fixture
def enrichment_config() -> EnrichmentConfig:
    return EnrichmentConfig.from_file(str(CONFIG_DIR / "enrichment.json"))


@pytest.fixture
def reply_catalog() -> ReplyCatalog:
    return ReplyCatalog.from_file(str(CONFIG_DIR / "replies.json"))


# --- Factory functions for test data ---


def make_settings(**kwargs: Any) -> Settings:
    """Factory for Settings pointing at the repository config files."""
    defaults: dict[str, Any] = {
        "telegram_bot_token": "123:ABC",
        "completion_api_key": "fw-test-key",
        "completion_base_url": "https://llm.test/v1",
        "vocabulary_path": str(CONFIG_DIR / "vocabulary.json"),
        "enrichment_config_path": str(CONFIG_DIR / "enrichment.json"),
        "replies_path": str(CONFIG_DIR / "replies.json"),
    }
    defaults.update(kwargs)
    return Settings(**defaults)


def make_inbound_message(**kwargs: Any) -> InboundMessage:
    """Factory for InboundMessage with sensible defaults."""
    defaults: dict[str, Any] = {
        "text": "what is the price of a phone",
        "chat_id": 12345,
        "sender_name": "Ada",
        "update_id": 1,
    }
    defaults.update(kwargs)
    return InboundMessage(**defaults)


def make_classification(**kwargs: Any) -> ClassificationResult:
    """Factory for an in-domain ClassificationResult."""
    defaults: dict[str, Any] = {
        "in_domain": True,
        "matched_signal": "keyword:order",
        "product_intent": False,
    }
    defaults.update(kwargs)
    return ClassificationResult(**defaults)


def make_telegram_update(
    update_id: int = 1,
    text: str | None = "hello",
    chat_id: int = 12345,
    first_name: str | None = "Ada",
) -> dict[str, Any]:
    message: dict[str, Any] = {"message_id": 1, "chat": {"id": chat_id}}
    if text is not None:
        message["text"] = text
    if first_name is not None:
        message["from"] = {"id": 1, "first_name": first_name}
    return {"update_id": update_id, "message": message}
