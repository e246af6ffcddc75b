"""Runtime settings, read once from the environment and passed explicitly."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MODEL = (
    "accounts/sentientfoundation-serverless/models/"
    "dobby-mini-unhinged-plus-llama-3-1-8b"
)
DEFAULT_COMPLETION_BASE_URL = "https://api.fireworks.ai/inference/v1"


class ConfigError(Exception):
    """Raised when required settings are missing from the environment."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required settings: {', '.join(missing)}")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    telegram_bot_token: str = Field(min_length=1)
    completion_api_key: str = Field(min_length=1)
    completion_base_url: str = DEFAULT_COMPLETION_BASE_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = Field(default=512, gt=0)
    temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    webhook_secret: str | None = None
    fetch_timeout_seconds: float = Field(default=8.0, gt=0, lt=10)
    completion_timeout_seconds: float = Field(default=30.0, gt=0)
    vocabulary_path: str = "config/vocabulary.json"
    enrichment_config_path: str = "config/enrichment.json"
    replies_path: str = "config/replies.json"
    audit_log_path: str | None = None
    chat_rate_limit: int = Field(default=20, gt=0)
    chat_rate_window_seconds: int = Field(default=60, gt=0)
    dedup_window_seconds: int = Field(default=300, ge=0)
    max_concurrent_completions: int = Field(default=4, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Raises:
            ConfigError: If the bot token or completion API key is absent.
            pydantic.ValidationError: If a value is out of range.
        """
        env = os.environ if environ is None else environ

        bot_token = env.get("TELEGRAM_BOT_TOKEN", "")
        api_key = env.get("COMPLETION_API_KEY") or env.get("FIREWORKS_API_KEY", "")
        missing = []
        if not bot_token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not api_key:
            missing.append("COMPLETION_API_KEY")
        if missing:
            raise ConfigError(missing)

        return cls(
            telegram_bot_token=bot_token,
            completion_api_key=api_key,
            completion_base_url=env.get(
                "COMPLETION_BASE_URL", DEFAULT_COMPLETION_BASE_URL,
            ),
            model=env.get("MODEL", DEFAULT_MODEL),
            max_tokens=int(env.get("MAX_TOKENS", "512")),
            temperature=float(env.get("TEMPERATURE", "0.4")),
            webhook_secret=env.get("WEBHOOK_SECRET") or None,
            fetch_timeout_seconds=float(env.get("FETCH_TIMEOUT_SECONDS", "8")),
            completion_timeout_seconds=float(
                env.get("COMPLETION_TIMEOUT_SECONDS", "30"),
            ),
            vocabulary_path=env.get("VOCABULARY_PATH", "config/vocabulary.json"),
            enrichment_config_path=env.get(
                "ENRICHMENT_CONFIG_PATH", "config/enrichment.json",
            ),
            replies_path=env.get("REPLIES_PATH", "config/replies.json"),
            audit_log_path=env.get("AUDIT_LOG_PATH") or None,
            chat_rate_limit=int(env.get("CHAT_RATE_LIMIT", "20")),
            chat_rate_window_seconds=int(env.get("CHAT_RATE_WINDOW_SECONDS", "60")),
            dedup_window_seconds=int(env.get("DEDUP_WINDOW_SECONDS", "300")),
            max_concurrent_completions=int(
                env.get("MAX_CONCURRENT_COMPLETIONS", "4"),
            ),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )


def webhook_registration_from_env(
    environ: Mapping[str, str] | None = None,
) -> tuple[str, str | None]:
    """Return (bot token, webhook secret) for registering the webhook.

    Registration needs neither the completion key nor the other settings.

    Raises:
        ConfigError: If the bot token is absent.
    """
    env = os.environ if environ is None else environ
    bot_token = env.get("TELEGRAM_BOT_TOKEN", "")
    if not bot_token:
        raise ConfigError(["TELEGRAM_BOT_TOKEN"])
    return bot_token, env.get("WEBHOOK_SECRET") or None
