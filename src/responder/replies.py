"""Canned replies, persona prompt and profanity mapping loaded from config."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class CannedReplies(BaseModel):
    model_config = ConfigDict(frozen=True)

    greeting: str = Field(min_length=1)
    start: str = Field(min_length=1)
    help: str = Field(min_length=1)
    out_of_domain: str = Field(min_length=1)
    internal_error: str = Field(min_length=1)
    fallback: str = Field(min_length=1)
    rate_limited: str = Field(min_length=1)


class ReplyCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: int
    system_prompt: str
    replies: CannedReplies
    # JSON object order is the replacement order
    profanity: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str) -> ReplyCatalog:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Replies config not found: {path}")
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in replies config: {e}") from e
        return cls.model_validate(raw)
