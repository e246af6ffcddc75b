"""Inbound message classification.

This module provides the MessageClassifier class for:
- Detecting bot commands (/start, /help)
- Short-circuiting greetings and politeness phrases
- Matching domain keywords (first match in list order wins)
- Flagging product intent from a phrase list OR a noun list

Matching is plain substring containment with no scoring, weighting or
negation handling, so "I hate buying things" is still in-domain.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from src.models import ClassificationResult

_COMMANDS = ("start", "help")


class Vocabulary(BaseModel):
    """Versioned keyword and phrase lists injected into the classifier."""

    model_config = ConfigDict(frozen=True)

    version: int
    greetings: list[str]
    domain_keywords: list[str]
    intent_phrases: list[str]
    product_nouns: list[str]

    @classmethod
    def from_file(cls, path: str) -> Vocabulary:
        """Load a vocabulary from a JSON config file.

        Raises:
            FileNotFoundError: If the config file doesn't exist.
            ValueError: If the config file is invalid or missing keys.
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Vocabulary config not found: {path}")

        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in vocabulary config: {e}") from e

        required_keys = {
            "version", "greetings", "domain_keywords",
            "intent_phrases", "product_nouns",
        }
        missing = required_keys - set(raw.keys())
        if missing:
            raise ValueError(f"Missing required keys in vocabulary config: {missing}")

        return cls.model_validate(raw)


class MessageClassifier:
    """Decides whether an inbound text is in-domain for the shop assistant."""

    def __init__(self, vocabulary: Vocabulary) -> None:
        self.vocabulary = vocabulary
        # Lowercase once for case-insensitive matching
        self._keywords = [k.lower() for k in vocabulary.domain_keywords]
        self._intent_phrases = [p.lower() for p in vocabulary.intent_phrases]
        self._nouns = [n.lower() for n in vocabulary.product_nouns]
        self._greetings = [
            (g, re.compile(rf"\b{re.escape(g.lower())}\b"))
            for g in vocabulary.greetings
        ]

    def classify(self, text: str) -> ClassificationResult:
        normalized = text.strip().lower()

        command = self._match_command(normalized)
        if command:
            return ClassificationResult(
                in_domain=True,
                matched_signal=f"command:{command}",
                command=command,
            )

        for phrase, pattern in self._greetings:
            if pattern.search(normalized):
                return ClassificationResult(
                    in_domain=True,
                    matched_signal=f"greeting:{phrase}",
                    is_greeting=True,
                )

        intent_signal = self._match_product_intent(normalized)

        for keyword in self._keywords:
            if keyword in normalized:
                return ClassificationResult(
                    in_domain=True,
                    matched_signal=f"keyword:{keyword}",
                    product_intent=intent_signal is not None,
                )

        if intent_signal is not None:
            return ClassificationResult(
                in_domain=True,
                matched_signal=intent_signal,
                product_intent=True,
            )

        return ClassificationResult(in_domain=False)

    @staticmethod
    def _match_command(normalized: str) -> str | None:
        if not normalized.startswith("/"):
            return None
        # "/start@MyBot payload" -> "start"
        head = normalized[1:].split(maxsplit=1)[0] if len(normalized) > 1 else ""
        name = head.split("@", 1)[0]
        return name if name in _COMMANDS else None

    def _match_product_intent(self, normalized: str) -> str | None:
        for phrase in self._intent_phrases:
            if phrase in normalized:
                return f"intent:{phrase}"
        for noun in self._nouns:
            if noun in normalized:
                return f"noun:{noun}"
        return None
