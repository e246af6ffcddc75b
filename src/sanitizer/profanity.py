"""Profanity substitution for model replies."""

from __future__ import annotations

import re
from collections.abc import Mapping


class ProfanityFilter:
    """Replaces disallowed terms with polite substitutes.

    Terms are applied case-insensitively in mapping order. Overlapping terms
    are not special-cased: whichever is applied last wins.
    """

    def __init__(self, substitutions: Mapping[str, str]) -> None:
        self._compiled: list[tuple[str, re.Pattern[str], str]] = [
            (term, re.compile(re.escape(term), re.IGNORECASE), substitute)
            for term, substitute in substitutions.items()
            if term
        ]
        self._check_substitutes()

    def _check_substitutes(self) -> None:
        # A substitute containing a disallowed term would make clean() non-idempotent
        for _, _, substitute in self._compiled:
            hits = self.scan(substitute)
            if hits:
                raise ValueError(
                    f"Substitute {substitute!r} contains disallowed terms: {hits}"
                )

    def clean(self, text: str) -> str:
        for _, pattern, substitute in self._compiled:
            text = pattern.sub(substitute, text)
        return text

    def scan(self, text: str) -> list[str]:
        """Detect-only scan: returns matched terms without modifying text."""
        return [term for term, pattern, _ in self._compiled if pattern.search(text)]
