"""Short-lived duplicate delivery detection for Telegram updates.

Telegram redelivers an update when the webhook is slow to acknowledge it.
Each update_id is remembered for a fixed window so a redelivery is
acknowledged without producing a second reply.
"""

from __future__ import annotations

import time


class UpdateDeduplicator:
    """Remembers recently seen update ids in process memory."""

    def __init__(self, window_seconds: int = 300) -> None:
        self._window_seconds = window_seconds
        self._seen: dict[int, float] = {}

    @property
    def enabled(self) -> bool:
        return self._window_seconds > 0

    def first_delivery(self, update_id: int | None) -> bool:
        """Return True if update_id was not seen within the window.

        Updates without an id are always treated as new.
        """
        if update_id is None or not self.enabled:
            return True

        now = time.monotonic()
        self._prune(now)
        if update_id in self._seen:
            return False
        self._seen[update_id] = now
        return True

    def _prune(self, now: float) -> None:
        cutoff = now - self._window_seconds
        expired = [uid for uid, seen_at in self._seen.items() if seen_at <= cutoff]
        for uid in expired:
            del self._seen[uid]

    def forget(self, update_id: int | None) -> None:
        """Drop update_id so a redelivery is processed again.

        Called when the webhook answers 5xx, since Telegram then redelivers.
        """
        if update_id is not None:
            self._seen.pop(update_id, None)
