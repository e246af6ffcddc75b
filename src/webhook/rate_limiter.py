"""In-memory sliding window rate limiter keyed by chat."""

from __future__ import annotations

import time


class ChatRateLimiter:
    """Caps completion-bound messages per chat within a sliding window.

    State lives in process memory only; separate workers count separately.
    """

    def __init__(self, max_messages: int = 20, window_seconds: int = 60) -> None:
        self._max_messages = max_messages
        self._window_seconds = window_seconds
        self._seen: dict[str, list[float]] = {}
        self._last_sweep = 0.0

    def allow(self, chat_id: int | str) -> bool:
        """Return True and record the message if the chat is under its limit."""
        key = str(chat_id)
        now = time.monotonic()
        cutoff = now - self._window_seconds
        self._sweep(now, cutoff)
        recent = [t for t in self._seen.get(key, []) if t > cutoff]

        if not recent:
            self._seen.pop(key, None)

        if len(recent) >= self._max_messages:
            self._seen[key] = recent
            return False

        recent.append(now)
        self._seen[key] = recent
        return True

    def _sweep(self, now: float, cutoff: float) -> None:
        # Drop chats that went quiet; at most one full pass per window
        if now - self._last_sweep < self._window_seconds:
            return
        self._last_sweep = now
        idle = [key for key, stamps in self._seen.items() if stamps[-1] <= cutoff]
        for key in idle:
            del self._seen[key]
