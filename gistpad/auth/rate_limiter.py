"""Sliding-window limiter for failed sign-in attempts."""

from __future__ import annotations

import time

from gistpad.config import settings


class SignInRateLimiter:
    """In-memory sliding window rate limiter.

    Key is the normalized email address. Only failures are recorded; a
    successful sign-in clears the key.
    """

    def __init__(self, limit: int | None = None, window_seconds: float = 60.0):
        self.limit = limit or settings.sign_in_attempts_per_minute
        self.window_seconds = window_seconds
        self._windows: dict[str, list[float]] = {}

    def allow(self, key: str) -> bool:
        return len(self._prune(key, time.monotonic())) < self.limit

    def retry_after(self, key: str) -> int:
        now = time.monotonic()
        window = self._prune(key, now)
        if len(window) < self.limit:
            return 0
        return int(self.window_seconds - (now - window[0])) + 1

    def record_failure(self, key: str) -> None:
        self._windows.setdefault(key, []).append(time.monotonic())

    def reset(self, key: str) -> None:
        self._windows.pop(key, None)

    def _prune(self, key: str, now: float) -> list[float]:
        window = self._windows.get(key)
        if window is None:
            return []
        cutoff = now - self.window_seconds
        while window and window[0] < cutoff:
            window.pop(0)
        if not window:
            del self._windows[key]
        return window
