"""Simple in-memory fixed-window rate limiter."""

import time
from threading import Lock


class RateLimiter:
    """In-memory fixed-window rate limiter keyed by an arbitrary string.

    The first request for a key opens a window of ``window_seconds``; at most
    ``max_requests`` calls are allowed until the window expires. State lives in
    the process, so limits are per worker and best-effort only. Expired windows
    are swept from ``is_allowed`` at most once per ``window_seconds``.
    """

    def __init__(self, max_requests: int, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: dict[str, tuple[int, float]] = {}
        self._next_prune = 0.0
        self._lock = Lock()

    def is_allowed(self, key: str) -> bool:
        """Return True if the request is within the rate limit, False otherwise."""
        now = time.monotonic()

        with self._lock:
            if now >= self._next_prune:
                self._drop_expired(now)
                self._next_prune = now + self.window_seconds

            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                self._windows[key] = (1, now + self.window_seconds)
                return True

            if count >= self.max_requests:
                return False

            self._windows[key] = (count + 1, reset_at)
            return True

    def prune(self) -> int:
        """Drop expired windows. Returns the number of keys removed."""
        with self._lock:
            return self._drop_expired(time.monotonic())

    def _drop_expired(self, now: float) -> int:
        expired = [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def reset(self) -> None:
        """Clear all tracked state (useful for testing)."""
        with self._lock:
            self._windows.clear()
            self._next_prune = 0.0
