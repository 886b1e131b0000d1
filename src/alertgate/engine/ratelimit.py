"""Fixed-window rate limiter for dispatch attempts."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass
class RateLimitWindow:
    """Counter for one (endpoint, user) pair within the current window."""

    endpoint: str
    user_id: str
    window_start: float
    count: int = 0


class RateLimiter:
    """Counts attempts per (endpoint, user) in fixed windows.

    A window opens on the first call for a pair and is replaced wholesale
    once ``now - window_start > window_seconds``; there is no background
    sweep.  Increment and compare happen under one lock, so concurrent
    callers never lose an increment.
    """

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._lock = Lock()
        self._windows: dict[tuple[str, str], RateLimitWindow] = {}

    def allow(
        self,
        endpoint: str,
        user_id: str,
        max_requests: int,
        window_seconds: float,
    ) -> bool:
        """Count one attempt and return whether it is within the limit."""
        if max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        key = (endpoint, user_id)
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now - window.window_start > window_seconds:
                window = RateLimitWindow(
                    endpoint=endpoint, user_id=user_id, window_start=now
                )
                self._windows[key] = window
            window.count += 1
            count = window.count
        allowed = count <= max_requests

        if not allowed:
            logger.info(
                "rate limited endpoint=%s user=%s count=%d max=%d",
                endpoint,
                user_id,
                count,
                max_requests,
            )
        return allowed

    def reset(self) -> None:
        """Drop all windows (test helper)."""
        with self._lock:
            self._windows.clear()
