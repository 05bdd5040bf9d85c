"""Per-client fixed-window request throttle."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class RateWindow:
    """Requests observed from one key since `window_start`."""

    count: int
    window_start: float


class FixedWindowRateLimiter:
    """Allow at most `limit` requests per key in each `window_seconds` window.

    Stale windows are reset lazily on the next request from the same key and
    removed for good by `purge`, which the cleanup sweeper calls.
    """

    def __init__(
        self,
        limit: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Record a request from `key` and return whether it may proceed."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now - window.window_start >= self.window_seconds:
                self._windows[key] = RateWindow(count=1, window_start=now)
                return True
            if window.count >= self.limit:
                return False
            window.count += 1
            return True

    def purge(self) -> int:
        """Drop windows that have fully elapsed; return how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [
                key
                for key, window in self._windows.items()
                if now - window.window_start >= self.window_seconds
            ]
            for key in stale:
                del self._windows[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
