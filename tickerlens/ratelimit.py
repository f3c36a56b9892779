"""Sliding-window request limiter for outbound API calls."""

from __future__ import annotations

import time
from collections import deque
from typing import Callable

from cachetools import TTLCache


class RateLimiter:
    """
    Per-key sliding window.

    Buckets live in a TTLCache bounded to ``max_keys`` entries; a bucket that
    has seen no request for a whole window holds nothing useful and expires.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        max_keys: int = 1000,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        # {key: deque[timestamp, ...]}
        self._requests: TTLCache[str, deque[float]] = TTLCache(
            maxsize=max_keys, ttl=window, timer=clock
        )

    def _prune(self, key: str) -> deque[float]:
        stamps = self._requests.get(key)
        if stamps is None:
            stamps = deque()
        cutoff = self._clock() - self.window
        while stamps and stamps[0] <= cutoff:
            stamps.popleft()
        return stamps

    def is_allowed(self, key: str = "default") -> bool:
        """Record a request for *key* and return True, or False if the window is full."""
        stamps = self._prune(key)
        if len(stamps) >= self.max_requests:
            return False
        stamps.append(self._clock())
        # Re-inserting restarts the bucket's TTL from this request.
        self._requests[key] = stamps
        return True

    def remaining(self, key: str = "default") -> int:
        return max(0, self.max_requests - len(self._prune(key)))

    def tracked_keys(self) -> int:
        self._requests.expire()
        return len(self._requests)

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._requests.clear()
        else:
            self._requests.pop(key, None)
