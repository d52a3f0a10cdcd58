"""
Sliding-window rate limiter for order submissions.

The limiter keeps the timestamps of accepted requests in order. Each call to
try_acquire() first drops timestamps that have left the window, then admits
the request only if fewer than max_requests remain.

State is in-memory and per-process: it resets on restart and is not shared
between workers.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """Admit at most max_requests calls in any rolling time_window (ms)."""

    def __init__(
        self,
        max_requests: int,
        time_window: int,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if time_window <= 0:
            raise ValueError("time_window must be positive")

        self.max_requests = max_requests
        self.time_window = time_window
        self._clock = clock or _monotonic_ms
        self._requests: Deque[float] = deque()
        self._lock = threading.Lock()

    def _purge(self, now: float) -> None:
        while self._requests and now - self._requests[0] >= self.time_window:
            self._requests.popleft()

    def try_acquire(self) -> bool:
        """Record a request and return True if it fits in the window."""
        with self._lock:
            now = self._clock()
            self._purge(now)

            if len(self._requests) >= self.max_requests:
                logger.warning(
                    "Rate limit reached: %d requests in the last %d ms",
                    len(self._requests),
                    self.time_window,
                )
                return False

            self._requests.append(now)
            return True

    def time_to_next_available(self) -> int:
        """Milliseconds until the oldest retained request expires (0 if none)."""
        with self._lock:
            if not self._requests:
                return 0
            now = self._clock()
            remaining = self.time_window - (now - self._requests[0])
            return max(0, int(remaining))

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)
