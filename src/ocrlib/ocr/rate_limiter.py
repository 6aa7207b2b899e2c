"""Sliding-window admission control for OCR requests.

Hard-caps the number of requests admitted within any trailing window.
This is not a token bucket: bursts inside the window are not smoothed,
only the total count is limited.
"""

from __future__ import annotations

import collections
import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Local request budget of *max_requests* per *window_seconds*.

    The window is shared by every call made through the owning client, so
    the prune/check/append sequence runs under a lock.  The critical
    section never awaits, which also keeps it atomic for coroutines
    interleaved on one event loop.

    Usage::

        limiter = SlidingWindowRateLimiter(max_requests=10, window_seconds=60)
        if not limiter.can_make_request():
            wait = limiter.time_until_next_request()
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError(f"max_requests must be >= 1, got {max_requests}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {window_seconds}")
        self._max_requests = max_requests
        self._window_seconds = float(window_seconds)
        self._clock = clock
        self._requests: collections.deque[float] = collections.deque()
        self._lock = threading.Lock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def in_flight(self) -> int:
        """Number of admitted requests still inside the window."""
        with self._lock:
            self._prune(self._clock())
            return len(self._requests)

    def can_make_request(self) -> bool:
        """Admit and record a request if the window has room.

        Returns:
            ``True`` if the request was admitted (its timestamp is now
            recorded), ``False`` if the budget is exhausted.  A denial only
            prunes expired timestamps.
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._requests) >= self._max_requests:
                logger.debug(
                    "Rate limiter: denied (%d/%d in %.1fs window)",
                    len(self._requests),
                    self._max_requests,
                    self._window_seconds,
                )
                return False
            self._requests.append(now)
            return True

    def time_until_next_request(self) -> float:
        """Seconds until the oldest admitted request leaves the window.

        Returns ``0.0`` when a request could be admitted right now.
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._requests) < self._max_requests:
                return 0.0
            oldest = self._requests[0]
            return max(0.0, self._window_seconds - (now - oldest))

    def reset(self) -> None:
        """Forget all recorded requests."""
        with self._lock:
            self._requests.clear()

    def _prune(self, now: float) -> None:
        # Timestamps are appended in clock order, so expired ones are at the left.
        while self._requests and now - self._requests[0] >= self._window_seconds:
            self._requests.popleft()
