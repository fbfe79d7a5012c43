"""
Call Quota - fixed-window budget for outbound API calls.

Catalog plans are metered per day (TMDB free tier: 1000 calls/day on the plan
this service was sized for). A CallQuota instance is owned by the client that
spends it; the clock is injected so window rollover can be driven in tests.

Usage:
    quota = CallQuota(limit=1000, window_seconds=24 * 60 * 60)
    if not quota.try_acquire():
        raise UpstreamError("daily quota exhausted")
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from utils.get_logger import get_logger

logger = get_logger(__name__)

ONE_DAY_SECONDS = 24 * 60 * 60


class CallQuota:
    """Fixed-window call counter with an injectable clock."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = ONE_DAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 0:
            raise ValueError("limit must be >= 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._used = 0
        self._window_start = clock()

    def _roll_window(self) -> None:
        now = self._clock()
        if now - self._window_start >= self.window_seconds:
            if self._used:
                logger.debug(f"Quota window rolled over after {self._used} calls")
            self._used = 0
            self._window_start = now

    def try_acquire(self, count: int = 1) -> bool:
        """Consume `count` calls if the current window still has room."""
        with self._lock:
            self._roll_window()
            if self._used + count > self.limit:
                return False
            self._used += count
            return True

    def remaining(self) -> int:
        with self._lock:
            self._roll_window()
            return max(0, self.limit - self._used)

    def seconds_until_reset(self) -> float:
        with self._lock:
            self._roll_window()
            return max(0.0, self.window_seconds - (self._clock() - self._window_start))

    def reset(self) -> None:
        with self._lock:
            self._used = 0
            self._window_start = self._clock()
