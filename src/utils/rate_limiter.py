"""
Request throttling for the catalog client.

aiolimiter's AsyncLimiter binds its waiters to the event loop it was first
awaited on. The search API and the test suite both create fresh loops
(uvicorn reloads, pytest-asyncio per-test loops), so limiters here are scoped
to one loop and rebuilt when that loop changes.

Usage:
    limiter = get_rate_limiter(max_rate=35, time_period=1)
    async with limiter:
        await session.get(...)
"""

from __future__ import annotations

import asyncio
import threading
import weakref
from typing import Any

from aiolimiter import AsyncLimiter

from utils.get_logger import get_logger

logger = get_logger(__name__)

_LOOP_ERROR_MARKERS = ("loop", "future", "task")

_registry_lock = threading.Lock()
# loop -> (max_rate, time_period) -> limiter, held weakly by loop
_limiters: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


def _current_loop() -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop


def _is_loop_error(error: RuntimeError) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _LOOP_ERROR_MARKERS)


class ResilientRateLimiter:
    """
    AsyncLimiter that follows the running event loop.

    An acquire that fails with a loop-binding RuntimeError rebuilds the limiter
    on the current loop and tries once more. Each task releases to the limiter
    that granted its slot, even if the limiter was rebuilt in between.
    """

    ACQUIRE_ATTEMPTS = 2

    def __init__(self, max_rate: int, time_period: float):
        self.max_rate = max_rate
        self.time_period = time_period
        self._limiter: AsyncLimiter | None = None
        self._loop_ref: weakref.ref[asyncio.AbstractEventLoop] | None = None
        self._grants_lock = threading.Lock()
        self._grants: weakref.WeakKeyDictionary[asyncio.Task[Any], AsyncLimiter] = (
            weakref.WeakKeyDictionary()
        )

    def _limiter_for_current_loop(self) -> AsyncLimiter:
        loop = _current_loop()
        bound = self._loop_ref() if self._loop_ref is not None else None
        if self._limiter is None or bound is not loop:
            self._limiter = AsyncLimiter(self.max_rate, self.time_period)
            self._loop_ref = weakref.ref(loop)
            logger.debug(f"New limiter on loop {id(loop)}: {self.max_rate}/{self.time_period}s")
        return self._limiter

    def _remember_grant(self, limiter: AsyncLimiter) -> None:
        task = asyncio.current_task()
        if task is not None:
            with self._grants_lock:
                self._grants[task] = limiter

    def _take_grant(self) -> AsyncLimiter | None:
        task = asyncio.current_task()
        if task is not None:
            with self._grants_lock:
                granted = self._grants.pop(task, None)
            if granted is not None:
                return granted
        return self._limiter

    async def __aenter__(self) -> ResilientRateLimiter:
        for attempt in range(1, self.ACQUIRE_ATTEMPTS + 1):
            limiter = self._limiter_for_current_loop()
            try:
                await limiter.__aenter__()
            except RuntimeError as e:
                if not _is_loop_error(e) or attempt == self.ACQUIRE_ATTEMPTS:
                    raise
                logger.warning(f"Limiter bound to a stale loop, rebuilding: {e}")
                self._limiter = None
                self._loop_ref = None
                continue
            self._remember_grant(limiter)
            return self
        raise RuntimeError("rate limiter acquire attempts exhausted")

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        limiter = self._take_grant()
        if limiter is None:
            return
        try:
            await limiter.__aexit__(exc_type, exc_val, exc_tb)
        except RuntimeError as e:
            logger.warning(f"Error releasing rate limiter: {e}")


def get_rate_limiter(max_rate: int, time_period: float = 1.0) -> ResilientRateLimiter:
    """
    Shared limiter for one rate configuration on the current event loop.

    Every client asking for the same (max_rate, time_period) on the same loop
    draws from the same budget.
    """
    key = (max_rate, time_period)
    loop = _current_loop()
    with _registry_lock:
        per_loop = _limiters.setdefault(loop, {})
        limiter = per_loop.get(key)
        if limiter is None:
            limiter = per_loop[key] = ResilientRateLimiter(max_rate, time_period)
            logger.info(f"Rate limiter registered: {max_rate} requests per {time_period}s")
    return limiter
