"""
Base API Client - shared GET transport for catalog services.

Catalog clients inherit from BaseAPIClient and send every request through
_core_async_request, which layers in-flight deduplication, throttling and
retries over a plain aiohttp GET.
"""

import asyncio
import json
import os
import random
import sys
import weakref
from typing import Any

import aiohttp

from utils.get_logger import get_logger
from utils.rate_limiter import get_rate_limiter

logger = get_logger(__name__)

# Unit tests mock the session, so throttling only slows them down; integration
# runs hit the real API and keep it.
_IS_TEST_ENV = os.getenv("ENVIRONMENT", "").lower() == "test"
_IS_INTEGRATION_TEST = any("integration" in arg.lower() for arg in sys.argv if "test" in arg.lower())
_SKIP_RATE_LIMITING = _IS_TEST_ENV and not _IS_INTEGRATION_TEST

MAX_RATE_LIMIT_RETRIES = 10
DEFAULT_RETRY_AFTER = 2.0


class NoOpRateLimiter:
    """Async context manager that never waits."""

    async def __aenter__(self) -> Any:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        return None


async def _drain(response: aiohttp.ClientResponse) -> None:
    """Consume the body so the connection is released cleanly."""
    try:
        await response.read()
    except aiohttp.ClientError as e:
        logger.debug(f"Could not drain response body: {e}")


def _retry_after_seconds(response: aiohttp.ClientResponse) -> float:
    try:
        return float(response.headers.get("Retry-After", DEFAULT_RETRY_AFTER))
    except ValueError:
        return DEFAULT_RETRY_AFTER


def _request_key(url: str, params: dict[str, Any] | None, headers: dict[str, Any] | None) -> str:
    return "|".join(
        ["GET", url, json.dumps(params or {}, sort_keys=True), json.dumps(headers or {}, sort_keys=True)]
    )


class BaseAPIClient:
    """
    Base class for API clients.

    Identical concurrent GETs share one in-flight task. Each (rate, period)
    configuration shares an aiolimiter limiter and a concurrency semaphore per
    event loop, so a wide fan-out cannot exceed the upstream window.
    """

    _pending_requests: dict[str, asyncio.Task] = {}
    # Held weakly by loop; entries go away when their loop does
    _pending_locks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()
    # loop -> (rate_limit_max, rate_limit_period) -> semaphore
    _concurrency_semaphores: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    @classmethod
    def _get_pending_lock(cls) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        lock = cls._pending_locks.get(loop)
        if lock is None:
            lock = cls._pending_locks[loop] = asyncio.Lock()
        return lock

    @classmethod
    def _get_concurrency_semaphore(cls, rate_limit_max: int, rate_limit_period: float) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        semaphores = cls._concurrency_semaphores.setdefault(loop, {})
        key = (rate_limit_max, rate_limit_period)
        if key not in semaphores:
            semaphores[key] = asyncio.Semaphore(rate_limit_max)
        return semaphores[key]

    def _throttles(self, rate_limit_max: int, rate_limit_period: float) -> tuple[Any, Any]:
        """(concurrency semaphore, rate limiter) for one request."""
        if _SKIP_RATE_LIMITING:
            return NoOpRateLimiter(), NoOpRateLimiter()
        return (
            self._get_concurrency_semaphore(rate_limit_max, rate_limit_period),
            get_rate_limiter(rate_limit_max, rate_limit_period),
        )

    async def _get_with_retries(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, Any] | None,
        timeout: int,
        max_retries: int,
        rate_limit_max: int,
        rate_limit_period: float,
    ) -> tuple[Any, int]:
        """
        GET until a terminal answer.

        Returns (json, 200) on success, (None, status) for a 4xx or for a 5xx
        that outlived max_retries. 429 sleeps Retry-After plus jitter and does
        not use up an attempt. Network errors back off like 5xx; the last one
        is raised.
        """
        semaphore, limiter = self._throttles(rate_limit_max, rate_limit_period)
        request_timeout = aiohttp.ClientTimeout(total=timeout)
        throttled = 0
        failures = 0
        status = 500

        while failures < max_retries:
            try:
                async with (
                    semaphore,
                    limiter,
                    aiohttp.ClientSession() as session,
                    session.get(url, headers=headers, params=params, timeout=request_timeout) as response,
                ):
                    status = response.status
                    if status == 200:
                        return await response.json(), status
                    await _drain(response)

                    if status == 429:
                        throttled += 1
                        if throttled > MAX_RATE_LIMIT_RETRIES:
                            logger.error(
                                f"Gave up on {url} after {MAX_RATE_LIMIT_RETRIES} rate-limit waits"
                            )
                            return None, status
                        wait = _retry_after_seconds(response) + random.uniform(0.1, 0.5)
                        logger.warning(
                            f"429 from {url}, waiting {wait:.2f}s "
                            f"({throttled}/{MAX_RATE_LIMIT_RETRIES})"
                        )
                        await asyncio.sleep(wait)
                        continue

                    if status == 404:
                        logger.debug(f"404 for {url}")
                        return None, status
                    logger.warning(f"API returned status {status} for {url}")
                    if status < 500:
                        return None, status
            except (TimeoutError, aiohttp.ClientError) as e:
                if failures + 1 >= max_retries:
                    logger.error(f"Request to {url} failed after {max_retries} attempts: {e}")
                    raise

            failures += 1
            if failures < max_retries:
                await asyncio.sleep(2 ** (failures - 1))

        return None, status

    async def _core_async_request(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
        timeout: int = 30,
        max_retries: int = 3,
        rate_limit_max: int = 10,
        rate_limit_period: float = 1.0,
        return_status_code: bool = False,
    ) -> Any:
        """
        Deduplicated, throttled HTTP GET.

        Args:
            url: Full URL to request
            params: Optional query parameters
            headers: Optional HTTP headers
            timeout: Request timeout in seconds
            max_retries: Maximum attempts for 5xx/network failures
            rate_limit_max: Maximum requests per period
            rate_limit_period: Period length in seconds
            return_status_code: Return (json | None, status) instead of json | None

        Returns:
            Parsed JSON, or None when the request did not succeed.
        """
        key = _request_key(url, params, headers)
        lock = self._get_pending_lock()

        async def _fetch_data() -> tuple[Any, int]:
            try:
                return await self._get_with_retries(
                    url, params, headers, timeout, max_retries, rate_limit_max, rate_limit_period
                )
            finally:
                async with lock:
                    self._pending_requests.pop(key, None)

        async with lock:
            task = self._pending_requests.get(key)
            if task is None:
                task = self._pending_requests[key] = asyncio.create_task(_fetch_data())

        data, status = await task
        return (data, status) if return_status_code else data
