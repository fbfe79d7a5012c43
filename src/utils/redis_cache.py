"""
Redis-backed response cache for catalog requests.

Uses the SYNCHRONOUS redis client: reads and writes are ~1ms and avoid binding
connections to an event loop, so the decorated coroutine stays loop-agnostic.

Cache problems never fail a request. A Redis error on read is a miss and a
Redis error on write is dropped; exceptions raised by the wrapped function
itself propagate unchanged.
"""

import os
import pickle
import time
from dataclasses import dataclass, field
from functools import wraps
from hashlib import md5
from typing import Any, cast

from redis import Redis
from redis.exceptions import RedisError

from utils.get_logger import get_logger

CACHE_VERSION = "1.0.0"

# Cache is disabled in test environment unless explicitly enabled
DISABLE_CACHE = (
    os.getenv("ENVIRONMENT", "").lower() == "test"
    and os.getenv("ENABLE_CACHE_FOR_TESTS", "").lower() != "1"
)

RESERVED_KEYWORDS = ("no_cache", "no_cache_update", "expiry")


def disable_cache():
    global DISABLE_CACHE
    DISABLE_CACHE = True


@dataclass
class CacheEntry:
    expiry: float = 0
    data: Any = None
    key: str = ""
    function: str = ""
    version: str = CACHE_VERSION
    args: list[str] = field(default_factory=list)


_redis_client: Redis | None = None


def get_redis_client() -> Redis:
    """Singleton accessor for the synchronous Redis client."""
    global _redis_client
    if _redis_client is None:
        port_str = os.getenv("REDIS_PORT", "6379")
        try:
            port = int(port_str)
        except ValueError:
            raise RuntimeError(f"Invalid REDIS_PORT value: {port_str!r}")

        # decode_responses=False because values are pickled
        _redis_client = Redis(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=port,
            password=os.getenv("REDIS_PASSWORD"),
            decode_responses=False,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    return _redis_client


class RedisCache:
    """
    Prefix-scoped pickle cache with TTL and a version stamp.

    Entries written under a different CACHE_VERSION are treated as misses and
    removed on read, so a model change only needs a version bump.
    """

    def __init__(
        self,
        defaultTTL: int = 3600,
        prefix: str = "cache",
        verbose: bool = False,
        isClassMethod: bool = True,
        version: str = CACHE_VERSION,
    ) -> None:
        self.defaultTTL = defaultTTL
        self.prefix = prefix
        self.isClassMethod = isClassMethod
        self.version = version
        self.disableCache = False
        self.logging = get_logger(f"rediscache.{prefix}")
        if verbose:
            self.logging.setLevel("DEBUG")

    @property
    def _redis(self) -> Redis:
        return get_redis_client()

    def get_cache_key(self, fn: str, prefix: str = "", args=None, kwargs=None) -> str:
        """Build a stable key from the function name and its call arguments."""
        args = list(args or [])
        kwargs = kwargs or {}
        if self.isClassMethod:
            args = args[1:]

        func_keywords = {k: v for k, v in sorted(kwargs.items()) if k not in RESERVED_KEYWORDS}
        cache_key = fn
        if args or func_keywords:
            arg_str = "-".join(str(arg) for arg in args)
            cache_key = md5(f"{fn}_{func_keywords}{arg_str}".encode()).hexdigest()

        if prefix and not cache_key.startswith(prefix):
            cache_key = f"{prefix}_{cache_key}"
        return cache_key

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    def add(self, data: Any, cache_key: str, funcName: str, ttl: int) -> None:
        if data is None:
            return
        entry = CacheEntry(
            expiry=time.time() + ttl,
            data=data,
            key=cache_key,
            function=funcName,
            version=self.version,
        )
        try:
            payload = pickle.dumps(entry, protocol=pickle.HIGHEST_PROTOCOL)
            self._redis.set(self._full_key(cache_key), payload, ex=max(ttl, 1))
            self.logging.debug(f"Added to Redis: {cache_key} (ttl={ttl})")
        except (RedisError, pickle.PicklingError) as e:
            self.logging.warning(f"Redis add error for {cache_key}: {e}")

    def read(self, key: str) -> CacheEntry | None:
        try:
            raw = self._redis.get(self._full_key(key))
        except RedisError as e:
            self.logging.warning(f"Redis read failed for {key}: {e}")
            return None
        if raw is None:
            return None

        try:
            entry = pickle.loads(cast(bytes, raw))
        except (pickle.UnpicklingError, AttributeError, ModuleNotFoundError) as e:
            self.logging.debug(f"Stale cache entry for {key}: {e}")
            self.remove(key)
            return None

        if not isinstance(entry, CacheEntry) or entry.version != self.version:
            self.remove(key)
            return None
        if entry.expiry < time.time():
            self.remove(key)
            return None
        return entry

    def remove(self, key: str) -> None:
        try:
            self._redis.delete(self._full_key(key))
        except RedisError as e:
            self.logging.warning(f"Redis delete failed for {key}: {e}")

    def clear(self) -> int:
        """Delete every key under this prefix. Returns the number removed."""
        deleted = 0
        try:
            cursor = 0
            while True:
                cursor, keys = cast(
                    tuple[int, list[bytes]],
                    self._redis.scan(cursor=cursor, match=f"{self.prefix}:*", count=100),
                )
                if keys:
                    deleted += cast(int, self._redis.delete(*keys))
                if cursor == 0:
                    break
        except RedisError as e:
            self.logging.warning(f"Redis clear failed: {e}")
        return deleted

    @classmethod
    def use_cache(cls, instance: "RedisCache", prefix: str = ""):
        """
        Decorator caching the result of an async function or method.

        Callers may pass `no_cache=True` to bypass the cache entirely,
        `no_cache_update=True` to skip the write, or `expiry=<seconds>` to
        override the default TTL for this call.
        """

        def decorator(func):
            @wraps(func)
            async def inner(*args, **kwargs):
                bypass = kwargs.pop("no_cache", False)
                skip_update = kwargs.pop("no_cache_update", False)
                ttl = kwargs.pop("expiry", None) or instance.defaultTTL

                if DISABLE_CACHE or instance.disableCache or bypass:
                    return await func(*args, **kwargs)

                cache_key = instance.get_cache_key(
                    fn=func.__name__, prefix=prefix, args=args, kwargs=kwargs
                )
                cached = instance.read(cache_key)
                if cached is not None:
                    instance.logging.debug(f"Cache hit: {cache_key}")
                    return cached.data

                data = await func(*args, **kwargs)
                if not skip_update:
                    instance.add(data, cache_key, funcName=func.__name__, ttl=ttl)
                return data

            return inner

        return decorator
