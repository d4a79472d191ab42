"""Short-lived caching of provider answers and intake claims.

Redis is used when configured; if it is absent or starts failing, the service
falls back to an in-process map so evaluations keep working.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis_asyncio
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_PREFIX = "modbot:"


class CacheService:
    """JSON value cache with TTLs plus SET-NX style claims."""

    def __init__(self, redis_url: str | None = None) -> None:
        self._redis: redis_asyncio.Redis | None = None
        if redis_url:
            self._redis = redis_asyncio.from_url(redis_url, decode_responses=True)
        self._local: dict[str, tuple[float, str]] = {}
        self._lock = asyncio.Lock()

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    def _disable_redis(self, exc: Exception) -> None:
        logger.warning("Redis unavailable, falling back to in-process cache: %s", exc)
        self._redis = None

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._local.items() if expires_at <= now]
        for key in expired:
            del self._local[key]

    async def _get_raw(self, key: str) -> str | None:
        key = KEY_PREFIX + key
        if self._redis is not None:
            try:
                return await self._redis.get(key)
            except (RedisError, OSError) as exc:
                self._disable_redis(exc)

        async with self._lock:
            entry = self._local.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= time.monotonic():
                del self._local[key]
                return None
            return value

    async def _set_raw(self, key: str, value: str, ttl_seconds: int, *, only_new: bool = False) -> bool:
        key = KEY_PREFIX + key
        if self._redis is not None:
            try:
                return bool(await self._redis.set(key, value, ex=ttl_seconds, nx=only_new))
            except (RedisError, OSError) as exc:
                self._disable_redis(exc)

        now = time.monotonic()
        async with self._lock:
            self._evict_expired(now)
            entry = self._local.get(key)
            if only_new and entry is not None and entry[0] > now:
                return False
            self._local[key] = (now + ttl_seconds, value)
            return True

    async def get(self, key: str) -> Any | None:
        raw = await self._get_raw(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self._set_raw(key, json.dumps(value), ttl_seconds)

    async def get_set(
        self,
        key: str,
        ttl_seconds: int,
        factory: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the cached value for ``key`` or compute, store and return it.

        Args:
            key: Cache key, without the service prefix
            ttl_seconds: Lifetime of a freshly computed value
            factory: Coroutine function producing a JSON-serialisable value

        Returns:
            The cached or freshly computed value
        """
        raw = await self._get_raw(key)
        if raw is not None:
            return json.loads(raw)
        value = await factory()
        await self._set_raw(key, json.dumps(value), ttl_seconds)
        return value

    async def claim(self, key: str, ttl_seconds: int) -> bool:
        """Atomically mark ``key`` as taken; False if someone holds it already."""
        return await self._set_raw(key, "1", ttl_seconds, only_new=True)

    async def release(self, key: str) -> None:
        full_key = KEY_PREFIX + key
        if self._redis is not None:
            try:
                await self._redis.delete(full_key)
                return
            except (RedisError, OSError) as exc:
                self._disable_redis(exc)
        async with self._lock:
            self._local.pop(full_key, None)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
