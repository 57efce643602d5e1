"""
Caching layer for versionflow.
Uses Redis for distributed caching with fallback to in-memory cache.

Only derived, re-computable data lives here (resolved repository
configuration). Version state is never cached.
"""

import asyncio
import logging
from typing import Optional

import redis.asyncio as redis

from versionflow.core.config import settings

logger = logging.getLogger("versionflow.cache")


class CacheBackend:
    """Base class for cache backends."""

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class InMemoryCache(CacheBackend):
    """
    Simple in-memory cache for single-instance deployments.
    Not suitable for production multi-instance deployments.
    """

    def __init__(self, max_size: int = 1000):
        self._cache: dict[str, tuple[str, Optional[float]]] = {}
        self._max_size = max_size
        self._lock = asyncio.Lock()

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    async def _cleanup_expired(self) -> None:
        current_time = self._now()
        expired_keys = [
            key for key, (_, expiry) in self._cache.items()
            if expiry and expiry < current_time
        ]
        for key in expired_keys:
            del self._cache[key]

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            if key in self._cache:
                value, expiry = self._cache[key]
                if expiry is None or expiry > self._now():
                    return value
                del self._cache[key]
            return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        async with self._lock:
            if len(self._cache) >= self._max_size:
                await self._cleanup_expired()
                if len(self._cache) >= self._max_size:
                    # Remove oldest entry
                    oldest_key = next(iter(self._cache))
                    del self._cache[oldest_key]

            expiry = None
            if ttl:
                expiry = self._now() + ttl

            self._cache[key] = (value, expiry)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False


class RedisCache(CacheBackend):
    """
    Redis-based cache for distributed deployments.
    """

    def __init__(self, url: str):
        self._url = url
        self._redis = None
        self._connected = False

    async def _ensure_connected(self) -> bool:
        if self._connected and self._redis:
            return True

        try:
            self._redis = redis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5.0,
                socket_connect_timeout=5.0,
            )
            await self._redis.ping()
            self._connected = True
            logger.info("Redis cache connected")
            return True
        except (redis.RedisError, OSError) as e:
            logger.warning(f"Failed to connect to Redis: {e}, using in-memory fallback")
            self._connected = False
            return False

    async def get(self, key: str) -> Optional[str]:
        if not await self._ensure_connected():
            return None
        try:
            return await self._redis.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis GET error: {e}")
            return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        if not await self._ensure_connected():
            return False
        try:
            if ttl:
                await self._redis.setex(key, ttl, value)
            else:
                await self._redis.set(key, value)
            return True
        except redis.RedisError as e:
            logger.error(f"Redis SET error: {e}")
            return False

    async def delete(self, key: str) -> bool:
        if not await self._ensure_connected():
            return False
        try:
            result = await self._redis.delete(key)
            return result > 0
        except redis.RedisError as e:
            logger.error(f"Redis DELETE error: {e}")
            return False

    async def close(self) -> None:
        if self._redis:
            await self._redis.close()
            self._connected = False


# Global cache instance
_cache: Optional[CacheBackend] = None


async def get_cache() -> CacheBackend:
    """Get the global cache instance."""
    global _cache
    if _cache is None:
        if settings.REDIS_URL:
            redis_cache = RedisCache(settings.REDIS_URL)
            if await redis_cache._ensure_connected():
                _cache = redis_cache
            else:
                logger.warning("Redis unavailable, using in-memory cache")
                _cache = InMemoryCache()
        else:
            logger.info("No REDIS_URL configured, using in-memory cache")
            _cache = InMemoryCache()
    return _cache


async def close_cache() -> None:
    """Close the global cache instance, if one was created."""
    global _cache
    if _cache is not None:
        await _cache.close()
        _cache = None
