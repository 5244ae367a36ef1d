# services/auth_cache.py
"""
Redis-based cache of verified auth contexts.

Saves a Supabase ``auth.get_user`` round trip plus a profile lookup per
request. Gracefully degrades (every lookup misses) when Redis is not
configured or unreachable.
"""
import hashlib
import logging
import os
from datetime import timedelta
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from pydantic import ValidationError

from api.schemas.users import AuthContext

logger = logging.getLogger("mood-api.cache")

AUTH_CACHE_TTL_SECONDS = int(os.getenv("AUTH_CACHE_TTL_SECONDS", "60"))


class AuthContextCache:
    """
    Async Redis cache keyed by a hash of the bearer token.
    """

    def __init__(self, redis_url: Optional[str] = None, ttl_seconds: int = AUTH_CACHE_TTL_SECONDS):
        """Initialize cache settings (lazy - connects on first use)."""
        self._redis_client: Optional[redis.Redis] = None
        self._redis_url = redis_url if redis_url is not None else os.getenv("REDIS_URL")
        self._ttl_seconds = ttl_seconds
        self._enabled = bool(self._redis_url)

        if not self._enabled:
            logger.info("Auth cache disabled (REDIS_URL not configured)")
            return

        logger.info(f"Auth cache enabled with URL: {self._redis_url[:20]}... (TTL: {ttl_seconds}s)")

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def _get_client(self) -> Optional[redis.Redis]:
        """
        Get or create the Redis client.
        Returns None if the connection fails.
        """
        if not self._enabled:
            return None

        if self._redis_client is None:
            try:
                self._redis_client = redis.from_url(
                    self._redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                await self._redis_client.ping()
                logger.info("Redis connection established successfully")
            except (RedisError, OSError) as e:
                logger.warning(f"Failed to connect to Redis: {e}")
                self._redis_client = None
                self._enabled = False
                return None

        return self._redis_client

    @staticmethod
    def _cache_key(token: str) -> str:
        # never store raw tokens as keys
        return f"auth:{hashlib.sha256(token.encode()).hexdigest()[:32]}"

    async def get(self, token: str) -> Optional[AuthContext]:
        client = await self._get_client()
        if client is None:
            return None

        cache_key = self._cache_key(token)
        try:
            cached = await client.get(cache_key)
        except RedisError as e:
            logger.warning(f"Cache GET error: {e}")
            return None

        if not cached:
            logger.debug(f"Cache MISS for key: {cache_key}")
            return None

        try:
            context = AuthContext.model_validate_json(cached)
        except ValidationError as e:
            logger.warning(f"Discarding malformed auth cache entry {cache_key}: {e}")
            return None
        logger.debug(f"Cache HIT for key: {cache_key}")
        return context

    async def set(self, token: str, context: AuthContext) -> bool:
        client = await self._get_client()
        if client is None:
            return False

        cache_key = self._cache_key(token)
        try:
            await client.setex(
                cache_key,
                timedelta(seconds=self._ttl_seconds),
                context.model_dump_json(),
            )
        except RedisError as e:
            logger.warning(f"Cache SET error: {e}")
            return False
        logger.debug(f"Cache SET for key: {cache_key} (TTL: {self._ttl_seconds}s)")
        return True

    async def invalidate(self, token: str) -> bool:
        client = await self._get_client()
        if client is None:
            return False

        try:
            deleted = await client.delete(self._cache_key(token))
        except RedisError as e:
            logger.warning(f"Cache INVALIDATE error: {e}")
            return False
        return bool(deleted)

    async def close(self):
        """Close Redis connection."""
        if self._redis_client:
            await self._redis_client.aclose()
            self._redis_client = None
            logger.info("Redis connection closed")


# Global cache instance
_cache_instance: Optional[AuthContextCache] = None


def get_auth_cache() -> AuthContextCache:
    """
    Get the global auth context cache instance.

    Returns:
        AuthContextCache singleton
    """
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = AuthContextCache()
    return _cache_instance
