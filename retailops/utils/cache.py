import json
import logging
import redis
from typing import Optional, Any

from fastapi import Request

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis cache service for report data.

    This service provides methods for:
    - Setting cache with TTL
    - Getting cached values
    - Invalidating single keys or key patterns

    Redis failures never break a request: reads degrade to a miss and writes
    report False. A service built without a client does nothing.
    """

    def __init__(self, client: Optional[redis.Redis] = None, ttl: int = 300):
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings) -> "CacheService":
        if not settings.CACHE_ENABLED:
            logger.info("Cache disabled")
            return cls(client=None, ttl=settings.CACHE_TTL)
        client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        return cls(client=client, ttl=settings.CACHE_TTL)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _make_key(self, prefix: str, key: str) -> str:
        """Create a namespaced cache key."""
        return f"{prefix}:{key}"

    def get(self, prefix: str, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            prefix: Cache key prefix (e.g., 'dashboard')
            key: Unique identifier

        Returns:
            Cached value or None if not found
        """
        if not self.enabled:
            return None
        cache_key = self._make_key(prefix, key)
        try:
            value = self.client.get(cache_key)
            if value:
                return json.loads(value)
            return None
        except (redis.RedisError, json.JSONDecodeError) as e:
            logger.warning(f"Cache read failed for {cache_key}: {e}")
            return None

    def set(self, prefix: str, key: str, value: Any, ttl: int = None) -> bool:
        """
        Set a value in cache with TTL.

        Args:
            prefix: Cache key prefix
            key: Unique identifier
            value: Value to cache (will be JSON serialized)
            ttl: Time to live in seconds (optional, uses default if not provided)

        Returns:
            True if successful, False otherwise
        """
        if not self.enabled:
            return False
        cache_key = self._make_key(prefix, key)
        ttl = ttl or self.ttl
        try:
            serialized = json.dumps(value, default=str)
            self.client.setex(cache_key, ttl, serialized)
            return True
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Cache write failed for {cache_key}: {e}")
            return False

    def delete(self, prefix: str, key: str) -> bool:
        """Delete a value from cache."""
        if not self.enabled:
            return False
        cache_key = self._make_key(prefix, key)
        try:
            self.client.delete(cache_key)
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache delete failed for {cache_key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Redis key pattern (e.g., 'dashboard:*')

        Returns:
            Number of keys deleted
        """
        if not self.enabled:
            return 0
        try:
            keys = self.client.keys(pattern)
            if keys:
                return self.client.delete(*keys)
            return 0
        except redis.RedisError as e:
            logger.warning(f"Cache pattern delete failed for {pattern}: {e}")
            return 0

    def ping(self) -> bool:
        """Return True when Redis answers; raises on connection errors."""
        if not self.enabled:
            return False
        return bool(self.client.ping())

    def close(self) -> None:
        if self.enabled:
            self.client.close()


def get_cache(request: Request) -> CacheService:
    """Dependency returning the application's cache service."""
    return request.app.state.cache
