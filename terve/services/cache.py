"""
Redis cache with an in-process fallback, used for short-lived session state
"""
import json
import os
import time
from typing import Any, Optional

import redis
import structlog

logger = structlog.get_logger()

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


class CacheService:
    def __init__(self, redis_url: str = REDIS_URL):
        self._memory_cache = {}
        try:
            self.redis_client = redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=1)
            self.redis_client.ping()
            logger.info("redis_cache_connected", url=redis_url)
        except redis.RedisError as e:
            logger.warning("redis_unavailable_using_memory_cache", error=str(e))
            self.redis_client = None

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        try:
            if self.redis_client:
                value = self.redis_client.get(key)
                return json.loads(value) if value else None
            entry = self._memory_cache.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at < time.monotonic():
                self._memory_cache.pop(key, None)
                return None
            return value
        except redis.RedisError as e:
            logger.error("cache_get_failed", key=key, error=str(e))
            return None

    def set(self, key: str, value: Any, expire: int = 3600) -> bool:
        """Set value in cache with expiration in seconds"""
        try:
            if self.redis_client:
                return bool(self.redis_client.setex(key, expire, json.dumps(value)))
            # round-trip through JSON so both backends hand back the same shapes
            self._memory_cache[key] = (json.loads(json.dumps(value)), time.monotonic() + expire)
            return True
        except redis.RedisError as e:
            logger.error("cache_set_failed", key=key, error=str(e))
            return False

    def delete(self, key: str) -> bool:
        """Delete value from cache"""
        try:
            if self.redis_client:
                return bool(self.redis_client.delete(key))
            return self._memory_cache.pop(key, None) is not None
        except redis.RedisError as e:
            logger.error("cache_delete_failed", key=key, error=str(e))
            return False


# Global cache instance
cache = CacheService()
