"""
Redis caching utilities for frequently read data (pattern list, linking config).
The cache fails open: when Redis is not configured or unreachable, reads miss
and writes are skipped.
"""
import json
import logging
from typing import Any, Optional

import redis

from .config import CACHE_TTL_SECONDS, REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get or create the Redis client. Raises when Redis is unavailable."""
    global redis_client

    if redis_client is None:
        if not REDIS_URL:
            raise RuntimeError("REDIS_URL is not configured")

        if "@" in REDIS_URL:
            url_parts = REDIS_URL.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = REDIS_URL
        logger.info(f"📡 Connecting to Redis: {masked_url}")

        client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        client.ping()
        redis_client = client
        logger.info("✅ Redis connected successfully")

    return redis_client


class Cache:
    """Redis cache wrapper with JSON serialization"""

    def __init__(self):
        self.redis_client = None
        self._unavailable = False

    def _get_client(self):
        """Lazy load Redis client, remembering a failed connection"""
        if self._unavailable:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except (RuntimeError, ValueError, redis.RedisError) as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                self._unavailable = True
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except redis.RedisError as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = CACHE_TTL_SECONDS) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    @property
    def available(self) -> bool:
        return self._get_client() is not None


# Global cache instance
cache = Cache()

PATTERN_LIST_KEY = "patterns:all"
LINKING_CONFIG_KEY = "pattern_linking:config"


def invalidate_pattern_cache() -> bool:
    """Invalidate the cached pattern list after any pattern write"""
    return cache.delete(PATTERN_LIST_KEY)
