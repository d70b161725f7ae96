"""
Redis caching utilities for frequently read per-user lists
"""
import json
import logging
from typing import Any, Optional

from . import rate_limiter

logger = logging.getLogger(__name__)

CONTACTS_TTL = 120
EVENTS_TTL = 60


class Cache:
    """Redis cache wrapper with JSON serialization. Every operation fails open."""

    def __init__(self):
        self.redis_client = None

    def _get_client(self):
        if self.redis_client is None:
            try:
                self.redis_client = rate_limiter.get_redis_client()
            except rate_limiter.RedisUnavailable as e:
                logger.debug(f"Redis cache unavailable: {e}")
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
            logger.debug(f"Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'events:12:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


cache = Cache()


def contacts_key(user_id: int) -> str:
    return f"contacts:{user_id}"


def events_key(user_id: int, start: Optional[str], end: Optional[str]) -> str:
    return f"events:{user_id}:{start or 'all'}:{end or 'all'}"


def invalidate_contacts(user_id: int) -> bool:
    return cache.delete(contacts_key(user_id))


def invalidate_events(user_id: int) -> int:
    return cache.delete_pattern(f"events:{user_id}:*")
