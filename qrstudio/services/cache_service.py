"""Redis cache for user stats and analytics shapes."""

import json
import logging
from typing import Optional, Any
import redis

from qrstudio.core.config import settings

logger = logging.getLogger("qrstudio.cache")


class CacheService:
    """Redis-backed read-through cache.

    Every failure is swallowed and treated as a miss: the database stays the
    source of truth. An empty ``REDIS_URL`` disables caching entirely.
    """

    def __init__(self, url: Optional[str] = None):
        self._url = settings.REDIS_URL if url is None else url
        self._client: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self._url,
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
        return self._client

    def get_json(self, key: str) -> Optional[Any]:
        """Get and parse a JSON cached value."""
        if not self.enabled:
            return None
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.debug("Cache read failed for %s: %s", key, e)
            return None
        return json.loads(raw) if raw else None

    def set_json(self, key: str, value: Any, ttl_seconds: int = 600) -> None:
        """Serialize and cache a JSON value."""
        if not self.enabled:
            return
        try:
            self.client.setex(key, ttl_seconds, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.debug("Cache write failed for %s: %s", key, e)

    def delete(self, key: str) -> None:
        if not self.enabled:
            return
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.debug("Cache delete failed for %s: %s", key, e)

    def health_check(self) -> bool:
        """Check if Redis is reachable."""
        if not self.enabled:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


cache_service = CacheService()
