import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import redis

from goodmap.api.metrics import metrics_collector

logger = logging.getLogger(__name__)


def posts_cache_key(marker_id: str) -> str:
    """Cache key for the post list of one marker."""
    return f"posts:{marker_id}"


class PostCache(ABC):
    """Per-marker post list cache.

    The cache only ever speeds things up: implementations must never raise
    from these methods, a failed read is a miss and a failed write or
    invalidation is logged and ignored.
    """

    @abstractmethod
    def get_posts(self, marker_id: str) -> Optional[List[Dict[str, Any]]]:
        pass

    @abstractmethod
    def set_posts(self, marker_id: str, posts: List[Dict[str, Any]]) -> None:
        pass

    @abstractmethod
    def invalidate(self, marker_id: str) -> None:
        pass

    @abstractmethod
    def ping(self) -> bool:
        pass


class NullPostCache(PostCache):
    """Used when caching is disabled; every read is a miss."""

    def get_posts(self, marker_id: str) -> Optional[List[Dict[str, Any]]]:
        return None

    def set_posts(self, marker_id: str, posts: List[Dict[str, Any]]) -> None:
        return None

    def invalidate(self, marker_id: str) -> None:
        return None

    def ping(self) -> bool:
        return True


class RedisPostCache(PostCache):
    """Post list cache backed by Redis with a fixed TTL per entry."""

    def __init__(self, client: redis.Redis, ttl_seconds: int = 60):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int = 60) -> "RedisPostCache":
        # The pool connects lazily and replaces dead connections on next use.
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        return cls(client, ttl_seconds=ttl_seconds)

    def get_posts(self, marker_id: str) -> Optional[List[Dict[str, Any]]]:
        key = posts_cache_key(marker_id)
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            metrics_collector.record_cache_error()
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

        if raw is None:
            metrics_collector.record_cache_miss()
            return None

        try:
            posts = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding unreadable cache entry {key}")
            self.invalidate(marker_id)
            metrics_collector.record_cache_miss()
            return None

        metrics_collector.record_cache_hit()
        return posts

    def set_posts(self, marker_id: str, posts: List[Dict[str, Any]]) -> None:
        key = posts_cache_key(marker_id)
        try:
            self.client.setex(key, self.ttl_seconds, json.dumps(posts))
        except redis.RedisError as e:
            metrics_collector.record_cache_error()
            logger.warning(f"Cache write failed for {key}: {e}")

    def invalidate(self, marker_id: str) -> None:
        key = posts_cache_key(marker_id)
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            metrics_collector.record_cache_error()
            logger.warning(f"Cache invalidation failed for {key}: {e}")

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning(f"Cache ping failed: {e}")
            return False


def build_post_cache(redis_url: str, ttl_seconds: int, enabled: bool = True) -> PostCache:
    if not enabled:
        return NullPostCache()
    return RedisPostCache.from_url(redis_url, ttl_seconds=ttl_seconds)
