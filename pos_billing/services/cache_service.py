"""
Redis cache for per-store report summaries.

A summary is stored as JSON under {prefix}:store:{store_id}:reports:{name}
until its TTL expires or a checkout in that store invalidates it. When
Redis is disabled or unreachable every lookup falls through to the loader.
"""
import json
import logging
from typing import Any, Callable, Optional

import redis
from redis.exceptions import RedisError
from flask import Flask

logger = logging.getLogger(__name__)


class ReportCache:
    """Cache-aside store for report summaries, scoped by store."""

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self.prefix = 'pos'
        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self.prefix = app.config.get('CACHE_KEY_PREFIX', 'pos')
        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] Report cache disabled via config")
            return

        redis_url = app.config.get('REDIS_URL', 'redis://localhost:6379/0')
        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
            )
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] Redis unavailable at {redis_url}: {e}. Reports are computed on every request.")
            return
        self.client = client
        logger.info(f"[CACHE] Redis connected: {redis_url}")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def key(self, store_id: int, name: str) -> str:
        return f"{self.prefix}:store:{store_id}:reports:{name}"

    def memoize(self, store_id: int, name: str, loader: Callable[[], Any], ttl: int) -> Any:
        """Return the cached summary, or load it and cache it for ttl seconds.

        The loader must return a JSON-serializable value.
        """
        if not self.enabled:
            return loader()

        key = self.key(store_id, name)
        try:
            cached = self.client.get(key)
            if cached is not None:
                return json.loads(cached)
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] Read of {key} failed: {e}")

        value = loader()
        try:
            self.client.setex(key, ttl, json.dumps(value))
        except RedisError as e:
            logger.warning(f"[CACHE] Write of {key} failed: {e}")
        return value

    def invalidate(self, store_id: int) -> int:
        """Drop every cached report of a store. Returns the number of keys removed."""
        if not self.enabled:
            return 0

        pattern = self.key(store_id, '*')
        try:
            keys = list(self.client.scan_iter(match=pattern, count=100))
            if keys:
                self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidation of {pattern} failed: {e}")
            return 0
        if keys:
            logger.info(f"[CACHE] INVALIDATE: {pattern} ({len(keys)} keys)")
        return len(keys)


_report_cache: Optional[ReportCache] = None


def init_cache(app: Flask) -> None:
    global _report_cache
    _report_cache = ReportCache(app)
    app.extensions['cache'] = _report_cache


def get_cache() -> ReportCache:
    if _report_cache is None:
        raise RuntimeError("Report cache not initialized.")
    return _report_cache
