# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-through cache for frequently requested query results.

Values are stored as JSON in Redis with a TTL. Writers invalidate by key
prefix. Redis failures are logged and treated as cache misses so that a
Redis outage never fails a read.

Example:
    cache = QueryCache(get_redis(), settings.cache)

    groups = await cache.cached(
        "groups:available_english",
        {},
        load_available_groups,
    )

    # After a group is modified
    await cache.invalidate_prefix("groups:")
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from school_admin.infrastructure.cache.redis_client import CacheError, RedisClient

if TYPE_CHECKING:
    from school_admin.core.config.settings import CacheSettings

logger = logging.getLogger(__name__)


def generate_cache_key(prefix: str, params: dict[str, Any] | None = None) -> str:
    """Build a deterministic cache key from a prefix and query parameters.

    Parameter order does not matter: keys are sorted before encoding.

    Args:
        prefix: Key prefix, e.g. ``"groups:available_english"``.
        params: Query parameters.

    Returns:
        ``prefix:{json}`` with sorted keys.
    """
    encoded = json.dumps(params or {}, sort_keys=True, default=str, separators=(",", ":"))
    return f"{prefix}:{encoded}"


class QueryCache:
    """JSON query-result cache on top of RedisClient.

    Attributes:
        hits: Number of cache hits since creation.
        misses: Number of cache misses since creation.
    """

    def __init__(self, redis: RedisClient, settings: "CacheSettings") -> None:
        self._redis = redis
        self._enabled = settings.enabled
        self._default_ttl = settings.default_ttl
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def get(self, key: str) -> Any:
        """Get a cached value, or None on miss or Redis failure."""
        if not self._enabled:
            return None
        try:
            value = await self._redis.get(key)
        except CacheError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            value = None

        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a value with the given TTL (default from settings)."""
        if not self._enabled:
            return
        try:
            await self._redis.set(key, value, expire_seconds=ttl or self._default_ttl)
        except CacheError as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except CacheError as e:
            logger.warning("Cache delete failed for %s: %s", key, e)

    async def invalidate_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix.

        Returns:
            Number of entries removed.
        """
        try:
            removed = await self._redis.delete_pattern(f"{prefix}*")
        except CacheError as e:
            logger.warning("Cache invalidation failed for %s: %s", prefix, e)
            return 0

        if removed:
            logger.debug("Invalidated %d cache entries with prefix %s", removed, prefix)
        return removed

    async def clear(self) -> int:
        """Delete every entry in the namespace."""
        return await self.invalidate_prefix("")

    async def stats(self) -> dict[str, Any]:
        """Return hit/miss counters and the number of stored keys."""
        try:
            size = len(await self._redis.scan_keys("*"))
        except CacheError as e:
            logger.warning("Cache stats unavailable: %s", e)
            size = None

        total = self.hits + self.misses
        return {
            "enabled": self._enabled,
            "size": size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total, 4) if total else 0.0,
            "ttl": self._default_ttl,
        }

    async def cached(
        self,
        prefix: str,
        params: dict[str, Any] | None,
        loader: Callable[[], Awaitable[Any]],
        ttl: int | None = None,
    ) -> Any:
        """Return the cached result for (prefix, params), loading it on a miss.

        Args:
            prefix: Cache key prefix.
            params: Parameters that distinguish the query.
            loader: Coroutine factory producing a JSON-serializable result.
            ttl: Optional TTL override in seconds.

        Returns:
            The cached or freshly loaded result.
        """
        key = generate_cache_key(prefix, params)
        value = await self.get(key)
        if value is not None:
            return value

        value = await loader()
        await self.set(key, value, ttl)
        return value
