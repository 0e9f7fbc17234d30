# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis client for the query cache.

This module provides an async Redis client wrapper. Every key is prefixed
with the configured namespace (``CACHE_KEY_PREFIX``) so several deployments
can share one Redis database.

Example:
    from school_admin.infrastructure.cache import init_redis, get_redis

    await init_redis(settings)

    redis = get_redis()
    await redis.set("groups:available", payload, expire_seconds=300)
"""

import json
from typing import TYPE_CHECKING, Any, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

if TYPE_CHECKING:
    from school_admin.core.config.settings import Settings

# Module-level state
_redis_client: Optional["RedisClient"] = None


class CacheError(Exception):
    """Exception raised for Redis operation failures.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying Redis error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class RedisClient:
    """Async Redis client with namespaced keys and JSON values.

    Example:
        client = RedisClient(settings)
        await client.connect()

        await client.set("key", {"a": 1}, expire_seconds=60)
        value = await client.get("key")

        await client.close()
    """

    def __init__(self, settings: "Settings", redis: Optional[Redis] = None) -> None:
        """Initialize the Redis client.

        Args:
            settings: Application settings containing Redis configuration.
            redis: Optional pre-built Redis connection (used by tests).
        """
        self._settings = settings
        self._namespace = settings.cache.key_prefix
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = redis

    async def connect(self) -> None:
        """Create the Redis connection pool.

        Raises:
            CacheError: If connection fails.
        """
        try:
            self._pool = ConnectionPool.from_url(
                self._settings.redis.url,
                max_connections=self._settings.redis.max_connections,
                decode_responses=True,
            )
            self._redis = Redis(connection_pool=self._pool)

            await self._redis.ping()
        except RedisError as e:
            raise CacheError("Failed to connect to Redis", e) from e

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    def _ensure_connected(self) -> Redis:
        if self._redis is None:
            raise CacheError("Redis client not connected. Call connect() first.")
        return self._redis

    def full_key(self, key: str) -> str:
        """Prefix a key with the cache namespace."""
        return f"{self._namespace}:{key}"

    def _serialize(self, value: Any) -> str:
        return json.dumps(value, ensure_ascii=False, default=str)

    def _deserialize(self, value: Optional[str]) -> Any:
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(
        self,
        key: str,
        value: Any,
        expire_seconds: Optional[int] = None,
    ) -> None:
        """Set a key-value pair.

        Args:
            key: The key, without namespace.
            value: The value (JSON serialized).
            expire_seconds: Optional expiration time in seconds.

        Raises:
            CacheError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            await redis.set(self.full_key(key), self._serialize(value), ex=expire_seconds)
        except RedisError as e:
            raise CacheError(f"Failed to set key: {key}", e) from e

    async def get(self, key: str) -> Any:
        """Get a value by key.

        Returns:
            The deserialized value or None if not found.

        Raises:
            CacheError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            value = await redis.get(self.full_key(key))
            return self._deserialize(value)
        except RedisError as e:
            raise CacheError(f"Failed to get key: {key}", e) from e

    async def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if the key was deleted, False if it didn't exist.

        Raises:
            CacheError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            result = await redis.delete(self.full_key(key))
            return result > 0
        except RedisError as e:
            raise CacheError(f"Failed to delete key: {key}", e) from e

    async def exists(self, key: str) -> bool:
        """Check if a key exists.

        Raises:
            CacheError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            result = await redis.exists(self.full_key(key))
            return result > 0
        except RedisError as e:
            raise CacheError(f"Failed to check key existence: {key}", e) from e

    async def ttl(self, key: str) -> int:
        """Get the time-to-live for a key.

        Returns:
            TTL in seconds, -1 if no expiry, -2 if key doesn't exist.

        Raises:
            CacheError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            return await redis.ttl(self.full_key(key))
        except RedisError as e:
            raise CacheError(f"Failed to get TTL for key: {key}", e) from e

    async def scan_keys(self, pattern: str = "*") -> list[str]:
        """List namespaced keys matching a pattern.

        Raises:
            CacheError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            return [key async for key in redis.scan_iter(match=self.full_key(pattern))]
        except RedisError as e:
            raise CacheError(f"Failed to scan keys: {pattern}", e) from e

    async def delete_pattern(self, pattern: str = "*") -> int:
        """Delete all namespaced keys matching a pattern.

        Returns:
            Number of keys deleted.

        Raises:
            CacheError: If the operation fails.
        """
        keys = await self.scan_keys(pattern)
        if not keys:
            return 0

        redis = self._ensure_connected()
        try:
            return await redis.delete(*keys)
        except RedisError as e:
            raise CacheError(f"Failed to delete keys: {pattern}", e) from e

    async def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            redis = self._ensure_connected()
            await redis.ping()
            return True
        except (CacheError, RedisError):
            return False


async def init_redis(settings: "Settings") -> None:
    """Initialize the global Redis client.

    Raises:
        CacheError: If connection fails.
    """
    global _redis_client

    _redis_client = RedisClient(settings)
    await _redis_client.connect()


async def close_redis() -> None:
    """Close the global Redis client."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


def get_redis() -> RedisClient:
    """Get the global Redis client.

    Raises:
        CacheError: If Redis has not been initialized.
    """
    if _redis_client is None:
        raise CacheError("Redis not initialized. Call init_redis() first.")
    return _redis_client
