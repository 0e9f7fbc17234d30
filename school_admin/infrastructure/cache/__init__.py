# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache infrastructure using Redis.

Example:
    from school_admin.infrastructure.cache import QueryCache, init_redis, get_redis

    await init_redis(settings)
    cache = QueryCache(get_redis(), settings.cache)

    await close_redis()
"""

from school_admin.infrastructure.cache.query_cache import QueryCache, generate_cache_key
from school_admin.infrastructure.cache.redis_client import (
    CacheError,
    RedisClient,
    close_redis,
    get_redis,
    init_redis,
)

__all__ = [
    "CacheError",
    "QueryCache",
    "RedisClient",
    "close_redis",
    "generate_cache_key",
    "get_redis",
    "init_redis",
]
