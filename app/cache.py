"""
Redis caching utilities for frequently accessed data
Falls back to a process-local TTL store when Redis is unavailable
"""

import fnmatch
import json
import logging
import time
from functools import wraps
from threading import Lock
from typing import Any, Callable, Optional

import redis

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

# TTLs in seconds
SHORT = 60
MEDIUM = 300
LONG = 3600


class Cache:
    """Redis cache wrapper with automatic JSON serialization"""

    def __init__(self):
        self._memory: dict[str, tuple[float, str]] = {}
        self._lock = Lock()

    def _get_client(self) -> Optional[redis.Redis]:
        return get_redis_client()

    # In-memory fallback

    def _memory_get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._memory.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= time.time():
                del self._memory[key]
                return None
            return value

    def _memory_set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._memory[key] = (time.time() + ttl, value)

    def _memory_delete_pattern(self, pattern: str) -> int:
        with self._lock:
            keys = [k for k in self._memory if fnmatch.fnmatchcase(k, pattern)]
            for k in keys:
                del self._memory[k]
            return len(keys)

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        try:
            value = client.get(key) if client is not None else self._memory_get(key)
        except redis.RedisError as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

        if value is None:
            logger.debug(f"Cache MISS: {key}")
            return None
        logger.debug(f"Cache HIT: {key}")
        return json.loads(value)

    def set(self, key: str, value: Any, ttl: int = LONG) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        serialized = json.dumps(value, default=str)
        try:
            if client is not None:
                client.setex(key, ttl, serialized)
            else:
                self._memory_set(key, serialized, ttl)
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete value from cache"""
        client = self._get_client()
        try:
            if client is not None:
                client.delete(key)
            else:
                with self._lock:
                    self._memory.pop(key, None)
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'availability:123:*')"""
        client = self._get_client()
        if client is None:
            return self._memory_delete_pattern(pattern)

        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0

    def get_or_set(self, key: str, loader: Callable[[], Any], ttl: int = LONG) -> Any:
        """Return the cached value, computing and storing it on a miss"""
        cached_value = self.get(key)
        if cached_value is not None:
            return cached_value
        value = loader()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def clear(self) -> None:
        """Drop every in-memory entry"""
        with self._lock:
            self._memory.clear()


# Global cache instance
cache = Cache()


def cached(key_prefix: str, ttl: int = LONG, key_builder: Optional[Callable] = None):
    """
    Decorator to cache function results

    Args:
        key_prefix: Prefix for cache key (e.g., 'event_types')
        ttl: Time to live in seconds (default 1 hour)
        key_builder: Optional function to build cache key from function args
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if key_builder:
                cache_key = key_builder(*args, **kwargs)
            else:
                arg_str = str(args[0]) if args else "default"
                cache_key = f"{key_prefix}:{arg_str}"
            return cache.get_or_set(cache_key, lambda: func(*args, **kwargs), ttl)

        return wrapper

    return decorator


# Cache key builders


def weekly_schedule_key(user_id: str) -> str:
    return f"availability:{user_id}:schedule"


def date_overrides_key(user_id: str, start: str, end: str) -> str:
    return f"availability:{user_id}:overrides:{start}:{end}"


def available_slots_key(
    user_id: str, date: str, duration: int, timezone: str, event_type_id: Optional[str] = None
) -> str:
    return f"availability:{user_id}:slots:{date}:{duration}:{timezone}:{event_type_id or 'any'}"


def event_types_key(user_id: str, include_inactive: bool = False) -> str:
    return f"event_types:{user_id}:{'all' if include_inactive else 'active'}"


def user_profile_key(username: str) -> str:
    return f"profile:{username}"


# Invalidation


def invalidate_availability(user_id: str) -> int:
    """Invalidate schedule, override and slot entries for a user"""
    return cache.delete_pattern(f"availability:{user_id}:*")


def invalidate_event_types(user_id: str) -> int:
    return cache.delete_pattern(f"event_types:{user_id}:*")


def invalidate_user(user_id: str, username: Optional[str] = None) -> int:
    """Invalidate all cache entries for a user"""
    deleted = invalidate_availability(user_id) + invalidate_event_types(user_id)
    if username:
        deleted += cache.delete_pattern(f"profile:{username}")
    return deleted
