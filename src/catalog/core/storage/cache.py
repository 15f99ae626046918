"""TTL cache interface and implementations.

The cache is an injected capability shared by catalog readers and writers.
Values are pydantic models stored as JSON snapshots, so a cached entry never
aliases a live object. There is no locking: the last writer of a key wins.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from src.catalog.core.errors import CacheError

T = TypeVar("T", bound=BaseModel)


class Cache(ABC):
    """Abstract interface for cache backends."""

    @abstractmethod
    async def get(self, key: str, model_class: type[T]) -> T | None:
        """Return the cached value, or None on a miss or an expired entry."""

    @abstractmethod
    async def put(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""

    @abstractmethod
    async def forget(self, key: str) -> None:
        """Remove ``key``; removing a missing key is not an error."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend is healthy."""


class InMemoryCache(Cache):
    """Process-local cache with TTL support.

    ``clock`` returns seconds and can be replaced in tests to control expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: dict[str, dict[str, Any]] = {}

    async def get(self, key: str, model_class: type[T]) -> T | None:
        entry = self._data.get(key)
        if entry is None:
            return None

        if self._clock() >= entry["expires_at"]:
            del self._data[key]
            return None

        try:
            return model_class.model_validate(entry["data"])
        except ValidationError:
            # Entry written by an incompatible model version
            del self._data[key]
            return None

    async def put(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        self._data[key] = {
            "data": json.loads(value.model_dump_json()),
            "expires_at": self._clock() + ttl_seconds,
        }

    async def forget(self, key: str) -> None:
        self._data.pop(key, None)

    def is_available(self) -> bool:
        return True

    def clear(self) -> None:
        self._data.clear()


class RedisCache(Cache):
    """Redis-backed cache using SETEX so Redis expires entries itself."""

    def __init__(self, redis_client, key_prefix: str = "catalog:"):
        self._redis = redis_client
        self._prefix = key_prefix
        self._available = True

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str, model_class: type[T]) -> T | None:
        try:
            data = await self._redis.get(self._key(key))
            self._available = True
        except RedisError as e:
            self._available = False
            raise CacheError(f"Redis get failed: {e}") from e

        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")

        try:
            return model_class.model_validate_json(data)
        except ValidationError:
            logger.warning("Discarding undecodable cache entry", key=key)
            await self.forget(key)
            return None

    async def put(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(self._key(key), ttl_seconds, value.model_dump_json())
            self._available = True
        except RedisError as e:
            self._available = False
            raise CacheError(f"Redis set failed: {e}") from e

    async def forget(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
            self._available = True
        except RedisError as e:
            self._available = False
            raise CacheError(f"Redis delete failed: {e}") from e

    def is_available(self) -> bool:
        return self._available

    async def ping(self) -> bool:
        try:
            await self._redis.ping()
            self._available = True
            return True
        except RedisError:
            self._available = False
            return False


async def build_cache(redis_client=None) -> Cache:
    """Use Redis when a reachable client is given, otherwise fall back to memory."""
    if redis_client is not None:
        cache = RedisCache(redis_client)
        if await cache.ping():
            logger.info("Cache backend: Redis")
            return cache
        logger.warning("Redis unavailable, using in-memory cache")
    else:
        logger.info("Cache backend: in-memory")
    return InMemoryCache()
