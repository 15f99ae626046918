"""Redis connection lifecycle for the shared cache."""

import redis.asyncio as redis_async
from loguru import logger
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError

from src.catalog.runtime.config.config_data import RedisConfig
from src.catalog.runtime.context import get_config


def _build_client(redis_config: RedisConfig) -> redis_async.Redis:
    # Under half a second of retrying before a cache call reports a miss
    retry = Retry(ExponentialBackoff(base=0.1, cap=1), retries=2)
    return redis_async.from_url(
        redis_config.connection_string,
        decode_responses=redis_config.decode_responses,
        encoding_errors="replace",
        max_connections=redis_config.max_connections,
        socket_timeout=redis_config.socket_timeout,
        socket_connect_timeout=redis_config.socket_connect_timeout,
        socket_keepalive=True,
        health_check_interval=30,
        retry=retry,
        client_name="catalog_cache",
    )


class RedisService:
    """Owns the Redis client the product cache is built on.

    When Redis is disabled or has no URL, ``get_client()`` returns None and the
    cache falls back to process memory.
    """

    def __init__(self, redis_config: RedisConfig | None = None):
        redis_config = redis_config or get_config().redis
        self._url = redis_config.url
        self._client: redis_async.Redis | None = None

        if not redis_config.enabled:
            logger.info("Redis is disabled; the cache will use process memory")
            return
        if not self._url:
            logger.warning("Redis URL not configured; the cache will use process memory")
            return

        logger.info("Connecting Redis client to {}", redis_config.sanitized_connection_string)
        self._client = _build_client(redis_config)

    @property
    def is_enabled(self) -> bool:
        return self._client is not None

    @property
    def url(self) -> str | None:
        return self._url or None

    def get_client(self) -> redis_async.Redis | None:
        return self._client

    async def health_check(self) -> bool:
        """Return True if Redis answers PING."""
        if self._client is None:
            return False
        try:
            await self._client.ping()
        except RedisError as e:
            logger.error("Redis health check failed", error_type=type(e).__name__, error=str(e))
            return False
        return True

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await client.aclose()
            logger.info("Redis connection closed")
        except RedisError as e:
            logger.error("Error closing Redis connection", error_type=type(e).__name__, error=str(e))
