"""Tests for the cache implementations."""

from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel
from redis.exceptions import ConnectionError as RedisConnectionError

from src.catalog.core.errors import CacheError
from src.catalog.core.storage import InMemoryCache, RedisCache, build_cache


class Snapshot(BaseModel):
    """Small model for cache tests."""

    id: str
    tags: list[str] = []


class TestInMemoryCache:
    @pytest.mark.asyncio
    async def test_put_and_get(self, cache):
        await cache.put("k", Snapshot(id="1", tags=["a"]), 60)

        value = await cache.get("k", Snapshot)

        assert value == Snapshot(id="1", tags=["a"])

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache):
        assert await cache.get("missing", Snapshot) is None

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, cache, clock):
        await cache.put("k", Snapshot(id="1"), 60)

        clock.advance(59)
        assert await cache.get("k", Snapshot) is not None

        clock.advance(1)
        assert await cache.get("k", Snapshot) is None

    @pytest.mark.asyncio
    async def test_forget_removes_entry(self, cache):
        await cache.put("k", Snapshot(id="1"), 60)

        await cache.forget("k")
        await cache.forget("k")  # forgetting twice is fine

        assert await cache.get("k", Snapshot) is None

    @pytest.mark.asyncio
    async def test_values_are_snapshots(self, cache):
        original = Snapshot(id="1", tags=["a"])
        await cache.put("k", original, 60)

        original.tags.append("b")
        cached = await cache.get("k", Snapshot)
        cached.tags.append("c")

        assert (await cache.get("k", Snapshot)).tags == ["a"]

    @pytest.mark.asyncio
    async def test_last_writer_wins(self, cache):
        await cache.put("k", Snapshot(id="first"), 60)
        await cache.put("k", Snapshot(id="second"), 60)

        assert (await cache.get("k", Snapshot)).id == "second"


class TestRedisCache:
    @pytest.mark.asyncio
    async def test_put_uses_setex_with_prefix(self):
        client = AsyncMock()
        cache = RedisCache(client)

        await cache.put("product_1", Snapshot(id="1"), 600)

        client.setex.assert_awaited_once()
        key, ttl, payload = client.setex.await_args.args
        assert key == "catalog:product_1"
        assert ttl == 600
        assert Snapshot.model_validate_json(payload) == Snapshot(id="1")

    @pytest.mark.asyncio
    async def test_get_decodes_json(self):
        client = AsyncMock()
        client.get.return_value = b'{"id": "7", "tags": ["x"]}'
        cache = RedisCache(client)

        value = await cache.get("k", Snapshot)

        assert value == Snapshot(id="7", tags=["x"])
        client.get.assert_awaited_once_with("catalog:k")

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_dropped(self):
        client = AsyncMock()
        client.get.return_value = '{"unexpected": true}'
        cache = RedisCache(client)

        assert await cache.get("k", Snapshot) is None
        client.delete.assert_awaited_once_with("catalog:k")

    @pytest.mark.asyncio
    async def test_backend_errors_raise_cache_error(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("down")
        cache = RedisCache(client)

        with pytest.raises(CacheError):
            await cache.get("k", Snapshot)
        assert cache.is_available() is False


class TestBuildCache:
    @pytest.mark.asyncio
    async def test_without_client_uses_memory(self):
        assert isinstance(await build_cache(None), InMemoryCache)

    @pytest.mark.asyncio
    async def test_unreachable_redis_falls_back_to_memory(self):
        client = AsyncMock()
        client.ping.side_effect = RedisConnectionError("refused")

        assert isinstance(await build_cache(client), InMemoryCache)

    @pytest.mark.asyncio
    async def test_reachable_redis_is_used(self):
        client = AsyncMock()
        client.ping.return_value = True

        assert isinstance(await build_cache(client), RedisCache)
