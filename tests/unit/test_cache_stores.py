"""Tests for cache keys, the in-memory cache store and the Redis client."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from catalog.cache.keys import CacheKeys, CacheTags
from catalog.cache.memory_cache import MemoryCacheStore
from catalog.cache.redis_client import RedisClient
from catalog.errors import CacheUnavailableError


class TestCacheKeys:
    def test_product_key(self) -> None:
        assert CacheKeys.product("abc") == "product:abc"

    def test_product_list_key(self) -> None:
        assert CacheKeys.product_list(10, 20) == "product_list:10:20"

    def test_search_key_keeps_empty_query(self) -> None:
        assert CacheKeys.search("", 10, 0) == "search::10:0"

    def test_suggestions_key(self) -> None:
        assert CacheKeys.suggestions("pho", 5) == "suggestions:pho:5"

    def test_tag_names(self) -> None:
        assert CacheTags.PRODUCTS == "product_keys"
        assert CacheTags.PRODUCT_LIST == "product_list_keys"
        assert CacheTags.SEARCH == "search_keys"
        assert CacheTags.SUGGESTIONS == "suggestions_keys"


class TestMemoryCacheStore:
    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self, cache: MemoryCacheStore) -> None:
        assert await cache.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache: MemoryCacheStore) -> None:
        await cache.set_with_ttl("key1", 300, "value1")
        assert await cache.get("key1") == "value1"

    @pytest.mark.asyncio
    async def test_entries_expire_with_their_own_ttl(self, cache: MemoryCacheStore, clock) -> None:
        await cache.set_with_ttl("short", 60, "a")
        await cache.set_with_ttl("long", 300, "b")

        clock.advance(61)

        assert await cache.get("short") is None
        assert await cache.get("long") == "b"

    @pytest.mark.asyncio
    async def test_set_members_are_unique(self, cache: MemoryCacheStore) -> None:
        for _ in range(3):
            await cache.add_to_set("tag", "product:1")
        await cache.add_to_set("tag", "product:2")

        assert await cache.get_set_members("tag") == ["product:1", "product:2"]

    @pytest.mark.asyncio
    async def test_missing_set_is_empty(self, cache: MemoryCacheStore) -> None:
        assert await cache.get_set_members("nothing") == []

    @pytest.mark.asyncio
    async def test_sets_do_not_expire(self, cache: MemoryCacheStore, clock) -> None:
        await cache.add_to_set("tag", "product:1")
        clock.advance(10_000)
        assert await cache.get_set_members("tag") == ["product:1"]

    @pytest.mark.asyncio
    async def test_delete_keys_removes_entries_and_sets(self, cache: MemoryCacheStore) -> None:
        await cache.set_with_ttl("product:1", 300, "x")
        await cache.add_to_set("tag", "product:1")

        deleted = await cache.delete_keys("product:1", "tag", "unknown")

        assert deleted == 2
        assert await cache.get("product:1") is None
        assert await cache.get_set_members("tag") == []


class TestRedisClient:
    @pytest.fixture()
    def client(self) -> RedisClient:
        client = RedisClient("redis://localhost:6379/0")
        client.redis = AsyncMock()
        client._is_available = True
        return client

    @pytest.mark.asyncio
    async def test_unconnected_client_raises_without_network(self) -> None:
        client = RedisClient("redis://localhost:6379/0")

        assert client.is_available() is False
        with pytest.raises(CacheUnavailableError):
            await client.get("product:1")

    @pytest.mark.asyncio
    async def test_client_recovers_after_startup_outage(self, monkeypatch) -> None:
        flaky = AsyncMock()
        flaky.ping.side_effect = [OSError("connection refused"), True]
        flaky.get.return_value = "{}"
        monkeypatch.setattr("catalog.cache.redis_client.redis.from_url", lambda *a, **kw: flaky)

        client = RedisClient("redis://localhost:6379/0")
        await client.connect()

        assert client.is_available() is False
        assert await client.ping() is True
        assert client.is_available() is True
        assert await client.get("product:1") == "{}"

    @pytest.mark.asyncio
    async def test_failed_call_marks_client_unavailable(self, client: RedisClient) -> None:
        client.redis.setex.side_effect = ConnectionError("reset by peer")

        with pytest.raises(CacheUnavailableError):
            await client.set_with_ttl("product:1", 300, "{}")

        assert client.is_available() is False

    @pytest.mark.asyncio
    async def test_disconnect_drops_the_client(self, client: RedisClient) -> None:
        await client.disconnect()

        assert client.redis is None
        with pytest.raises(CacheUnavailableError):
            await client.get("product:1")

    @pytest.mark.asyncio
    async def test_set_with_ttl_uses_setex(self, client: RedisClient) -> None:
        await client.set_with_ttl("product:1", 300, "{}")
        client.redis.setex.assert_awaited_once_with("product:1", 300, "{}")

    @pytest.mark.asyncio
    async def test_add_to_set_uses_sadd(self, client: RedisClient) -> None:
        await client.add_to_set("product_keys", "product:1")
        client.redis.sadd.assert_awaited_once_with("product_keys", "product:1")

    @pytest.mark.asyncio
    async def test_get_set_members_returns_sorted_list(self, client: RedisClient) -> None:
        client.redis.smembers.return_value = {"b", "a"}
        assert await client.get_set_members("tag") == ["a", "b"]

    @pytest.mark.asyncio
    async def test_delete_keys_with_no_keys_is_noop(self, client: RedisClient) -> None:
        assert await client.delete_keys() == 0
        client.redis.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_redis_errors_become_cache_unavailable(self, client: RedisClient) -> None:
        client.redis.get.side_effect = TimeoutError("socket timeout")

        with pytest.raises(CacheUnavailableError):
            await client.get("product:1")
