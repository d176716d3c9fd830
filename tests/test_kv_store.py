"""
Tests for the key-value stores backing the rate limiter.

The in-memory store runs against a controllable timer; the Redis store is
exercised with a mocked redis.asyncio client.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from inference_gateway.core.config import StoreConfig
from inference_gateway.infrastructure.kv_store import (
    InMemoryKeyValueStore,
    RedisKeyValueStore,
    build_store,
)


class FakeTimer:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestInMemoryKeyValueStore:
    """Behavioral tests for InMemoryKeyValueStore."""

    @pytest.mark.asyncio
    async def test_put_then_get(self):
        store = InMemoryKeyValueStore()

        await store.put("rate_limit:ip:1.2.3.4", '{"requests": 1}', 60)

        assert await store.get("rate_limit:ip:1.2.3.4") == '{"requests": 1}'
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self):
        assert await InMemoryKeyValueStore().get("absent") is None

    @pytest.mark.asyncio
    async def test_entries_expire_after_ttl(self):
        timer = FakeTimer()
        store = InMemoryKeyValueStore(timer=timer)
        await store.put("key", "value", 10)

        timer.now = 9.9
        assert await store.get("key") == "value"

        timer.now = 10.0
        assert await store.get("key") is None

    @pytest.mark.asyncio
    async def test_each_entry_has_its_own_ttl(self):
        timer = FakeTimer()
        store = InMemoryKeyValueStore(timer=timer)
        await store.put("short", "a", 5)
        await store.put("long", "b", 500)

        timer.now = 100.0

        assert await store.get("short") is None
        assert await store.get("long") == "b"

    @pytest.mark.asyncio
    async def test_put_overwrites_and_resets_ttl(self):
        timer = FakeTimer()
        store = InMemoryKeyValueStore(timer=timer)
        await store.put("key", "old", 10)

        timer.now = 8.0
        await store.put("key", "new", 10)
        timer.now = 15.0

        assert await store.get("key") == "new"

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryKeyValueStore()
        await store.put("key", "value", 60)

        await store.delete("key")
        await store.delete("never-set")

        assert await store.get("key") is None

    @pytest.mark.asyncio
    async def test_rejects_ttl_below_one_second(self):
        with pytest.raises(ValueError):
            await InMemoryKeyValueStore().put("key", "value", 0)

    @pytest.mark.asyncio
    async def test_evicts_when_full(self):
        store = InMemoryKeyValueStore(maxsize=2)
        for index in range(3):
            await store.put(f"key-{index}", "v", 60)

        assert len(store) == 2
        assert await store.get("key-2") == "v"

    @pytest.mark.asyncio
    async def test_close_clears_entries(self):
        store = InMemoryKeyValueStore()
        await store.put("key", "value", 60)

        await store.close()

        assert len(store) == 0


class TestRedisKeyValueStore:
    """Tests for RedisKeyValueStore with a mocked client."""

    @pytest.fixture
    def redis_client(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self, redis_client):
        redis_client.get.return_value = b'{"requests": 3}'
        store = RedisKeyValueStore("redis://localhost:6379/0", client=redis_client)

        assert await store.get("rate_limit:token:abc") == '{"requests": 3}'
        redis_client.get.assert_awaited_once_with("rate_limit:token:abc")

    @pytest.mark.asyncio
    async def test_get_missing_key(self, redis_client):
        redis_client.get.return_value = None
        store = RedisKeyValueStore("redis://localhost:6379/0", client=redis_client)

        assert await store.get("absent") is None

    @pytest.mark.asyncio
    async def test_put_sets_expiry(self, redis_client):
        store = RedisKeyValueStore("redis://localhost:6379/0", client=redis_client)

        await store.put("key", "value", 42)

        redis_client.set.assert_awaited_once_with("key", "value", ex=42)

    @pytest.mark.asyncio
    async def test_put_rejects_ttl_below_one_second(self, redis_client):
        store = RedisKeyValueStore("redis://localhost:6379/0", client=redis_client)

        with pytest.raises(ValueError):
            await store.put("key", "value", 0)
        redis_client.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete(self, redis_client):
        store = RedisKeyValueStore("redis://localhost:6379/0", client=redis_client)

        await store.delete("key")

        redis_client.delete.assert_awaited_once_with("key")

    @pytest.mark.asyncio
    async def test_errors_propagate(self, redis_client):
        redis_client.get.side_effect = ConnectionError("connection refused")
        store = RedisKeyValueStore("redis://localhost:6379/0", client=redis_client)

        with pytest.raises(ConnectionError):
            await store.get("key")

    @pytest.mark.asyncio
    async def test_client_created_lazily_from_url(self, redis_client):
        with patch("redis.asyncio.from_url", return_value=redis_client) as from_url:
            store = RedisKeyValueStore("redis://cache:6379/1")
            from_url.assert_not_called()

            await store.put("key", "value", 5)

        from_url.assert_called_once_with("redis://cache:6379/1")

    @pytest.mark.asyncio
    async def test_close_releases_client(self, redis_client):
        store = RedisKeyValueStore("redis://localhost:6379/0", client=redis_client)

        await store.close()
        await store.close()

        redis_client.aclose.assert_awaited_once()


class TestBuildStore:
    def test_memory_backend(self):
        store = build_store(StoreConfig(backend="memory", max_entries=10))

        assert isinstance(store, InMemoryKeyValueStore)
        assert store.maxsize == 10

    def test_redis_backend(self):
        store = build_store(StoreConfig(backend="redis", redis_url="redis://cache:6379/0"))

        assert isinstance(store, RedisKeyValueStore)
        assert store.redis_url == "redis://cache:6379/0"

    def test_invalid_redis_url_rejected(self):
        with pytest.raises(ValueError):
            StoreConfig(redis_url="http://cache:6379")
