"""
Test Key-Value Stores
=====================

Unit tests for MemoryStore and RedisStore (mocked redis client).
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from secondme.storage.cache import MemoryStore, RedisConfig, RedisStore


class TestMemoryStore:
    """Test the in-process TTL store."""

    @pytest.mark.asyncio
    async def test_get_missing(self, memory_store):
        assert await memory_store.get("nope") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, memory_store):
        await memory_store.set("k", "v", 10)
        assert await memory_store.get("k") == "v"

    @pytest.mark.asyncio
    async def test_expiry(self, memory_store, clock):
        """Entries expire once the TTL elapses."""
        await memory_store.set("k", "v", 10)

        clock.advance(9.9)
        assert await memory_store.get("k") == "v"

        clock.advance(0.1)
        assert await memory_store.get("k") is None

    @pytest.mark.asyncio
    async def test_no_ttl_never_expires(self, memory_store, clock):
        await memory_store.set("k", "v")
        clock.advance(10_000)
        assert await memory_store.get("k") == "v"

    @pytest.mark.asyncio
    async def test_zrevrange_order(self, memory_store):
        """Members come back highest score first."""
        await memory_store.zadd("z", {"a": 1, "b": 3, "c": 2})

        assert await memory_store.zrevrange("z", 0, -1) == ["b", "c", "a"]

    @pytest.mark.asyncio
    async def test_zrevrange_inclusive_stop(self, memory_store):
        """stop is inclusive, as in Redis."""
        await memory_store.zadd("z", {"a": 1, "b": 2, "c": 3, "d": 4})

        assert await memory_store.zrevrange("z", 0, 1) == ["d", "c"]
        assert await memory_store.zrevrange("z", 1, 2) == ["c", "b"]

    @pytest.mark.asyncio
    async def test_zadd_counts_new_members(self, memory_store):
        assert await memory_store.zadd("z", {"a": 1, "b": 2}) == 2
        assert await memory_store.zadd("z", {"a": 5, "c": 1}) == 1
        assert await memory_store.zcard("z") == 3

    @pytest.mark.asyncio
    async def test_zcard_missing(self, memory_store):
        assert await memory_store.zcard("missing") == 0

    @pytest.mark.asyncio
    async def test_close_clears(self, memory_store):
        await memory_store.set("k", "v")
        await memory_store.zadd("z", {"a": 1})

        await memory_store.close()

        assert await memory_store.get("k") is None
        assert await memory_store.zcard("z") == 0


@pytest.fixture
def mock_redis():
    client = MagicMock()
    client.get = AsyncMock(return_value="cached")
    client.setex = AsyncMock()
    client.zrevrange = AsyncMock(return_value=["m2", "m1"])
    client.zcard = AsyncMock(return_value=2)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


class TestRedisStore:
    """Test RedisStore against a mocked redis.asyncio client."""

    def test_url(self):
        config = RedisConfig(host="cache.local", port=6390, db=2)
        assert config.url == "redis://cache.local:6390/2"

    @pytest.mark.asyncio
    async def test_get(self, mock_redis):
        store = RedisStore(client=mock_redis)

        assert await store.get("k") == "cached"
        mock_redis.get.assert_awaited_once_with("k")

    @pytest.mark.asyncio
    async def test_set_rounds_ttl_up(self, mock_redis):
        """SETEX receives whole seconds."""
        store = RedisStore(client=mock_redis)

        await store.set("k", "v", 2.5)

        mock_redis.setex.assert_awaited_once_with("k", 3, "v")

    @pytest.mark.asyncio
    async def test_zrevrange_and_zcard(self, mock_redis):
        store = RedisStore(client=mock_redis)

        assert await store.zrevrange("HISTORY:c1", 0, 39) == ["m2", "m1"]
        assert await store.zcard("HISTORY:c1") == 2
        mock_redis.zrevrange.assert_awaited_once_with("HISTORY:c1", 0, 39)

    @pytest.mark.asyncio
    async def test_ping_failure(self, mock_redis):
        mock_redis.ping = AsyncMock(side_effect=ConnectionError("down"))
        store = RedisStore(client=mock_redis)

        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_close(self, mock_redis):
        store = RedisStore(client=mock_redis)

        await store.close()

        mock_redis.aclose.assert_awaited_once()
