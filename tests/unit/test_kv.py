"""Tests for photogallery.core.kv — key-value backends.

Tests cover:
- Counter value parsing.
- In-memory get/put and compare-and-set.
- The compare-and-swap increment loop under contention.
- The Redis backend's compare-and-set, native increment and error
  translation.
- Backend selection from configuration.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError, WatchError

from photogallery.core.errors import StoreUnavailable
from photogallery.core.kv import (
    MemoryKeyValueStore,
    RedisKeyValueStore,
    create_kv_store,
    parse_counter,
)


class YieldingKeyValueStore(MemoryKeyValueStore):
    """Memory store that yields to the event loop after every read.

    This lets concurrent increments interleave between their read and their
    compare-and-set, which is exactly the window a lost update needs.
    """

    async def get(self, key):
        value = await super().get(key)
        await asyncio.sleep(0)
        return value


class AlwaysConflictingStore(MemoryKeyValueStore):
    async def compare_and_set(self, key, expected, value):
        return False


def _redis_client(current=None):
    """Mocked asyncio client whose transaction pipeline sees *current*."""
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.__aexit__.return_value = False
    pipe.watch = AsyncMock()
    pipe.get = AsyncMock(return_value=current)
    pipe.unwatch = AsyncMock()
    pipe.execute = AsyncMock(return_value=[True])

    client = AsyncMock()
    client.pipeline = MagicMock(return_value=pipe)
    return client, pipe


class TestParseCounter:
    @pytest.mark.parametrize(
        "raw, expected",
        [(None, 0), ("0", 0), ("7", 7), ("-3", 0), ("abc", 0), ("", 0)],
    )
    def test_parse_counter(self, raw, expected):
        assert parse_counter(raw) == expected


class TestMemoryKeyValueStore:
    def test_get_missing_key(self):
        assert asyncio.run(MemoryKeyValueStore().get("nope")) is None

    def test_put_then_get(self):
        kv = MemoryKeyValueStore()

        async def scenario():
            await kv.put("k", "v")
            return await kv.get("k")

        assert asyncio.run(scenario()) == "v"

    def test_compare_and_set_on_absent_key(self):
        kv = MemoryKeyValueStore()
        assert asyncio.run(kv.compare_and_set("k", None, "1")) is True
        assert kv.snapshot() == {"k": "1"}

    def test_compare_and_set_conflict(self):
        kv = MemoryKeyValueStore({"k": "2"})
        assert asyncio.run(kv.compare_and_set("k", "1", "5")) is False
        assert kv.snapshot() == {"k": "2"}


class TestIncrementLoop:
    """Test the default compare-and-swap increment."""

    def test_sequential_increments(self):
        kv = MemoryKeyValueStore()

        async def scenario():
            return [await kv.increment("c") for _ in range(3)]

        assert asyncio.run(scenario()) == [1, 2, 3]

    def test_concurrent_increments_are_not_lost(self):
        kv = YieldingKeyValueStore({"c": "10"})

        async def scenario():
            return await asyncio.gather(*(kv.increment("c") for _ in range(20)))

        results = asyncio.run(scenario())
        assert kv.snapshot()["c"] == "30"
        # Every caller observed a distinct post-increment value.
        assert sorted(results) == list(range(11, 31))

    def test_increments_for_different_keys_are_independent(self):
        kv = YieldingKeyValueStore()

        async def scenario():
            await asyncio.gather(*(kv.increment(key) for key in ["x", "y", "x", "z", "y", "x"]))

        asyncio.run(scenario())
        assert kv.snapshot() == {"x": "3", "y": "2", "z": "1"}

    def test_corrupt_counter_restarts_at_one(self):
        kv = MemoryKeyValueStore({"c": "lots"})
        assert asyncio.run(kv.increment("c")) == 1
        assert kv.snapshot() == {"c": "1"}

    def test_gives_up_after_max_attempts(self):
        kv = AlwaysConflictingStore()
        with pytest.raises(StoreUnavailable):
            asyncio.run(kv.increment("c", max_attempts=3))


class TestRedisKeyValueStore:
    """Test the Redis backend against a mocked asyncio client."""

    def test_get_delegates_to_client(self):
        client = AsyncMock()
        client.get.return_value = "4"
        assert asyncio.run(RedisKeyValueStore(client).get("clicks-a")) == "4"
        client.get.assert_awaited_once_with("clicks-a")

    def test_put_delegates_to_client(self):
        client = AsyncMock()
        asyncio.run(RedisKeyValueStore(client).put("k", "v"))
        client.set.assert_awaited_once_with("k", "v")

    def test_increment_uses_incr(self):
        client = AsyncMock()
        client.incr.return_value = 12
        assert asyncio.run(RedisKeyValueStore(client).increment("clicks-a")) == 12
        client.incr.assert_awaited_once_with("clicks-a")
        client.get.assert_not_called()

    def test_redis_errors_become_store_unavailable(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("connection refused")
        with pytest.raises(StoreUnavailable):
            asyncio.run(RedisKeyValueStore(client).get("k"))

    def test_incr_errors_become_store_unavailable(self):
        client = AsyncMock()
        client.incr.side_effect = RedisConnectionError("connection refused")
        with pytest.raises(StoreUnavailable):
            asyncio.run(RedisKeyValueStore(client).increment("k"))

    def test_compare_and_set_writes_on_match(self):
        client, pipe = _redis_client(current="3")
        assert asyncio.run(RedisKeyValueStore(client).compare_and_set("k", "3", "4")) is True
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.watch.assert_awaited_once_with("k")
        pipe.multi.assert_called_once()
        pipe.set.assert_called_once_with("k", "4")
        pipe.execute.assert_awaited_once()

    def test_compare_and_set_on_absent_key(self):
        client, pipe = _redis_client(current=None)
        assert asyncio.run(RedisKeyValueStore(client).compare_and_set("k", None, "1")) is True
        pipe.set.assert_called_once_with("k", "1")

    def test_compare_and_set_mismatch_does_not_write(self):
        client, pipe = _redis_client(current="5")
        assert asyncio.run(RedisKeyValueStore(client).compare_and_set("k", "3", "4")) is False
        pipe.unwatch.assert_awaited_once()
        pipe.set.assert_not_called()
        pipe.execute.assert_not_awaited()

    def test_compare_and_set_concurrent_write_is_a_conflict(self):
        client, pipe = _redis_client(current="3")
        pipe.execute.side_effect = WatchError("k changed")
        assert asyncio.run(RedisKeyValueStore(client).compare_and_set("k", "3", "4")) is False

    def test_compare_and_set_errors_become_store_unavailable(self):
        client, pipe = _redis_client(current="3")
        pipe.watch.side_effect = RedisConnectionError("connection reset")
        with pytest.raises(StoreUnavailable):
            asyncio.run(RedisKeyValueStore(client).compare_and_set("k", "3", "4"))

    def test_increment_resets_non_integer_counter(self):
        client, pipe = _redis_client(current="lots")
        client.incr.side_effect = ResponseError("value is not an integer or out of range")
        client.get.return_value = "lots"
        assert asyncio.run(RedisKeyValueStore(client).increment("clicks-a")) == 1
        pipe.set.assert_called_once_with("clicks-a", "1")

    def test_close_closes_client(self):
        client = AsyncMock()
        asyncio.run(RedisKeyValueStore(client).close())
        client.aclose.assert_awaited_once()


class TestCreateKvStore:
    def test_memory_backend(self, test_config):
        assert isinstance(create_kv_store(test_config), MemoryKeyValueStore)

    def test_redis_backend(self, test_config):
        cfg = test_config.model_copy(update={"kv_backend": "redis"})
        # from_url does not connect until the first command.
        assert isinstance(create_kv_store(cfg), RedisKeyValueStore)
