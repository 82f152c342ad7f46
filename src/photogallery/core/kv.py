"""Key-value backends for the catalog document and click counters.

The accessor in :mod:`photogallery.core.store` only needs ``get`` and
``put`` for reads and writes.  Counter increments need something stronger:
every backend implements :meth:`KeyValueStore.compare_and_set`, and the
default :meth:`KeyValueStore.increment` builds an optimistic
compare-and-swap retry loop on top of it.  Backends with a native atomic
increment (Redis ``INCR``) override ``increment`` directly.

Backends
--------
MemoryKeyValueStore
    Process-local dictionary.  Deterministic stand-in for tests and local
    development.
RedisKeyValueStore
    ``redis.asyncio`` client.  Safe across many server processes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from redis import asyncio as aioredis
from redis.exceptions import RedisError, ResponseError, WatchError

from photogallery.core.config import GalleryConfig
from photogallery.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)


def parse_counter(raw: str | None) -> int:
    """Interpret a stored counter value.

    Absent keys and values that are not non-negative integers read as 0.
    """
    if raw is None:
        return 0
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable counter value {raw!r}")
        return 0
    return value if value > 0 else 0


class KeyValueStore(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored at *key*, or ``None`` if absent."""

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Store *value* at *key*, replacing any previous value."""

    @abstractmethod
    async def compare_and_set(self, key: str, expected: str | None, value: str) -> bool:
        """Atomically write *value* if *key* currently holds *expected*.

        ``expected=None`` means "only if the key is absent".

        Returns:
            ``True`` if the write happened, ``False`` on a conflict.
        """

    async def increment(self, key: str, *, max_attempts: int = 64) -> int:
        """Add one to the counter at *key* and return the new value.

        Reads the current value and tries to swap in ``value + 1``.  A
        conflicting writer makes the swap fail, in which case the read is
        repeated.  Each round lets at least one contender through, so the
        loop only gives up under sustained contention.

        Raises:
            StoreUnavailable: if ``max_attempts`` rounds all conflict.
        """
        for attempt in range(1, max_attempts + 1):
            current = await self.get(key)
            new_value = parse_counter(current) + 1
            if await self.compare_and_set(key, current, str(new_value)):
                return new_value
            logger.debug(f"Counter {key} changed concurrently (attempt {attempt})")

        raise StoreUnavailable(f"Gave up incrementing {key} after {max_attempts} conflicts")

    async def close(self) -> None:
        """Release backend resources."""


class MemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store living inside one process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value

    async def compare_and_set(self, key: str, expected: str | None, value: str) -> bool:
        # No await between the check and the write, so the swap is atomic on
        # one event loop.
        if self._data.get(key) != expected:
            return False
        self._data[key] = value
        return True

    def snapshot(self) -> dict[str, str]:
        """Return a copy of every stored key."""
        return dict(self._data)


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store using the asyncio client."""

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisKeyValueStore:
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise StoreUnavailable(f"Redis GET {key} failed: {e}") from e

    async def put(self, key: str, value: str) -> None:
        try:
            await self._client.set(key, value)
        except RedisError as e:
            raise StoreUnavailable(f"Redis SET {key} failed: {e}") from e

    async def compare_and_set(self, key: str, expected: str | None, value: str) -> bool:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                current = await pipe.get(key)
                if current != expected:
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.set(key, value)
                await pipe.execute()
                return True
        except WatchError:
            return False
        except RedisError as e:
            raise StoreUnavailable(f"Redis CAS {key} failed: {e}") from e

    async def increment(self, key: str, *, max_attempts: int = 64) -> int:
        """Native ``INCR``.

        ``INCR`` rejects a value that is not an integer.  Such a counter
        reads as 0 everywhere else, so it is overwritten through the
        compare-and-swap loop instead, giving 1 as on every other backend.
        """
        try:
            return int(await self._client.incr(key))
        except ResponseError as e:
            logger.warning(f"Counter {key} is not an integer ({e}); resetting it")
            return await super().increment(key, max_attempts=max_attempts)
        except RedisError as e:
            raise StoreUnavailable(f"Redis INCR {key} failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


def create_kv_store(cfg: GalleryConfig) -> KeyValueStore:
    """Build the key-value backend selected by ``cfg.kv_backend``."""
    if cfg.kv_backend == "redis":
        logger.info(f"Using Redis key-value store at {cfg.redis_url}")
        return RedisKeyValueStore.from_url(cfg.redis_url)
    logger.info("Using in-memory key-value store")
    return MemoryKeyValueStore()
