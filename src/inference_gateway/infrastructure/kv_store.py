"""Key-value stores backing the rate limiter.

Two implementations of KeyValueStoreInterface:

    - InMemoryKeyValueStore: per-process store built on cachetools'
      TLRUCache, giving every entry its own TTL. Suitable for tests and for
      single-instance deployments.
    - RedisKeyValueStore: redis.asyncio client shared by every gateway
      instance. Values are written with SET ... EX so Redis expires them.

Neither store retries; failures propagate to the caller, which decides
whether to fail open.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import redis.asyncio as redis
from cachetools import TLRUCache

if TYPE_CHECKING:
    from inference_gateway.core.config import StoreConfig

logger = logging.getLogger(__name__)


def _expires_at(_key: str, entry: tuple[str, int], now: float) -> float:
    _, ttl_seconds = entry
    return now + ttl_seconds


class InMemoryKeyValueStore:
    """Process-local TTL store.

    Attributes:
        maxsize: Maximum number of keys held; least recently used keys are
            evicted first once full.

    Note:
        Not shared across processes. Use RedisKeyValueStore when more than
        one gateway instance serves traffic.
    """

    def __init__(
        self,
        maxsize: int = 100_000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.maxsize = maxsize
        self._cache: TLRUCache[str, tuple[str, int]] = TLRUCache(
            maxsize=maxsize, ttu=_expires_at, timer=timer
        )

    async def get(self, key: str) -> str | None:
        entry = self._cache.get(key)
        return None if entry is None else entry[0]

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        self._cache[key] = (value, ttl_seconds)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def close(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class RedisKeyValueStore:
    """Redis-backed store shared across gateway instances.

    The connection pool is created lazily on first use and released by
    close().

    Example:
        >>> store = RedisKeyValueStore("redis://localhost:6379/0")
        >>> await store.put("rate_limit:ip:1.2.3.4", "{...}", ttl_seconds=3600)
        >>> await store.get("rate_limit:ip:1.2.3.4")
        '{...}'
    """

    def __init__(self, redis_url: str, client: redis.Redis | None = None) -> None:
        """Initialize the store.

        Args:
            redis_url: Connection URL (redis://, rediss:// or unix://).
            client: Pre-built client, mainly for tests. Created from
                redis_url when omitted.
        """
        self.redis_url = redis_url
        self._redis = client

    def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        return self._redis

    async def get(self, key: str) -> str | None:
        value = await self._get_redis().get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        await self._get_redis().set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._get_redis().delete(key)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def build_store(config: StoreConfig) -> InMemoryKeyValueStore | RedisKeyValueStore:
    """Create the store selected by STORE_BACKEND."""
    match config.backend:
        case "redis":
            logger.info("kv_store_selected: backend=redis")
            return RedisKeyValueStore(config.redis_url)
        case _:
            logger.info("kv_store_selected: backend=memory, max_entries=%s", config.max_entries)
            return InMemoryKeyValueStore(maxsize=config.max_entries)


__all__ = ["InMemoryKeyValueStore", "RedisKeyValueStore", "build_store"]
