"""
Key-Value Stores
================

Two interchangeable stores with TTL support:

- RedisStore: redis.asyncio backed, shared across processes. Holds the
  embedding cache and the per-contact recency-ordered message sets
  (sorted sets scored by timestamp).
- MemoryStore: process-local, with an injectable clock. Used when Redis is
  not wanted (single process, tests).

Both expose the same coroutine methods:

    await store.get(key)                        -> Optional[str]
    await store.set(key, value, ttl_seconds)
    await store.zrevrange(key, start, stop)     -> List[str]
    await store.zcard(key)                      -> int
"""

import math
import time
from typing import Callable, Dict, List, Optional, Tuple

import redis.asyncio as aioredis
import structlog
from redis.asyncio import Redis

from secondme.storage.cache.config import RedisConfig

log = structlog.get_logger()


class RedisStore:
    """
    Redis key-value store.

    The client is created lazily on first use unless one is injected.
    """

    def __init__(
        self,
        config: Optional[RedisConfig] = None,
        client: Optional[Redis] = None
    ):
        self.config = config or RedisConfig()
        self._client: Optional[Redis] = client

    def _get_client(self) -> Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = aioredis.from_url(
                self.config.url,
                password=self.config.password,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.config.socket_timeout,
                socket_timeout=self.config.socket_timeout,
            )
            log.info("Redis client created", host=self.config.host, port=self.config.port, db=self.config.db)
        return self._client

    async def get(self, key: str) -> Optional[str]:
        return await self._get_client().get(key)

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        # SETEX only takes whole seconds
        await self._get_client().setex(key, max(1, math.ceil(ttl_seconds)), value)

    async def zrevrange(self, key: str, start: int, stop: int) -> List[str]:
        return await self._get_client().zrevrange(key, start, stop)

    async def zcard(self, key: str) -> int:
        return await self._get_client().zcard(key)

    async def ping(self) -> bool:
        try:
            return bool(await self._get_client().ping())
        except Exception as e:
            log.error("Redis ping failed", error=str(e))
            return False

    async def close(self):
        """Close Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class MemoryStore:
    """
    In-process key-value store with per-key expiry.

    Not synchronized across processes. Expired entries are dropped lazily
    on access.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._values: Dict[str, Tuple[str, Optional[float]]] = {}
        self._sorted_sets: Dict[str, Dict[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._values.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._values[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        expires_at = None if ttl_seconds is None else self._clock() + ttl_seconds
        self._values[key] = (value, expires_at)

    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        members = self._sorted_sets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in members)
        members.update(mapping)
        return added

    async def zrevrange(self, key: str, start: int, stop: int) -> List[str]:
        members = self._sorted_sets.get(key, {})
        ordered = sorted(members.items(), key=lambda item: item[1], reverse=True)
        values = [member for member, _ in ordered]
        # Redis semantics: stop is inclusive, -1 means "to the end"
        end = None if stop == -1 else stop + 1
        return values[start:end]

    async def zcard(self, key: str) -> int:
        return len(self._sorted_sets.get(key, {}))

    async def ping(self) -> bool:
        return True

    async def close(self):
        self._values.clear()
        self._sorted_sets.clear()
