"""
Cache layer for Newsdesk web application.

Key-value cache with per-entry TTL, targeted and pattern-based deletion.
Two backends share one interface:

- RedisCacheBackend: shared across server instances (production)
- InMemoryCacheBackend: process-local, used for single-process setups and tests

CacheClient wraps a backend with per-call timeouts and turns every backend
failure into a no-op, so a degraded cache never fails a request.
"""

import asyncio
import fnmatch
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from src.web.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)

# Keys deleted per DEL round-trip during pattern deletion
DELETE_BATCH_SIZE = 500


class CacheBackend(ABC):
    """Interface every cache backend implements."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None if absent or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store value under key for ttl seconds."""
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        pass

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class InMemoryCacheBackend(CacheBackend):
    """
    Process-local cache backend.

    Entries expire lazily: an expired entry is dropped the next time it is
    read or matched. ``clock`` is injectable so tests can move time forward.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def _is_live(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry[1] <= self._clock():
            del self._entries[key]
            return False
        return True

    async def get(self, key: str) -> Optional[str]:
        if not self._is_live(key):
            return None
        return self._entries[key][0]

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._entries[key] = (value, self._clock() + ttl)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._is_live(key):
                deleted += 1
            self._entries.pop(key, None)
        return deleted

    async def delete_pattern(self, pattern: str) -> int:
        matching = [k for k in list(self._entries) if fnmatch.fnmatchcase(k, pattern)]
        return await self.delete(*matching)

    def keys(self) -> list[str]:
        """Live keys, for inspecting the cache in tests."""
        return [k for k in list(self._entries) if self._is_live(k)]


class RedisCacheBackend(CacheBackend):
    """Shared cache backend on Redis (redis.asyncio)."""

    def __init__(self, url: str, socket_timeout: Optional[float] = None):
        self._client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise CacheUnavailableError(f"GET {key} failed: {e}") from e

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl)
        except RedisError as e:
            raise CacheUnavailableError(f"SET {key} failed: {e}") from e

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return await self._client.delete(*keys)
        except RedisError as e:
            raise CacheUnavailableError(f"DEL failed: {e}") from e

    async def delete_pattern(self, pattern: str) -> int:
        # SCAN instead of KEYS so a large keyspace never blocks the server
        deleted = 0
        batch = []
        try:
            async for key in self._client.scan_iter(match=pattern, count=DELETE_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= DELETE_BATCH_SIZE:
                    deleted += await self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self._client.delete(*batch)
        except RedisError as e:
            raise CacheUnavailableError(f"Pattern delete {pattern} failed: {e}") from e
        return deleted

    async def close(self) -> None:
        await self._client.aclose()


class CacheClient:
    """
    Degrading front for a CacheBackend.

    Reads and writes are bounded by ``timeout`` seconds, deletes by
    ``invalidation_timeout`` (defaults to ``timeout``).
    Read failures behave as a miss. Write and delete failures are logged and
    swallowed.
    """

    def __init__(
        self,
        backend: CacheBackend,
        timeout: float = 0.25,
        invalidation_timeout: Optional[float] = None,
    ):
        self.backend = backend
        self.timeout = timeout
        self.invalidation_timeout = (
            invalidation_timeout if invalidation_timeout is not None else timeout
        )
        self.hits = 0
        self.misses = 0
        self.errors = 0

    async def _call(self, coro, timeout: Optional[float] = None):
        return await asyncio.wait_for(coro, timeout=timeout or self.timeout)

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._call(self.backend.get(key))
        except Exception as e:
            self.errors += 1
            self.misses += 1
            logger.debug(f"Cache read failed for {key}, treating as miss: {e!r}")
            return None

        if value is None:
            self.misses += 1
            logger.debug(f"Cache miss: {key}")
        else:
            self.hits += 1
            logger.debug(f"Cache hit: {key}")
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._call(self.backend.set(key, value, ttl))
        except Exception as e:
            self.errors += 1
            logger.debug(f"Cache write failed for {key}: {e!r}")

    async def delete(self, *keys: str) -> int:
        try:
            return await self._call(
                self.backend.delete(*keys), self.invalidation_timeout
            )
        except Exception as e:
            self.errors += 1
            logger.warning(f"Cache invalidation failed for {keys}: {e!r}")
            return 0

    async def delete_pattern(self, pattern: str) -> int:
        try:
            deleted = await self._call(
                self.backend.delete_pattern(pattern), self.invalidation_timeout
            )
        except Exception as e:
            self.errors += 1
            logger.warning(f"Cache invalidation failed for pattern {pattern}: {e!r}")
            return 0
        logger.debug(f"Invalidated {deleted} keys matching {pattern}")
        return deleted

    async def close(self) -> None:
        try:
            await self.backend.close()
        except Exception as e:
            logger.warning(f"Failed to close cache backend: {e!r}")

    def stats(self) -> dict:
        """Hit/miss/error counters since startup."""
        lookups = self.hits + self.misses
        return {
            "backend": type(self.backend).__name__,
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "hit_rate": round(self.hits / lookups, 4) if lookups else 0.0,
        }


def create_cache_client(
    url: str, timeout: float = 0.25, invalidation_timeout: Optional[float] = None
) -> CacheClient:
    """
    Build a CacheClient from a cache URL.

    Args:
        url: "memory://" for a process-local cache, or a redis:// / rediss://
            / unix:// URL for a shared Redis cache
        timeout: Per-call timeout in seconds for reads and writes
        invalidation_timeout: Timeout in seconds for deletes (defaults to timeout)

    Raises:
        ValueError: If the URL scheme is not supported
    """
    if url.startswith("memory://"):
        backend = InMemoryCacheBackend()
    elif url.startswith(("redis://", "rediss://", "unix://")):
        backend = RedisCacheBackend(url, socket_timeout=timeout)
    else:
        raise ValueError(f"Unsupported cache URL: {url}")

    logger.info(f"Cache backend: {type(backend).__name__}")
    return CacheClient(
        backend, timeout=timeout, invalidation_timeout=invalidation_timeout
    )
