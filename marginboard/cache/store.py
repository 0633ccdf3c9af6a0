"""Narrow key-value interface over the external cache service.

Services depend on ``KeyValueStore`` only, so the Valkey-backed store can be
swapped for an in-memory double in tests.
"""

from __future__ import annotations

from typing import Optional, Protocol

from redis.exceptions import RedisError

from marginboard.core.exceptions import CacheError
from marginboard.core.logging import get_logger

from .client import get_valkey_client

logger = get_logger("cache.store")


class KeyValueStore(Protocol):
    """String key-value store. Backend failures raise CacheError."""

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        ...

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store ``value`` under ``key``, optionally expiring after ``ttl`` seconds."""
        ...


class ValkeyStore:
    """KeyValueStore backed by the shared Valkey connection pool."""

    async def get(self, key: str) -> Optional[str]:
        try:
            client = await get_valkey_client()
            value = await client.get(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            raise CacheError(f"Cache read failed for {key}") from e
        logger.debug(f"Cache {'hit' if value is not None else 'miss'}: {key}")
        return value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            client = await get_valkey_client()
            await client.set(key, value, ex=ttl)
        except (RedisError, OSError) as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            raise CacheError(f"Cache write failed for {key}") from e
        logger.debug(f"Cache set: {key}, TTL: {ttl or 'none'}")
