"""Key/value storage for sessions and the long-lived registry.

Two backends share one small async interface: an in-process dictionary
(development, tests, single worker) and Redis (multiple workers).
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as redis

from login_gate.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """JSON value store with optional per-key expiry."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store ``value``; ``ttl`` is in seconds, None keeps it forever."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary backed store. Values are JSON round-tripped like in Redis."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, Optional[float]]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._data[key]
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._data[key] = (json.dumps(value), expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisKeyValueStore(KeyValueStore):
    """Redis backed store."""

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or settings.REDIS_URL
        self.redis_client: Optional[redis.Redis] = None

    async def get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self.redis_client is None:
            self.redis_client = redis.from_url(
                self.url, encoding="utf-8", decode_responses=True
            )
        return self.redis_client

    async def get(self, key: str) -> Optional[Any]:
        client = await self.get_redis()
        value = await client.get(key)
        if value is None:
            return None
        return json.loads(value)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        client = await self.get_redis()
        if ttl:
            await client.setex(key, ttl, json.dumps(value))
        else:
            await client.set(key, json.dumps(value))

    async def delete(self, key: str) -> None:
        client = await self.get_redis()
        await client.delete(key)

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.close()
            self.redis_client = None


def create_store(backend: Optional[str] = None) -> KeyValueStore:
    """Build the store selected by ``SESSION_BACKEND``."""
    backend = backend or settings.SESSION_BACKEND
    if backend == "redis":
        logger.info("Session storage: redis url=%s", settings.REDIS_URL)
        return RedisKeyValueStore()
    logger.info("Session storage: in-memory")
    return InMemoryKeyValueStore()
