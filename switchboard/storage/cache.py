"""Key-value caches used by the graph tools."""

from __future__ import annotations

import logging
import time

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..errors import ConfigurationError, StoreError

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis-backed cache; every key is namespaced with ``key_prefix``."""

    def __init__(
        self,
        url: str | None,
        key_prefix: str = "onevice:",
        client: redis.Redis | None = None,
    ):
        self.url = url
        self.key_prefix = key_prefix
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.url) or self._client is not None

    async def connect(self) -> None:
        if self._client is not None:
            return
        if not self.url:
            raise ConfigurationError("REDIS_URL must be set")
        self._client = redis.from_url(self.url, decode_responses=True)
        logger.info("Connected to Redis")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Redis")

    async def __aenter__(self) -> "RedisCache":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> str | None:
        await self.connect()
        try:
            return await self._client.get(self._key(key))
        except RedisError as e:
            raise StoreError(f"Redis get failed: {e}") from e

    async def set(self, key: str, value: str, ttl_seconds: int = 300) -> None:
        await self.connect()
        try:
            await self._client.set(self._key(key), value, ex=ttl_seconds)
        except RedisError as e:
            raise StoreError(f"Redis set failed: {e}") from e

    async def delete(self, key: str) -> None:
        await self.connect()
        try:
            await self._client.delete(self._key(key))
        except RedisError as e:
            raise StoreError(f"Redis delete failed: {e}") from e

    async def verify_connection(self) -> bool:
        try:
            await self.connect()
            return bool(await self._client.ping())
        except (RedisError, ConfigurationError):
            return False


class MemoryCache:
    """In-process cache with per-key expiry, for development and tests."""

    def __init__(self):
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int = 300) -> None:
        self._entries[key] = (value, time.monotonic() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def close(self) -> None:
        self._entries.clear()


class NullCache:
    """Cache that stores nothing."""

    async def get(self, key: str) -> str | None:
        return None

    async def set(self, key: str, value: str, ttl_seconds: int = 300) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None

    async def close(self) -> None:
        return None
