"""Redis implementation of FastStore.

This repository backs both the cache fast tier and the daily quota counters.
It satisfies the FastStore protocol through structural typing.
"""

import logging

import redis
import redis.asyncio as aioredis

from quizcache.config import get_redis_client
from quizcache.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisFastStore:
    """Redis implementation using plain string keys with expiry.

    Key layout:
    - ``ai:response:{fingerprint}``: cached payload JSON (written by ResponseCache)
    - ``tokens:user:{user_id}:daily``: daily token counter (written by QuotaLedger)

    Every redis error is re-raised as ``StoreUnavailableError`` so callers
    only deal with the quizcache taxonomy.
    """

    def __init__(self, redis_client: aioredis.Redis) -> None:
        """Initialize the Redis fast store.

        Args:
            redis_client: Async Redis client instance (required).
        """
        self._client = redis_client

    @classmethod
    def create(cls) -> "RedisFastStore | None":
        """Factory method to create RedisFastStore from settings.

        Returns:
            Configured RedisFastStore, or None when the fast tier is disabled
        """
        client = get_redis_client()
        if client is None:
            return None
        return cls(redis_client=client)

    async def get(self, key: str) -> str | None:
        """Read a value from Redis.

        Args:
            key: The key to read

        Returns:
            The stored value, or None if absent or expired
        """
        try:
            value = await self._client.get(key)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis GET failed for {key}: {e}", e) from e

        if isinstance(value, bytes):
            return value.decode()
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Write a value with SETEX.

        Args:
            key: The key to write
            value: The value to store
            ttl: Time-to-live in seconds
        """
        try:
            await self._client.setex(key, ttl, value)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis SETEX failed for {key}: {e}", e) from e

    async def increment(self, key: str, amount: int, ttl: int) -> int:
        """Atomically increment a counter, then set its expiry if it has none.

        The expiry is applied only when the counter has none, so the window
        is anchored at the first increment. Works on servers without
        ``EXPIRE ... NX`` (Redis < 7.0).

        Args:
            key: The counter key
            amount: Amount to add
            ttl: Expiry in seconds for a counter without one

        Returns:
            The counter value after the increment
        """
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incrby(key, amount)
                pipe.ttl(key)
                new_value, remaining = await pipe.execute()

            # -1: the key exists without an expiry
            if remaining == -1:
                await self._client.expire(key, ttl)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis INCRBY failed for {key}: {e}", e) from e

        return int(new_value)

    async def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            result = await self._client.ping()
            return bool(result)
        except redis.RedisError as e:
            logger.warning("Redis health check failed: %s", e)
            return False

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._client.aclose()

    @property
    def client(self) -> aioredis.Redis:
        """Get the Redis client."""
        return self._client
