"""
Leaselock - Atomic Lock Operations

The three indivisible operations the lock protocol is built on. Each one is
exactly one round trip to Redis:

- acquire: SET key token NX EX ttl (value and expiry written together)
- renew: Lua script, compare token then EXPIRE
- release: Lua script, compare token then DEL

A Redis failure is raised as StoreUnavailable, never reported as False.
"""

from typing import Optional, Union

import redis.asyncio as aioredis
import structlog
from redis.commands.core import AsyncScript
from redis.exceptions import RedisError

from leaselock.errors import StoreUnavailable
from leaselock.scripts import RELEASE_SCRIPT, RENEW_SCRIPT

logger = structlog.get_logger(__name__)


def _decode(value: Union[bytes, str, None]) -> Optional[str]:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class AtomicLockOperations:
    """
    Atomic acquire/renew/release against a Redis client.

    Scripts are registered once at construction. Registration is local;
    the script body is sent with EVALSHA and falls back to EVAL when the
    server's script cache does not have it yet.
    """

    def __init__(self, client: aioredis.Redis):
        self._client = client
        self._renew_script: AsyncScript = client.register_script(RENEW_SCRIPT)
        self._release_script: AsyncScript = client.register_script(RELEASE_SCRIPT)

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    async def acquire(self, key: str, token: str, ttl_seconds: int) -> bool:
        """
        Set key to token with a TTL, only if key is absent.

        Returns:
            True if the key was absent and is now held by token,
            False if it already existed (nothing written)

        Raises:
            StoreUnavailable: If the Redis call fails
        """
        try:
            # SET key value NX EX ttl
            # NX = only set if not exists
            # EX = expire in seconds
            result = await self._client.set(key, token, nx=True, ex=ttl_seconds)
        except RedisError as e:
            logger.error("redis_lock_acquire_error", lock_key=key, error=str(e))
            raise StoreUnavailable(
                f"acquire failed for {key!r}: {e}", key=key, cause=e
            ) from e

        return result is True

    async def renew(self, key: str, token: str, ttl_seconds: int) -> bool:
        """
        Reset the TTL of key to ttl_seconds if token holds it.

        Raises:
            StoreUnavailable: If the Redis call fails
        """
        try:
            result = await self._renew_script(keys=[key], args=[token, ttl_seconds])
        except RedisError as e:
            logger.error("redis_lock_renew_error", lock_key=key, error=str(e))
            raise StoreUnavailable(
                f"renew failed for {key!r}: {e}", key=key, cause=e
            ) from e

        return result == 1

    async def release(self, key: str, token: str) -> bool:
        """
        Delete key if token holds it.

        Raises:
            StoreUnavailable: If the Redis call fails
        """
        try:
            result = await self._release_script(keys=[key], args=[token])
        except RedisError as e:
            logger.error("redis_lock_release_error", lock_key=key, error=str(e))
            raise StoreUnavailable(
                f"release failed for {key!r}: {e}", key=key, cause=e
            ) from e

        return result == 1

    async def get(self, key: str) -> Optional[str]:
        """Read the current token for key. Not atomic with anything else."""
        try:
            value = await self._client.get(key)
        except RedisError as e:
            logger.error("redis_lock_get_holder_error", lock_key=key, error=str(e))
            raise StoreUnavailable(
                f"get failed for {key!r}: {e}", key=key, cause=e
            ) from e

        try:
            return _decode(value)
        except UnicodeDecodeError as e:
            logger.error("redis_lock_get_holder_decode_error", lock_key=key, error=str(e))
            raise StoreUnavailable(
                f"value stored at {key!r} is not a UTF-8 token", key=key, cause=e
            ) from e
