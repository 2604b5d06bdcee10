"""
Leaselock - Redis Distributed Lock

Caller-facing lock handle over the atomic lock operations.

Key features:
- SET NX EX for atomic acquire (token and TTL written together)
- Lua scripts for atomic renew/release with token verification
- Typed failures: AlreadyLocked, NotOwner, StoreUnavailable
- Optional key namespace ("namespace:key")
"""

import uuid
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from leaselock.config import get_settings
from leaselock.errors import AlreadyLocked, NotOwner
from leaselock.operations import AtomicLockOperations

logger = structlog.get_logger(__name__)


def _check_ttl(ttl_seconds: Any) -> int:
    # bool is an int subclass; EX True would mean one second
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int):
        raise ValueError(f"ttl_seconds must be a whole number of seconds, got {ttl_seconds!r}")
    if ttl_seconds < 1:
        raise ValueError(f"ttl_seconds must be >= 1, got {ttl_seconds}")
    return ttl_seconds


def _check_token(token: Any) -> str:
    if not isinstance(token, str) or not token:
        raise ValueError(f"token must be a non-empty string, got {token!r}")
    return token


class RedisLock:
    """
    Distributed lock using Redis.

    Each lease is a Redis key holding the owner's token with a TTL. Only the
    caller presenting the stored token can renew or release it.

    The handle carries a default token (a UUID unless one is given). It is
    used whenever an operation is called without a token and never changes.
    Sharing one handle's default token between independent logical locks
    that run concurrently is unsafe: pass an explicit token per lock instead.

    Usage:
        lock = RedisLock(client, namespace="workers")

        await lock.acquire("job1", ttl_seconds=30)
        try:
            # Do work...
            # Renew if work takes longer than the TTL
            await lock.renew("job1", ttl_seconds=30)
        finally:
            await lock.release("job1")
    """

    def __init__(
        self,
        client: aioredis.Redis,
        namespace: Optional[str] = None,
        token: Optional[str] = None,
    ):
        """
        Initialize the lock handle.

        Args:
            client: Redis client the lock operates on
            namespace: Optional key prefix, keys become "namespace:key"
            token: Default owner token. Defaults to a random UUID.
        """
        self._ops = AtomicLockOperations(client)
        self._namespace = namespace
        self._token = _check_token(token) if token is not None else str(uuid.uuid4())

    @classmethod
    def from_url(
        cls,
        url: Optional[str] = None,
        namespace: Optional[str] = None,
        token: Optional[str] = None,
        **client_kwargs: Any,
    ) -> "RedisLock":
        """
        Build a lock handle with its own Redis client.

        Args:
            url: Redis connection URL. Defaults to REDIS_URL setting.
            namespace: Key prefix. Defaults to LOCK_NAMESPACE setting.
            token: Default owner token. Defaults to a random UUID.
            **client_kwargs: Passed to redis.asyncio.from_url (timeouts etc.)
        """
        if token is not None:
            _check_token(token)
        settings = get_settings()
        client_kwargs.setdefault("decode_responses", True)
        client = aioredis.from_url(url or settings.redis_url, **client_kwargs)
        if namespace is None:
            namespace = settings.lock_namespace
        return cls(client, namespace=namespace, token=token)

    @property
    def token(self) -> str:
        """Default owner token used when an operation gets none."""
        return self._token

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    def _create_key(self, key: Any) -> str:
        """Apply the namespace prefix, if any."""
        if self._namespace:
            return f"{self._namespace}:{key}"
        return str(key)

    def _resolve_token(self, token: Optional[str]) -> str:
        if token is None:
            return self._token
        return _check_token(token)

    async def acquire(self, key: Any, ttl_seconds: int, token: Optional[str] = None) -> bool:
        """
        Acquire the lock.

        Args:
            key: The resource to lock
            ttl_seconds: Lock time-to-live in whole seconds
            token: Owner token. Defaults to the handle's token.

        Returns:
            True once the lock is held

        Raises:
            AlreadyLocked: If the key is already held
            StoreUnavailable: If the Redis call fails
        """
        ttl_seconds = _check_ttl(ttl_seconds)
        token = self._resolve_token(token)
        lock_key = self._create_key(key)

        acquired = await self._ops.acquire(lock_key, token, ttl_seconds)

        logger.info(
            "redis_lock_acquire_attempt",
            lock_key=lock_key,
            acquired=acquired,
            token=token,
            ttl_seconds=ttl_seconds,
        )

        if not acquired:
            logger.warning(
                "redis_lock_acquire_failed_already_locked",
                lock_key=lock_key,
                token=token,
            )
            raise AlreadyLocked(f"{lock_key!r} is already locked", key=lock_key)
        return True

    async def renew(self, key: Any, ttl_seconds: int, token: Optional[str] = None) -> bool:
        """
        Reset the lock TTL.

        Only succeeds if token currently holds the lock.

        Returns:
            True if renewed

        Raises:
            NotOwner: If the key is absent or held by another token
            StoreUnavailable: If the Redis call fails
        """
        ttl_seconds = _check_ttl(ttl_seconds)
        token = self._resolve_token(token)
        lock_key = self._create_key(key)

        renewed = await self._ops.renew(lock_key, token, ttl_seconds)

        if not renewed:
            logger.warning(
                "redis_lock_renew_failed_not_owner",
                lock_key=lock_key,
                token=token,
            )
            raise NotOwner(
                f"{lock_key!r} is not held by this token", key=lock_key, token=token
            )

        logger.debug(
            "redis_lock_renewed",
            lock_key=lock_key,
            token=token,
            ttl_seconds=ttl_seconds,
        )
        return True

    async def release(self, key: Any, token: Optional[str] = None) -> bool:
        """
        Release the lock.

        Only succeeds if token currently holds the lock. Releasing an
        already released lock raises NotOwner and changes nothing.

        Returns:
            True if released

        Raises:
            NotOwner: If the key is absent or held by another token
            StoreUnavailable: If the Redis call fails
        """
        token = self._resolve_token(token)
        lock_key = self._create_key(key)

        released = await self._ops.release(lock_key, token)

        if not released:
            logger.warning(
                "redis_lock_release_failed_not_owner",
                lock_key=lock_key,
                token=token,
            )
            raise NotOwner(
                f"{lock_key!r} is not held by this token", key=lock_key, token=token
            )

        logger.info("redis_lock_released", lock_key=lock_key, token=token)
        return True

    async def is_held(self, key: Any) -> Optional[str]:
        """
        Get the token currently holding the lock.

        Useful for debugging and status checks. The answer can be stale by
        the time the caller acts on it; use acquire/renew/release to act.

        Returns:
            The holder's token, or None if unlocked

        Raises:
            StoreUnavailable: If the Redis call fails
        """
        return await self._ops.get(self._create_key(key))

    async def is_available(self) -> bool:
        """Check if Redis answers a PING."""
        try:
            await self._ops.client.ping()
            return True
        except RedisError as e:
            logger.warning("redis_lock_not_available", error=str(e))
            return False

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._ops.client.aclose()

    async def __aenter__(self) -> "RedisLock":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
