"""
Leaselock - Test Fixtures

In-memory Redis double for protocol tests. Time only moves when a test
calls advance(), so TTL expiry is deterministic.
"""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from leaselock.config import get_settings
from leaselock.scripts import RELEASE_SCRIPT, RENEW_SCRIPT


class FakeScript:
    """Stands in for a registered Lua script, running its logic in Python."""

    def __init__(self, redis: "FakeRedis", source: str):
        self._redis = redis
        self.source = source
        self.calls: list[tuple[list, list]] = []

    async def __call__(self, keys=None, args=None, client=None):
        keys = list(keys or [])
        args = list(args or [])
        self.calls.append((keys, args))
        self._redis.check_failure()

        key, token = keys[0], str(args[0])
        if self._redis.peek(key) != token:
            return 0
        if self.source == RENEW_SCRIPT:
            self._redis.set_expiry(key, int(args[1]))
        elif self.source == RELEASE_SCRIPT:
            self._redis.remove(key)
        else:
            raise AssertionError("unknown script")
        return 1


class FakeRedis:
    """
    Minimal async Redis with the commands the lock uses.

    Set fail_with to an exception instance to make every command raise it.
    """

    def __init__(self):
        self.now = 0.0
        self.fail_with: Optional[Exception] = None
        self.closed = False
        self._values: dict[str, str] = {}
        self._expires_at: dict[str, float] = {}
        self.scripts: list[FakeScript] = []

    # Test helpers

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def check_failure(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def peek(self, key: str) -> Optional[str]:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and expires_at <= self.now:
            self.remove(key)
        return self._values.get(key)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)
        self._expires_at.pop(key, None)

    def set_expiry(self, key: str, seconds: int) -> None:
        self._expires_at[key] = self.now + seconds

    # Redis commands

    def register_script(self, source: str) -> FakeScript:
        script = FakeScript(self, source)
        self.scripts.append(script)
        return script

    async def set(self, name, value, ex=None, nx=False):
        self.check_failure()
        if nx and self.peek(name) is not None:
            return None
        self._values[name] = value
        self._expires_at.pop(name, None)
        if ex is not None:
            self.set_expiry(name, ex)
        return True

    async def get(self, name):
        self.check_failure()
        return self.peek(name)

    async def ttl(self, name) -> int:
        self.check_failure()
        if self.peek(name) is None:
            return -2
        expires_at = self._expires_at.get(name)
        if expires_at is None:
            return -1
        return int(round(expires_at - self.now))

    async def ping(self) -> bool:
        self.check_failure()
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis():
    """Fresh in-memory Redis per test."""
    return FakeRedis()


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.set = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.aclose = AsyncMock()
    # Mock script registration
    client.register_script = MagicMock(side_effect=lambda source: AsyncMock(return_value=1))
    return client


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
