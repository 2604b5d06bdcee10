"""
Leaselock - Distributed Locking

Provides Redis-based distributed locks for coordinating work across processes.
"""

from leaselock.errors import (
    AlreadyLocked,
    LockError,
    NotOwner,
    StoreUnavailable,
)
from leaselock.lock import RedisLock
from leaselock.operations import AtomicLockOperations

__all__ = [
    "AlreadyLocked",
    "AtomicLockOperations",
    "LockError",
    "NotOwner",
    "RedisLock",
    "StoreUnavailable",
]
