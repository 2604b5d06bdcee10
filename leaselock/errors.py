"""
Leaselock - Lock Errors

Typed outcomes for lock operations. Contention (AlreadyLocked, NotOwner)
and store failures (StoreUnavailable) are separate types: "someone else
has it" versus "Redis did not answer".
"""

from typing import Optional


class LockError(Exception):
    """Base exception for lock errors."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class AlreadyLocked(LockError):
    """Raised when acquire finds the key already held."""
    pass


class NotOwner(LockError):
    """Raised when renew/release presents a token that does not hold the key."""

    def __init__(self, message: str, key: Optional[str] = None, token: Optional[str] = None):
        super().__init__(message, key=key)
        self.token = token


class StoreUnavailable(LockError):
    """Raised when the Redis call itself fails."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, key=key)
        self.cause = cause
