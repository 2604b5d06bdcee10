"""
Leaselock - Configuration
Environment-based settings management
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class LockSettings(BaseSettings):
    """Lock settings from environment variables."""

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Key namespace shared by every lock created through from_url()
    lock_namespace: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> LockSettings:
    """Get cached settings instance."""
    return LockSettings()
