"""
mcclient Configuration Settings

This module contains the configuration constants for the memcached client.
Values can be overridden through environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Client configuration settings."""

    # Network settings
    HOST: str = os.environ.get("MEMCACHE_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("MEMCACHE_PORT", "11211"))
    CONNECT_TIMEOUT: float = float(os.environ.get("MEMCACHE_CONNECT_TIMEOUT", "5.0"))

    # Seconds between reconnect attempts after a lost connection (0 disables)
    RECONNECT_DELAY: float = float(os.environ.get("MEMCACHE_RECONNECT_DELAY", "1.0"))

    # Protocol defaults
    DEFAULT_FLAGS: int = 0
    DEFAULT_EXPTIME: int = 0  # 0 means no expiration

    # Logging settings
    DEBUG: bool = os.environ.get("MEMCACHE_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("MEMCACHE_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
