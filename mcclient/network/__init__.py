"""Network module for mcclient."""

from .transport import MemcacheConnection, MemcacheProtocol, connect

__all__ = ["MemcacheConnection", "MemcacheProtocol", "connect"]
