"""
mcclient: Pipelined memcached client

An asynchronous client for the memcached text protocol built with
Python asyncio. Commands are pipelined over one persistent TCP
connection and complete through callbacks or awaitables.
"""

from .client.connection import ConnectionStatus, MemcacheClient
from .errors import ConnectionFailedError, MemcacheError
from .network.transport import MemcacheConnection, connect

__version__ = "1.0.0"

__all__ = [
    "ConnectionFailedError",
    "ConnectionStatus",
    "MemcacheClient",
    "MemcacheConnection",
    "MemcacheError",
    "connect",
]
