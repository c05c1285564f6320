"""Exceptions raised by the memcached client."""


class MemcacheError(Exception):
    """Base class for client errors."""


class ConnectionFailedError(MemcacheError):
    """
    The connection to the server could not be established.

    Raised when the very first connection attempt fails, and for any
    command issued afterwards. This condition is not retried.
    """
