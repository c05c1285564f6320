"""
Async TCP Transport Module

This module connects a MemcacheClient to a real server using asyncio.

Key asyncio concepts used:
- loop.create_connection(): open a TCP connection driven by a Protocol
- Protocol.connection_made / data_received / connection_lost: the events
  forwarded to the client's on_ready / on_data / on_closed hooks
- A background task that re-opens the connection after it is lost
"""

import asyncio
import logging
from typing import Optional

from ..client.connection import MemcacheClient
from ..config.settings import settings
from ..errors import ConnectionFailedError

logger = logging.getLogger(__name__)


class MemcacheProtocol(asyncio.Protocol):
    """asyncio Protocol that forwards transport events to a MemcacheConnection."""

    def __init__(self, connection: "MemcacheConnection"):
        self._conn = connection

    def connection_made(self, transport: asyncio.Transport) -> None:
        self._conn._on_connection_made(transport)

    def data_received(self, data: bytes) -> None:
        self._conn.client.on_data(data)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._conn._on_connection_lost(exc)


class MemcacheConnection:
    """
    Owns the TCP link to one memcached server.

    Usage:
        connection = MemcacheConnection(MemcacheClient(), '127.0.0.1', 11211)
        await connection.open()
        await connection.client.aset('a', 'hello')
        await connection.close()

    Attributes:
        client: The MemcacheClient driven by this connection
        host: Server address
        port: Server port
        reconnect_delay: Seconds between reconnect attempts (<= 0 disables)
    """

    def __init__(
            self,
            client: MemcacheClient = None,
            host: str = None,
            port: int = None,
            reconnect_delay: float = None,
            connect_timeout: float = None,
    ):
        self.client = client if client is not None else MemcacheClient()
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.reconnect_delay = (
            reconnect_delay if reconnect_delay is not None else settings.RECONNECT_DELAY
        )
        self.connect_timeout = (
            connect_timeout if connect_timeout is not None else settings.CONNECT_TIMEOUT
        )

        self._transport: Optional[asyncio.Transport] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closing = False

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    async def open(self) -> "MemcacheConnection":
        """
        Establish the first connection.

        Raises:
            ConnectionFailedError: if the server cannot be reached
        """
        try:
            await self._create_connection()
        except (OSError, asyncio.TimeoutError) as exc:
            logger.error(f"Failed to connect to {self.address}: {exc}")
            try:
                self.client.on_closed()
            except ConnectionFailedError as failure:
                raise failure from exc
        return self

    async def close(self) -> None:
        """Close the connection and stop reconnecting."""
        self._closing = True

        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None

        if self._transport is not None:
            self._transport.close()
            self._transport = None

    async def _create_connection(self) -> None:
        loop = asyncio.get_running_loop()
        await asyncio.wait_for(
            loop.create_connection(lambda: MemcacheProtocol(self), self.host, self.port),
            timeout=self.connect_timeout,
        )

    def _on_connection_made(self, transport: asyncio.Transport) -> None:
        self._transport = transport
        logger.info(f"Connected to {self.address}")
        self.client.on_ready(transport)

    def _on_connection_lost(self, exc: Optional[Exception]) -> None:
        self._transport = None
        if exc is not None:
            logger.debug(f"Connection to {self.address} lost: {exc}")
        self.client.on_closed()

        if not self._closing and self.reconnect_delay > 0:
            self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect())

    async def _reconnect(self) -> None:
        """Retry the connection every reconnect_delay seconds until it succeeds."""
        while not self._closing:
            await asyncio.sleep(self.reconnect_delay)
            logger.info(f"Reconnecting to {self.address}")
            try:
                await self._create_connection()
                return
            except (OSError, asyncio.TimeoutError) as exc:
                logger.warning(f"Reconnect to {self.address} failed: {exc}")
                self.client.on_closed()


async def connect(
        host: str = None,
        port: int = None,
        reconnect_delay: float = None,
        client: MemcacheClient = None,
) -> MemcacheConnection:
    """
    Convenience function to create a client and open its connection.

    Usage:
        connection = await connect('127.0.0.1', 11211)
        values = await connection.client.aget('a', 'b')
    """
    connection = MemcacheConnection(
        client=client,
        host=host,
        port=port,
        reconnect_delay=reconnect_delay,
    )
    return await connection.open()
