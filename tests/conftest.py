"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator, Dict, List, Optional, Tuple

from mcclient.client.connection import MemcacheClient
from mcclient.client.correlator import PipelineCorrelator
from mcclient.network.transport import MemcacheConnection
from mcclient.protocol.parser import ReplyParser


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ReplyParser:
    """Create a ReplyParser instance."""
    return ReplyParser()


@pytest.fixture
def correlator() -> PipelineCorrelator:
    """Create an empty PipelineCorrelator."""
    return PipelineCorrelator()


# ============================================================================
# Client Fixtures
# ============================================================================

class RecordingTransport:
    """Transport stand-in that records everything the client writes."""

    def __init__(self):
        self.writes: List[bytes] = []

    def write(self, data: bytes) -> None:
        self.writes.append(data)

    @property
    def data(self) -> bytes:
        return b"".join(self.writes)


@pytest.fixture
def transport() -> RecordingTransport:
    """Create a transport that records writes."""
    return RecordingTransport()


@pytest.fixture
def client() -> MemcacheClient:
    """Create a client that has not been connected yet."""
    return MemcacheClient()


@pytest.fixture
def connected_client(client: MemcacheClient, transport: RecordingTransport) -> MemcacheClient:
    """Create a client whose transport is ready."""
    client.on_ready(transport)
    return client


# ============================================================================
# Server Fixtures
# ============================================================================

class FakeMemcacheServer:
    """
    Minimal in-process memcached speaking get, set and delete.

    Values survive client reconnects. drop_clients() closes every live
    connection to simulate a server-side disconnect.
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.data: Dict[str, Tuple[int, bytes]] = {}
        self.received: List[bytes] = []
        self.connections = 0
        self._server: Optional[asyncio.Server] = None
        self._writers: List[asyncio.StreamWriter] = []

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.append(writer)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                self.received.append(line)
                parts = line.decode().split()
                if not parts:
                    writer.write(b"ERROR\r\n")
                    continue

                command, args = parts[0], parts[1:]
                noreply = bool(args) and args[-1] == "noreply"

                if command == "get":
                    for key in args:
                        if key in self.data:
                            flags, value = self.data[key]
                            writer.write(f"VALUE {key} {flags} {len(value)}\r\n".encode())
                            writer.write(value + b"\r\n")
                    writer.write(b"END\r\n")
                elif command == "set":
                    key, flags, _exptime, length = args[0], int(args[1]), args[2], int(args[3])
                    block = await reader.readexactly(length + 2)
                    self.data[key] = (flags, block[:-2])
                    if not noreply:
                        writer.write(b"STORED\r\n")
                elif command == "delete":
                    found = self.data.pop(args[0], None) is not None
                    if not noreply:
                        writer.write(b"DELETED\r\n" if found else b"NOT_FOUND\r\n")
                else:
                    writer.write(b"ERROR\r\n")
                await writer.drain()
        except (ConnectionResetError, asyncio.IncompleteReadError):
            pass
        finally:
            if writer in self._writers:
                self._writers.remove(writer)
            writer.close()

    async def start(self) -> None:
        self._server = await asyncio.start_server(self.handle_client, self.host, self.port)
        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            pass

    def drop_clients(self) -> None:
        for writer in list(self._writers):
            writer.close()

    async def stop(self) -> None:
        self.drop_clients()
        if self._server is not None:
            self._server.close()
            self._server = None


@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[FakeMemcacheServer, None]:
    """
    Create and start a fake memcached server for testing.

    This fixture:
    1. Creates a FakeMemcacheServer on a random free port
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = FakeMemcacheServer('127.0.0.1', server_port)

    server_task = asyncio.create_task(srv.start())

    # Wait for server to be ready
    await asyncio.sleep(0.1)

    yield srv

    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


@pytest_asyncio.fixture
async def connection(
    server: FakeMemcacheServer,
    server_port: int
) -> AsyncGenerator[MemcacheConnection, None]:
    """Create an open connection to the fake server with fast reconnects."""
    conn = MemcacheConnection(host='127.0.0.1', port=server_port, reconnect_delay=0.2)
    await conn.open()

    yield conn

    await conn.close()


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def wait():
    """Provide the wait_until helper to tests."""
    return wait_until


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
