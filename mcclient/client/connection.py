"""
Memcache Client Module

This module implements the client-facing command operations and the
connection state machine that gates them on link readiness.

The client never touches sockets itself. A transport adapter drives it
through three hooks:
- on_ready(transport): the link is usable; transport.write(bytes) sends data
- on_data(data): bytes arrived from the server
- on_closed(): the link went away (or never came up)
"""

import asyncio
import logging
from collections import deque
from enum import Enum, auto
from typing import Any, Callable, Deque, Dict, List, Optional

from ..config.settings import settings
from ..errors import ConnectionFailedError
from ..protocol.commands import encode_delete, encode_get, encode_set, sanitize_key
from ..protocol.parser import ReplyParser
from .correlator import PipelineCorrelator

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """Lifecycle states of the single server connection."""
    CONNECTING = auto()
    CONNECTED = auto()
    DISCONNECTED = auto()
    FATALLY_FAILED = auto()


class MemcacheClient:
    """
    Pipelined client for the memcached text protocol.

    Commands may be issued at any time. While the connection is not ready
    they are queued and sent, in issue order, as soon as on_ready() fires.
    Replies complete through callbacks; commands of the same kind complete
    in the order they were issued.

    Usage:
        client = MemcacheClient()
        client.set("a", "hello")
        client.get("a", "b", callback=lambda values: print(values))
        # [b'hello', None] once the transport delivers the reply

    Attributes:
        status: Current ConnectionStatus
        parser: The ReplyParser owning the inbound buffer
        correlator: The PipelineCorrelator holding pending completions
    """

    def __init__(self, on_unknown: Optional[Callable[[bytes], Any]] = None):
        """
        Initialize the client.

        Args:
            on_unknown: Optional hook called with every unrecognized reply line
        """
        self.status = ConnectionStatus.CONNECTING
        self.parser = ReplyParser()
        self.correlator = PipelineCorrelator(on_unknown=on_unknown)

        self._transport = None
        self._ready_queue: Deque[Callable[[], None]] = deque()

    @property
    def is_connected(self) -> bool:
        """Check if commands are currently written straight to the transport."""
        return self.status == ConnectionStatus.CONNECTED

    @property
    def queued(self) -> int:
        """Number of commands waiting for the connection to become ready."""
        return len(self._ready_queue)

    def pending(self) -> Dict[str, int]:
        """Return the number of sent commands awaiting a reply, per kind."""
        return self.correlator.pending()

    # ------------------------------------------------------------------
    # Transport hooks
    # ------------------------------------------------------------------

    def on_ready(self, transport) -> None:
        """
        Handle a (re)established connection.

        Resets all per-connection state, then sends every command queued
        while the link was down, in the order they were issued.
        """
        self._transport = transport
        self.parser.reset()
        self.correlator.reset()
        self.status = ConnectionStatus.CONNECTED
        logger.info(f"Connected, sending {len(self._ready_queue)} queued command(s)")

        while self._ready_queue and self.status == ConnectionStatus.CONNECTED:
            action = self._ready_queue.popleft()
            action()

    def on_data(self, data: bytes) -> None:
        """Parse received bytes and complete the matching commands."""
        for reply in self.parser.feed(data):
            logger.debug(f"Reply {reply.type.name} {reply.key}".rstrip())
            self.correlator.dispatch(reply)

    def on_closed(self) -> None:
        """
        Handle the loss of the connection.

        Raises:
            ConnectionFailedError: if the connection was never established
        """
        if self.status in (ConnectionStatus.CONNECTED, ConnectionStatus.DISCONNECTED):
            if self.status == ConnectionStatus.CONNECTED:
                logger.warning("Connection to server lost")
            self.status = ConnectionStatus.DISCONNECTED
            self._transport = None
            return

        if self.status == ConnectionStatus.CONNECTING:
            self.status = ConnectionStatus.FATALLY_FAILED
            logger.error("Unable to connect to memcached server")
            raise ConnectionFailedError("Unable to connect to memcached server")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def get(self, *keys, callback: Callable[[List[Optional[bytes]]], Any] = None) -> None:
        """
        Fetch one or more keys.

        Args:
            *keys: Keys to fetch; duplicates are allowed
            callback: Called with a list of values aligned to ``keys``;
                keys the server does not hold map to None

        Raises:
            ValueError: if no keys or no callback are given
        """
        if callback is None:
            raise ValueError("get requires a callback")

        names = [sanitize_key(key) for key in keys]
        payload = encode_get(names)

        def complete(values: Dict[str, bytes]) -> None:
            callback([values.get(name) for name in names])

        self._send(payload, lambda: self.correlator.add_fetch(names, complete))

    def get_hash(self, *keys, callback: Callable[[Dict[Any, Optional[bytes]]], Any] = None) -> None:
        """
        Fetch one or more keys as a mapping.

        The callback receives a dict keyed by the keys exactly as passed in.
        """
        if callback is None:
            raise ValueError("get_hash requires a callback")

        self.get(*keys, callback=lambda values: callback(dict(zip(keys, values))))

    def set(
            self,
            key,
            value,
            exptime: int = None,
            callback: Callable[[bool], Any] = None,
            flags: int = None,
    ) -> None:
        """
        Store a value.

        Without a callback the command is sent with ``noreply`` and no
        reply is expected.

        Args:
            key: Key to store under
            value: bytes, str (stored as UTF-8) or any object (stored as str())
            exptime: Expiration time (default from settings, 0 = never)
            callback: Called with True once the server answers STORED
            flags: Opaque flags stored with the value
        """
        exptime = exptime if exptime is not None else settings.DEFAULT_EXPTIME
        flags = flags if flags is not None else settings.DEFAULT_FLAGS
        payload = encode_set(key, value, flags, exptime, noreply=callback is None)

        track = (lambda: self.correlator.add_store(callback)) if callback else None
        self._send(payload, track)

    def delete(self, key, expires: int = 0, callback: Callable[[bool], Any] = None) -> None:
        """
        Delete a key.

        Args:
            key: Key to delete
            expires: Delay passed through to the server
            callback: Called with True (DELETED) or False (NOT_FOUND)
        """
        payload = encode_delete(key, expires, noreply=callback is None)

        track = (lambda: self.correlator.add_delete(callback)) if callback else None
        self._send(payload, track)

    del_ = delete

    # ------------------------------------------------------------------
    # Awaitable forms
    # ------------------------------------------------------------------

    async def aget(self, *keys) -> List[Optional[bytes]]:
        """Fetch keys and wait for the list of values."""
        future = asyncio.get_running_loop().create_future()
        self.get(*keys, callback=_resolver(future))
        return await future

    async def aget_hash(self, *keys) -> Dict[Any, Optional[bytes]]:
        """Fetch keys and wait for the key -> value mapping."""
        future = asyncio.get_running_loop().create_future()
        self.get_hash(*keys, callback=_resolver(future))
        return await future

    async def aset(self, key, value, exptime: int = None, flags: int = None) -> bool:
        """Store a value and wait for the server to confirm it."""
        future = asyncio.get_running_loop().create_future()
        self.set(key, value, exptime=exptime, callback=_resolver(future), flags=flags)
        return await future

    async def adelete(self, key, expires: int = 0) -> bool:
        """Delete a key and wait for the result."""
        future = asyncio.get_running_loop().create_future()
        self.delete(key, expires, callback=_resolver(future))
        return await future

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _send(self, payload: bytes, track: Optional[Callable[[], None]]) -> None:
        """Write a command now, or queue it until the connection is ready."""
        if self.status == ConnectionStatus.FATALLY_FAILED:
            raise ConnectionFailedError("Unable to connect to memcached server")

        def action() -> None:
            if track is not None:
                track()
            self._transport.write(payload)

        if self.status == ConnectionStatus.CONNECTED:
            action()
        else:
            self._ready_queue.append(action)


def _resolver(future: asyncio.Future) -> Callable[[Any], None]:
    """Build a callback that resolves ``future`` unless it was cancelled."""
    def resolve(result: Any) -> None:
        if not future.done():
            future.set_result(result)
    return resolve
