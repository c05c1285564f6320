"""
Protocol Command and Reply Definitions

This module defines the wire form of the commands the client sends and the
data structures for the replies it receives.

Commands (CRLF terminated):
    get <key>*                                   -> VALUE ... / END
    set <key> <flags> <exptime> <bytes> [noreply] -> STORED
    delete <key> <expires> [noreply]             -> DELETED | NOT_FOUND
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterable, Optional

DELIMITER = b"\r\n"
NOREPLY = b" noreply"

_WHITESPACE = re.compile(r"\s")


class CommandType(Enum):
    """Enumeration of supported command types."""
    GET = auto()
    SET = auto()
    DELETE = auto()


class ReplyType(Enum):
    """Enumeration of reply types the parser recognizes."""
    VALUE = "VALUE"
    END = "END"
    STORED = "STORED"
    DELETED = "DELETED"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN = "UNKNOWN"


@dataclass
class Reply:
    """
    Represents one parsed server reply.

    Attributes:
        type: The kind of reply
        key: The key of a VALUE reply (empty otherwise)
        value: The raw value bytes of a VALUE reply
        line: The raw reply line, without its delimiter
    """
    type: ReplyType
    key: str = ""
    value: Optional[bytes] = None
    line: bytes = b""

    @classmethod
    def value_reply(cls, key: str, value: bytes, line: bytes = b"") -> "Reply":
        """Create a VALUE reply carrying one key's data."""
        return cls(type=ReplyType.VALUE, key=key, value=value, line=line)

    @classmethod
    def status(cls, reply_type: ReplyType) -> "Reply":
        """Create a bare status reply (END, STORED, DELETED, NOT_FOUND)."""
        return cls(type=reply_type, line=reply_type.value.encode())

    @classmethod
    def unknown(cls, line: bytes) -> "Reply":
        """Create a reply for a line the parser does not recognize."""
        return cls(type=ReplyType.UNKNOWN, line=line)


def sanitize_key(key: Any) -> str:
    """
    Stringify a key and replace every whitespace character with '_'.

    The protocol is whitespace delimited, so a raw space inside a key
    would split it into two tokens.

    Examples:
        >>> sanitize_key("my key")
        'my_key'
        >>> sanitize_key(42)
        '42'
    """
    if isinstance(key, bytes):
        key = key.decode("utf-8")
    return _WHITESPACE.sub("_", str(key))


def to_bytes(value: Any) -> bytes:
    """Convert a value to the bytes stored on the server."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if not isinstance(value, str):
        value = str(value)
    return value.encode("utf-8")


def encode_get(keys: Iterable[Any]) -> bytes:
    """
    Render a fetch command for one or more keys.

    Raises:
        ValueError: if no keys are given
    """
    names = [sanitize_key(key) for key in keys]
    if not names:
        raise ValueError("get requires at least one key")
    return b"get " + " ".join(names).encode("utf-8") + DELIMITER


def encode_set(
        key: Any,
        value: Any,
        flags: int = 0,
        exptime: int = 0,
        noreply: bool = False,
) -> bytes:
    """
    Render a store command: header line, raw value bytes, delimiter.

    The length field counts bytes of the encoded value, not characters.
    """
    data = to_bytes(value)
    header = f"set {sanitize_key(key)} {int(flags)} {int(exptime)} {len(data)}".encode("utf-8")
    if noreply:
        header += NOREPLY
    return header + DELIMITER + data + DELIMITER


def encode_delete(key: Any, expires: int = 0, noreply: bool = False) -> bytes:
    """Render a delete command."""
    line = f"delete {sanitize_key(key)} {int(expires)}".encode("utf-8")
    if noreply:
        line += NOREPLY
    return line + DELIMITER
