"""Protocol module for mcclient."""

from .commands import (
    CommandType,
    Reply,
    ReplyType,
    encode_delete,
    encode_get,
    encode_set,
    sanitize_key,
)
from .parser import ReplyParser

__all__ = [
    "CommandType",
    "Reply",
    "ReplyType",
    "ReplyParser",
    "encode_delete",
    "encode_get",
    "encode_set",
    "sanitize_key",
]
