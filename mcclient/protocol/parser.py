"""
Reply Parser Module

This module turns the byte stream received from the server into discrete
replies. Data may arrive split across any number of reads, and one read may
carry several replies; anything incomplete stays buffered for the next read.
"""

import logging
import re
from typing import List

from .commands import DELIMITER, Reply, ReplyType

logger = logging.getLogger(__name__)

# VALUE <key> <flags> <bytes> [<cas unique>]
_VALUE_HEADER = re.compile(rb"^VALUE\s+(\S+)\s+(\d+)\s+(\d+)")

_STATUS_LINES = {
    ReplyType.END.value.encode(): ReplyType.END,
    ReplyType.STORED.value.encode(): ReplyType.STORED,
    ReplyType.DELETED.value.encode(): ReplyType.DELETED,
    ReplyType.NOT_FOUND.value.encode(): ReplyType.NOT_FOUND,
}


class ReplyParser:
    """
    Incremental parser for memcached text protocol replies.

    Protocol Format:
        VALUE <key> <flags> <bytes>\\r\\n<data>\\r\\n   (zero or more)
        END\\r\\n
        STORED\\r\\n
        DELETED\\r\\n
        NOT_FOUND\\r\\n

    The parser owns the inbound buffer. Each call to feed() scans it with a
    cursor and removes only the prefix made of fully parsed replies, so a
    VALUE header whose data block has not fully arrived is left in place and
    parsed again once more bytes are fed.
    """

    def __init__(self):
        """Initialize the parser with an empty buffer."""
        self._buffer = bytearray()

    @property
    def buffered(self) -> int:
        """Number of received bytes not yet parsed into a reply."""
        return len(self._buffer)

    def reset(self) -> None:
        """Discard any buffered data."""
        self._buffer.clear()

    def feed(self, data: bytes) -> List[Reply]:
        """
        Append newly received bytes and extract every complete reply.

        Args:
            data: Bytes delivered by the transport (any size, may be empty)

        Returns:
            The replies completed by this chunk, in stream order.

        Examples:
            >>> parser = ReplyParser()
            >>> parser.feed(b"VALUE a 0 5\\r\\nhel")
            []
            >>> [r.type.name for r in parser.feed(b"lo\\r\\nEND\\r\\n")]
            ['VALUE', 'END']
        """
        buf = self._buffer
        buf += data

        replies = []
        pos = 0
        while True:
            end = buf.find(DELIMITER, pos)
            if end < 0:
                break

            line = bytes(buf[pos:end]).strip()
            next_pos = end + len(DELIMITER)

            header = _VALUE_HEADER.match(line)
            if header:
                length = int(header.group(3))
                if len(buf) - next_pos < length + len(DELIMITER):
                    # Data block not complete yet; keep the header buffered
                    break

                value = bytes(buf[next_pos:next_pos + length])
                next_pos += length
                if buf[next_pos:next_pos + len(DELIMITER)] != DELIMITER:
                    logger.warning(f"Missing delimiter after value for {header.group(1)!r}")
                next_pos += len(DELIMITER)

                key = header.group(1).decode("utf-8", errors="replace")
                replies.append(Reply.value_reply(key, value, line))
            else:
                replies.append(self._parse_line(line))

            pos = next_pos

        if pos:
            del buf[:pos]
        return replies

    def _parse_line(self, line: bytes) -> Reply:
        """Classify a single status line."""
        reply_type = _STATUS_LINES.get(line)
        if reply_type is not None:
            return Reply.status(reply_type)

        logger.warning(f"Unrecognized reply line: {line!r}")
        return Reply.unknown(line)
