"""
Pipeline Correlator Module

Matches replies arriving from the server with the commands that requested
them. The server answers commands of one kind strictly in the order they were
sent, so each kind gets its own FIFO queue of waiting completions.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from ..protocol.commands import Reply, ReplyType

logger = logging.getLogger(__name__)

FetchCallback = Callable[[Dict[str, bytes]], Any]
StatusCallback = Callable[[bool], Any]


@dataclass
class PendingFetch:
    """
    An outstanding get command.

    Attributes:
        keys: The (sanitized) keys requested, in request order
        callback: Invoked with the key -> value mapping of the reply group
    """
    keys: List[str]
    callback: FetchCallback


class PipelineCorrelator:
    """
    Per-command-kind FIFO queues of pending completions.

    VALUE replies accumulate into a mapping that is handed to the oldest
    pending fetch when its END line arrives, then cleared. STORED pops the
    store queue; DELETED and NOT_FOUND pop the delete queue. A reply with no
    waiter is dropped.

    Attributes:
        on_unknown: Optional hook called with the raw line of every
            unrecognized reply
    """

    def __init__(self, on_unknown: Optional[Callable[[bytes], Any]] = None):
        self.on_unknown = on_unknown
        self._fetches: Deque[PendingFetch] = deque()
        self._stores: Deque[StatusCallback] = deque()
        self._deletes: Deque[StatusCallback] = deque()
        self._values: Dict[str, bytes] = {}

    def add_fetch(self, keys: List[str], callback: FetchCallback) -> None:
        """Queue a completion for a get command."""
        self._fetches.append(PendingFetch(keys=list(keys), callback=callback))

    def add_store(self, callback: StatusCallback) -> None:
        """Queue a completion for a set command sent without noreply."""
        self._stores.append(callback)

    def add_delete(self, callback: StatusCallback) -> None:
        """Queue a completion for a delete command sent without noreply."""
        self._deletes.append(callback)

    def pending(self) -> Dict[str, int]:
        """Return the number of waiting completions per command kind."""
        return {
            "get": len(self._fetches),
            "set": len(self._stores),
            "delete": len(self._deletes),
        }

    def reset(self) -> None:
        """Drop every pending completion and any partially collected values."""
        self._fetches.clear()
        self._stores.clear()
        self._deletes.clear()
        self._values = {}

    def dispatch(self, reply: Reply) -> None:
        """
        Route one parsed reply to its waiting completion.

        Args:
            reply: The reply produced by the parser
        """
        if reply.type == ReplyType.VALUE:
            self._values[reply.key] = reply.value
            return

        if reply.type == ReplyType.END:
            values, self._values = self._values, {}
            if self._fetches:
                entry = self._fetches.popleft()
                self._invoke(entry.callback, values)
            else:
                logger.debug("END received with no pending get")
            return

        if reply.type == ReplyType.STORED:
            if self._stores:
                self._invoke(self._stores.popleft(), True)
            return

        if reply.type in (ReplyType.DELETED, ReplyType.NOT_FOUND):
            if self._deletes:
                self._invoke(self._deletes.popleft(), reply.type == ReplyType.DELETED)
            return

        if self.on_unknown is not None:
            self._invoke(self.on_unknown, reply.line)

    @staticmethod
    def _invoke(callback: Callable, result: Any) -> None:
        try:
            callback(result)
        except Exception as exc:  # A failing caller must not stall the pipeline
            logger.exception(f"Completion callback {callback!r} failed: {exc}")
