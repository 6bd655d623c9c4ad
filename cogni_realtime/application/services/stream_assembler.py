"""Stream assembler for streamed tutor responses."""

import logging
from typing import Dict, List, Optional

from ...domain.entities import StreamingMessage
from ...domain.value_objects import (
    CompletedMessage,
    StreamChunk,
    StreamComplete,
    StreamStart,
)

_LOGGER = logging.getLogger(__name__)

MAX_DISCARDED_IDS = 64


class StreamAssembler:
    """Accumulates ordered fragments into finished messages.

    Rules:
    - Fragments for one id are kept in arrival order (never reordered)
    - ``complete`` without prior chunks finalizes an empty message
    - Frames without an id attach to the most recently opened message,
      or to an anonymous one when nothing is open
    - ``discard_all`` drops in-flight messages with no completion; late
      chunks and completions for those ids are dropped too

    Example:
        >>> assembler = StreamAssembler()
        >>> assembler.add_chunk(StreamChunk("m1", "Hel"))
        >>> assembler.add_chunk(StreamChunk("m1", "lo"))
        >>> assembler.complete(StreamComplete("m1")).content
        'Hello'
    """

    def __init__(self):
        """Initialize with nothing in flight."""
        self._messages: Dict[Optional[str], StreamingMessage] = {}
        # Ordered set of ids dropped by discard_all
        self._discarded: Dict[str, None] = {}

    @property
    def in_flight(self) -> List[Optional[str]]:
        """Ids of messages still being assembled, oldest first."""
        return list(self._messages)

    def get(self, message_id: Optional[str]) -> Optional[StreamingMessage]:
        """In-flight message for ``message_id``, if any."""
        return self._messages.get(message_id)

    def is_discarded(self, message_id: Optional[str]) -> bool:
        """True if ``message_id`` was dropped by ``discard_all``."""
        return message_id is not None and message_id in self._discarded

    def start(self, frame: StreamStart) -> StreamingMessage:
        """Open a message explicitly (informational; chunks also open one)."""
        self._discarded.pop(frame.message_id, None)
        return self._open(self._resolve(frame.message_id, opening=True))

    def add_chunk(self, chunk: StreamChunk) -> Optional[CompletedMessage]:
        """Append one fragment.

        Returns:
            The finished message when the chunk also carries the completion
            flag, otherwise None (always None for a discarded id)
        """
        if self.is_discarded(chunk.message_id):
            if chunk.is_complete:
                del self._discarded[chunk.message_id]
            return None

        key = self._resolve(chunk.message_id, opening=True)
        message = self._open(key)
        message.append(chunk.content)

        if chunk.is_complete:
            return self._finalize(key)
        return None

    def complete(self, frame: StreamComplete) -> Optional[CompletedMessage]:
        """Finalize the message named by ``frame``.

        Returns:
            The finished message, or None when its id was discarded
        """
        if self.is_discarded(frame.message_id):
            del self._discarded[frame.message_id]
            return None
        return self._finalize(self._resolve(frame.message_id, opening=False))

    def discard_all(self) -> int:
        """Drop every in-flight message without delivering it.

        Returns:
            Number of messages discarded
        """
        count = len(self._messages)
        if count:
            _LOGGER.debug(
                "Discarding %d in-flight streamed message(s): %s",
                count,
                self.in_flight,
            )
        for message_id in self._messages:
            if message_id is not None:
                self._discarded[message_id] = None
        while len(self._discarded) > MAX_DISCARDED_IDS:
            del self._discarded[next(iter(self._discarded))]
        self._messages.clear()
        return count

    def _resolve(self, message_id: Optional[str], opening: bool) -> Optional[str]:
        if message_id is not None:
            return message_id
        if self._messages:
            # Most recently opened message
            return next(reversed(self._messages))
        if not opening:
            _LOGGER.debug("Completion without id and nothing in flight")
        return None

    def _open(self, key: Optional[str]) -> StreamingMessage:
        message = self._messages.get(key)
        if message is None:
            message = StreamingMessage(message_id=key)
            self._messages[key] = message
        return message

    def _finalize(self, key: Optional[str]) -> CompletedMessage:
        message = self._messages.pop(key, None)
        if message is None:
            message = StreamingMessage(message_id=key)
        completed = message.finalize()
        _LOGGER.debug(
            "Assembled message %s from %d chunk(s)",
            completed.message_id,
            completed.chunk_count,
        )
        return completed
