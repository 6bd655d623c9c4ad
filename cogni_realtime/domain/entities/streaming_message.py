"""Streaming message entity."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..value_objects import CompletedMessage


@dataclass
class StreamingMessage:
    """An in-flight streamed response being assembled.

    Fragments are kept in arrival order; the assembled content is their
    plain concatenation.

    Attributes:
        message_id: Identifier shared by all fragments (None if the server
            sent none)
        fragments: Content fragments received so far
        complete: Set once the completion signal arrived

    Example:
        >>> msg = StreamingMessage("m1")
        >>> msg.append("Hel")
        >>> msg.append("lo")
        >>> msg.finalize().content
        'Hello'
    """

    message_id: Optional[str]
    fragments: List[str] = field(default_factory=list)
    complete: bool = False

    def append(self, content: str) -> None:
        """Add the next fragment."""
        if self.complete:
            raise ValueError(f"Message {self.message_id!r} already complete")
        self.fragments.append(content)

    @property
    def content(self) -> str:
        """Content assembled so far."""
        return "".join(self.fragments)

    def finalize(self) -> CompletedMessage:
        """Mark complete and return the finished message."""
        self.complete = True
        return CompletedMessage(
            message_id=self.message_id,
            content=self.content,
            chunk_count=len(self.fragments),
        )
