"""Typed payload variants, one per event kind.

Inbound frames are decoded once at the transport boundary into these
dataclasses, so internal dispatch never handles loosely-typed dicts.
Unrecognized fields are kept in ``extra`` rather than dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from .event_kind import EventKind

SessionKey = Union[str, int]


@dataclass(frozen=True)
class ChatMessage:
    """A chat message posted to a study group (``new_message``)."""

    id: Any
    content: str
    group_id: Any = None
    user_id: Any = None
    user: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[str] = None
    attachments: Tuple[Any, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MessageChange:
    """Edit or deletion of an existing message."""

    message_id: Any
    content: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MemberEvent:
    """A member joined or left the room."""

    user_id: Any = None
    username: Optional[str] = None
    group_id: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RoomAck:
    """Server confirmation of our own join/leave."""

    session_key: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TypingEvent:
    """Another member started or stopped typing."""

    user_id: Any = None
    username: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StreamStart:
    """Informational start of a streamed tutor response."""

    message_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StreamChunk:
    """One ordered fragment of a streamed tutor response."""

    message_id: Optional[str]
    content: str
    is_complete: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StreamComplete:
    """No more chunks will arrive for ``message_id``."""

    message_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CompletedMessage:
    """A fully assembled streamed response."""

    message_id: Optional[str]
    content: str
    chunk_count: int


@dataclass(frozen=True)
class TutorThinking:
    """The tutor is processing a request."""

    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AudioReady:
    """Synthesized audio for a tutor message is available."""

    message_id: Any
    audio_url: str


@dataclass(frozen=True)
class ProgressUpdate:
    """Learning progress changed for the current session."""

    session_id: Any
    user_id: Any
    progress: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ErrorPayload:
    """Error surfaced to subscribers under the ``error`` kind.

    Attributes:
        message: Human-readable description
        category: ``protocol``, ``auth``, ``transport`` or ``exhaustion``
        event: Wire event the error relates to, if known
    """

    message: str
    category: str = "protocol"
    event: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Notification:
    """User-facing notification (toast) generated locally."""

    level: str
    message: str


Payload = Union[
    ChatMessage,
    MessageChange,
    MemberEvent,
    RoomAck,
    TypingEvent,
    StreamStart,
    StreamChunk,
    StreamComplete,
    CompletedMessage,
    TutorThinking,
    AudioReady,
    ProgressUpdate,
    ErrorPayload,
    Notification,
]


@dataclass(frozen=True)
class InboundFrame:
    """A decoded inbound frame: the kind tag plus its typed payload."""

    kind: EventKind
    payload: Payload
