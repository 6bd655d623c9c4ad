"""Event kinds exchanged over the realtime transport.

Values are the wire event names. Inbound aliases used by older servers
(``user_joined``, ``tutor_error`` ...) are normalized by ``from_wire``.
"""

from enum import Enum
from typing import Optional


class EventKind(str, Enum):
    """Tagged event kinds: inbound, outbound and locally generated."""

    # Inbound (server -> client)
    NEW_MESSAGE = "new_message"
    MESSAGE_EDITED = "message_edited"
    MESSAGE_DELETED = "message_deleted"
    MEMBER_JOINED = "member_joined"
    MEMBER_LEFT = "member_left"
    JOINED = "joined"
    LEFT = "left"
    TYPING_STARTED = "typing_started"
    TYPING_STOPPED = "typing_stopped"
    TUTOR_MESSAGE_START = "tutor_message_start"
    TUTOR_MESSAGE_CHUNK = "tutor_message_chunk"
    TUTOR_MESSAGE_COMPLETE = "tutor_message_complete"
    TUTOR_THINKING = "tutor_thinking"
    TUTOR_AUDIO_READY = "tutor_audio_ready"
    PROGRESS_UPDATE = "progress_update"
    ERROR = "error"

    # Outbound (client -> server)
    JOIN = "join"
    LEAVE = "leave"
    SEND_MESSAGE = "send_message"
    TYPING_START = "typing_start"
    TYPING_STOP = "typing_stop"
    VOICE_MESSAGE = "voice_message"

    # Local (generated by the manager, never on the wire)
    NOTIFICATION = "notification"
    TUTOR_STATUS = "tutor_status"

    @classmethod
    def from_wire(cls, name: str) -> Optional["EventKind"]:
        """Resolve an inbound wire name, including legacy aliases.

        Returns:
            Matching inbound kind, or None for unknown/outbound/local names
        """
        name = _INBOUND_ALIASES.get(name, name)
        try:
            kind = cls(name)
        except ValueError:
            return None
        return kind if kind in INBOUND_KINDS else None


_INBOUND_ALIASES = {
    "user_joined": "member_joined",
    "user_left": "member_left",
    "tutor_error": "error",
}

INBOUND_KINDS = frozenset(
    {
        EventKind.NEW_MESSAGE,
        EventKind.MESSAGE_EDITED,
        EventKind.MESSAGE_DELETED,
        EventKind.MEMBER_JOINED,
        EventKind.MEMBER_LEFT,
        EventKind.JOINED,
        EventKind.LEFT,
        EventKind.TYPING_STARTED,
        EventKind.TYPING_STOPPED,
        EventKind.TUTOR_MESSAGE_START,
        EventKind.TUTOR_MESSAGE_CHUNK,
        EventKind.TUTOR_MESSAGE_COMPLETE,
        EventKind.TUTOR_THINKING,
        EventKind.TUTOR_AUDIO_READY,
        EventKind.PROGRESS_UPDATE,
        EventKind.ERROR,
    }
)

OUTBOUND_KINDS = frozenset(
    {
        EventKind.JOIN,
        EventKind.LEAVE,
        EventKind.SEND_MESSAGE,
        EventKind.TYPING_START,
        EventKind.TYPING_STOP,
        EventKind.VOICE_MESSAGE,
    }
)

STREAM_KINDS = frozenset(
    {
        EventKind.TUTOR_MESSAGE_START,
        EventKind.TUTOR_MESSAGE_CHUNK,
        EventKind.TUTOR_MESSAGE_COMPLETE,
    }
)
