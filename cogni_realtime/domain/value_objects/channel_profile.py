"""Channel profiles: the event vocabulary of one use case.

A single ConnectionManager serves group chat, generic typed events and AI
tutor streaming. What differs between them is captured here instead of in
three copies of the connection logic.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Mapping

from .event_kind import EventKind, INBOUND_KINDS, OUTBOUND_KINDS, STREAM_KINDS


@dataclass(frozen=True)
class ChannelProfile:
    """Event vocabulary and optional facets for one channel.

    Attributes:
        name: Profile name (also the shared-manager purpose key)
        accepted_kinds: Inbound kinds dispatched; others are dropped
        session_field: Key carrying the session key in outbound payloads
        outbound_names: Wire-name overrides for outbound kinds
        assemble_streams: Route tutor_message_* frames through the assembler
        track_tutor_activity: Publish ``tutor_status`` changes

    Example:
        >>> profile = ChannelProfile(name="chat", session_field="group_id")
        >>> profile.wire_name(EventKind.SEND_MESSAGE)
        'send_message'
    """

    name: str
    accepted_kinds: FrozenSet[EventKind] = INBOUND_KINDS
    session_field: str = "group_id"
    outbound_names: Mapping[EventKind, str] = field(default_factory=dict)
    assemble_streams: bool = False
    track_tutor_activity: bool = False

    def wire_name(self, kind: EventKind) -> str:
        """Wire event name for an outbound kind.

        Raises:
            ValueError: If ``kind`` is not sent by clients
        """
        if kind not in OUTBOUND_KINDS:
            raise ValueError(f"{kind.value!r} is not an outbound event")
        return self.outbound_names.get(kind, kind.value)

    def accepts(self, kind: EventKind) -> bool:
        """Whether inbound frames of ``kind`` are dispatched."""
        return kind in self.accepted_kinds


GROUP_CHAT = ChannelProfile(
    name="chat",
    accepted_kinds=frozenset(
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
            EventKind.ERROR,
        }
    ),
    session_field="group_id",
)

EVENTS = ChannelProfile(
    name="events",
    accepted_kinds=INBOUND_KINDS,
    session_field="group_id",
    assemble_streams=True,
)

TUTOR = ChannelProfile(
    name="tutor",
    accepted_kinds=STREAM_KINDS
    | frozenset(
        {
            EventKind.TUTOR_THINKING,
            EventKind.TUTOR_AUDIO_READY,
            EventKind.PROGRESS_UPDATE,
            EventKind.JOINED,
            EventKind.ERROR,
        }
    ),
    session_field="sessionId",
    outbound_names={EventKind.SEND_MESSAGE: "message"},
    assemble_streams=True,
    track_tutor_activity=True,
)
