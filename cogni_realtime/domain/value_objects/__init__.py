"""Value objects for the realtime connection layer."""

from .connection_state import ConnectionState
from .event_kind import EventKind, INBOUND_KINDS, OUTBOUND_KINDS, STREAM_KINDS
from .payloads import (
    AudioReady,
    ChatMessage,
    CompletedMessage,
    ErrorPayload,
    InboundFrame,
    MemberEvent,
    MessageChange,
    Notification,
    Payload,
    ProgressUpdate,
    RoomAck,
    SessionKey,
    StreamChunk,
    StreamComplete,
    StreamStart,
    TutorThinking,
    TypingEvent,
)
from .channel_profile import ChannelProfile, GROUP_CHAT, EVENTS, TUTOR

__all__ = [
    "ConnectionState",
    "EventKind",
    "INBOUND_KINDS",
    "OUTBOUND_KINDS",
    "STREAM_KINDS",
    "AudioReady",
    "ChatMessage",
    "CompletedMessage",
    "ErrorPayload",
    "InboundFrame",
    "MemberEvent",
    "MessageChange",
    "Notification",
    "Payload",
    "ProgressUpdate",
    "RoomAck",
    "SessionKey",
    "StreamChunk",
    "StreamComplete",
    "StreamStart",
    "TutorThinking",
    "TypingEvent",
    "ChannelProfile",
    "GROUP_CHAT",
    "EVENTS",
    "TUTOR",
]
