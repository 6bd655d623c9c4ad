"""Frame codec: wire frames <-> typed payloads.

Inbound frames are validated with voluptuous and decoded exactly once, at
the transport boundary, into the payload dataclasses of
``domain.value_objects.payloads``.

Wire shape on the raw WebSocket transport::

    {"type": "<event name>", "payload": {...}}

The socket.io transport delivers ``(event, payload)`` pairs directly and
only uses ``decode``.
"""

import json
from typing import Any, Callable, Dict, Mapping, Tuple

import voluptuous as vol

from ...domain.exceptions import ProtocolError
from ...domain.value_objects import (
    AudioReady,
    ChatMessage,
    ErrorPayload,
    EventKind,
    InboundFrame,
    MemberEvent,
    MessageChange,
    ProgressUpdate,
    RoomAck,
    StreamChunk,
    StreamComplete,
    StreamStart,
    TutorThinking,
    TypingEvent,
)

_Id = vol.Any(str, int)

ENVELOPE_SCHEMA = vol.Schema(
    {
        vol.Required("type"): vol.All(str, vol.Length(min=1)),
        vol.Optional("payload", default=None): vol.Any(None, dict, list, str, int, float),
    },
    extra=vol.ALLOW_EXTRA,
)

CHAT_MESSAGE_SCHEMA = vol.Schema(
    {
        vol.Required("id"): _Id,
        vol.Required("content"): str,
        vol.Optional("group_id"): vol.Any(None, _Id),
        vol.Optional("user_id"): vol.Any(None, _Id),
        vol.Optional("user"): vol.Any(None, dict),
        vol.Optional("timestamp"): vol.Any(None, str),
        vol.Optional("attachments"): vol.Any(None, list),
    },
    extra=vol.ALLOW_EXTRA,
)

MESSAGE_CHANGE_SCHEMA = vol.Schema(
    {
        vol.Required(vol.Any("message_id", "id")): _Id,
        vol.Optional("content"): vol.Any(None, str),
    },
    extra=vol.ALLOW_EXTRA,
)

STREAM_CHUNK_SCHEMA = vol.Schema(
    {
        vol.Optional("id"): vol.Any(None, _Id),
        vol.Optional("message_id"): vol.Any(None, _Id),
        vol.Optional("content", default=""): vol.Any(None, str),
        vol.Optional("isComplete"): vol.Any(None, bool),
        vol.Optional("is_complete"): vol.Any(None, bool),
    },
    extra=vol.ALLOW_EXTRA,
)

AUDIO_READY_SCHEMA = vol.Schema(
    {
        vol.Required("message_id"): _Id,
        vol.Required("audio_url"): str,
    },
    extra=vol.ALLOW_EXTRA,
)

PROGRESS_SCHEMA = vol.Schema(
    {
        vol.Required("session_id"): _Id,
        vol.Required("user_id"): _Id,
        vol.Optional("progress", default=dict): dict,
    },
    extra=vol.ALLOW_EXTRA,
)

LOOSE_SCHEMA = vol.Schema({}, extra=vol.ALLOW_EXTRA)


def _as_mapping(data: Any) -> Dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return dict(data)
    # Bare values (e.g. an error string) are wrapped
    return {"message": data}


def _extra(data: Mapping[str, Any], *known: str) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in known}


def _message_id(data: Mapping[str, Any]):
    value = data.get("id")
    if value is None:
        value = data.get("message_id")
    return None if value is None else str(value)


def _chat_message(data: Dict[str, Any]) -> ChatMessage:
    data = CHAT_MESSAGE_SCHEMA(data)
    known = ("id", "content", "group_id", "user_id", "user", "timestamp", "attachments")
    return ChatMessage(
        id=data["id"],
        content=data["content"],
        group_id=data.get("group_id"),
        user_id=data.get("user_id"),
        user=data.get("user") or {},
        timestamp=data.get("timestamp"),
        attachments=tuple(data.get("attachments") or ()),
        extra=_extra(data, *known),
    )


def _message_change(data: Dict[str, Any]) -> MessageChange:
    data = MESSAGE_CHANGE_SCHEMA(data)
    message_id = data.get("message_id", data.get("id"))
    return MessageChange(
        message_id=message_id,
        content=data.get("content"),
        extra=_extra(data, "message_id", "id", "content"),
    )


def _member_event(data: Dict[str, Any]) -> MemberEvent:
    data = LOOSE_SCHEMA(data)
    return MemberEvent(
        user_id=data.get("user_id"),
        username=data.get("username"),
        group_id=data.get("group_id"),
        extra=_extra(data, "user_id", "username", "group_id"),
    )


def _room_ack(data: Dict[str, Any]) -> RoomAck:
    data = LOOSE_SCHEMA(data)
    key = data.get("group_id", data.get("sessionId", data.get("session_id")))
    return RoomAck(
        session_key=key,
        extra=_extra(data, "group_id", "sessionId", "session_id"),
    )


def _typing_event(data: Dict[str, Any]) -> TypingEvent:
    data = LOOSE_SCHEMA(data)
    return TypingEvent(
        user_id=data.get("user_id"),
        username=data.get("username"),
        extra=_extra(data, "user_id", "username"),
    )


def _stream_start(data: Dict[str, Any]) -> StreamStart:
    data = LOOSE_SCHEMA(data)
    return StreamStart(
        message_id=_message_id(data),
        extra=_extra(data, "id", "message_id"),
    )


def _stream_chunk(data: Dict[str, Any]) -> StreamChunk:
    data = STREAM_CHUNK_SCHEMA(data)
    is_complete = data.get("isComplete")
    if is_complete is None:
        is_complete = data.get("is_complete")
    return StreamChunk(
        message_id=_message_id(data),
        content=data.get("content") or "",
        is_complete=bool(is_complete),
        extra=_extra(data, "id", "message_id", "content", "isComplete", "is_complete"),
    )


def _stream_complete(data: Dict[str, Any]) -> StreamComplete:
    data = LOOSE_SCHEMA(data)
    return StreamComplete(
        message_id=_message_id(data),
        extra=_extra(data, "id", "message_id"),
    )


def _tutor_thinking(data: Dict[str, Any]) -> TutorThinking:
    return TutorThinking(extra=LOOSE_SCHEMA(data))


def _audio_ready(data: Dict[str, Any]) -> AudioReady:
    data = AUDIO_READY_SCHEMA(data)
    return AudioReady(message_id=data["message_id"], audio_url=data["audio_url"])


def _progress_update(data: Dict[str, Any]) -> ProgressUpdate:
    data = PROGRESS_SCHEMA(data)
    return ProgressUpdate(
        session_id=data["session_id"],
        user_id=data["user_id"],
        progress=data["progress"],
    )


def _error(data: Dict[str, Any]) -> ErrorPayload:
    data = LOOSE_SCHEMA(data)
    message = data.get("message", data.get("error", "Unknown server error"))
    return ErrorPayload(
        message=str(message),
        category="protocol",
        event=data.get("event"),
        extra=_extra(data, "message", "error", "event"),
    )


_DECODERS: Dict[EventKind, Callable[[Dict[str, Any]], Any]] = {
    EventKind.NEW_MESSAGE: _chat_message,
    EventKind.MESSAGE_EDITED: _message_change,
    EventKind.MESSAGE_DELETED: _message_change,
    EventKind.MEMBER_JOINED: _member_event,
    EventKind.MEMBER_LEFT: _member_event,
    EventKind.JOINED: _room_ack,
    EventKind.LEFT: _room_ack,
    EventKind.TYPING_STARTED: _typing_event,
    EventKind.TYPING_STOPPED: _typing_event,
    EventKind.TUTOR_MESSAGE_START: _stream_start,
    EventKind.TUTOR_MESSAGE_CHUNK: _stream_chunk,
    EventKind.TUTOR_MESSAGE_COMPLETE: _stream_complete,
    EventKind.TUTOR_THINKING: _tutor_thinking,
    EventKind.TUTOR_AUDIO_READY: _audio_ready,
    EventKind.PROGRESS_UPDATE: _progress_update,
    EventKind.ERROR: _error,
}


class FrameCodec:
    """Encodes outbound frames and decodes inbound ones.

    Example:
        >>> codec = FrameCodec()
        >>> frame = codec.decode("tutor_message_chunk", {"id": "m1", "content": "Hel"})
        >>> frame.kind, frame.payload.content
        (<EventKind.TUTOR_MESSAGE_CHUNK: 'tutor_message_chunk'>, 'Hel')
    """

    @staticmethod
    def decode(event: str, data: Any) -> InboundFrame:
        """Decode one inbound ``(event, payload)`` pair.

        Raises:
            ProtocolError: Unknown event name or payload failing validation
        """
        kind = EventKind.from_wire(event)
        if kind is None:
            raise ProtocolError(f"Unknown inbound event {event!r}", event=event)

        try:
            payload = _DECODERS[kind](_as_mapping(data))
        except vol.Invalid as err:
            raise ProtocolError(
                f"Invalid {event!r} payload: {err}", event=event
            ) from err
        return InboundFrame(kind=kind, payload=payload)

    @staticmethod
    def encode_text(event: str, payload: Mapping[str, Any]) -> str:
        """JSON text for one outbound frame (raw WebSocket transport)."""
        return json.dumps(
            {"type": event, "payload": dict(payload)},
            ensure_ascii=False,
            separators=(",", ":"),
            default=str,
        )

    @staticmethod
    def parse_text(raw: Any) -> Tuple[str, Any]:
        """Split raw WebSocket text into ``(event, payload)``.

        Raises:
            ProtocolError: Not JSON, or not a ``{"type", "payload"}`` envelope
        """
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")

        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as err:
            raise ProtocolError(f"Frame is not valid JSON: {err}") from err

        try:
            envelope = ENVELOPE_SCHEMA(data)
        except vol.Invalid as err:
            raise ProtocolError(f"Invalid frame envelope: {err}") from err

        return envelope["type"], envelope["payload"]
