"""Domain entities."""

from .reconnect_attempt import ReconnectAttempt
from .streaming_message import StreamingMessage

__all__ = [
    "ReconnectAttempt",
    "StreamingMessage",
]
