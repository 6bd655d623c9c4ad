"""Application services.

Connection policy pieces composed by the connection manager: backoff
decisions, subscriber dispatch, room membership, stream assembly, token
checks and tutor activity.
"""

from .auth_guard import AuthGuard
from .listener_registry import ListenerRegistry
from .reconnection_policy import ReconnectionPolicy
from .session_binding import SessionBinding
from .stream_assembler import StreamAssembler
from .tutor_activity import TutorActivityTracker, TutorStatus

__all__ = [
    "AuthGuard",
    "ListenerRegistry",
    "ReconnectionPolicy",
    "SessionBinding",
    "StreamAssembler",
    "TutorActivityTracker",
    "TutorStatus",
]
