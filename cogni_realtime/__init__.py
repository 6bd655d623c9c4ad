"""Realtime session connection manager.

One ConnectionManager replaces the separate group-chat, typed-event and AI
tutor socket clients: it authenticates the connection, recovers from drops,
keeps the joined session, fans events out to subscribers and reassembles
streamed tutor responses.

Example:
    >>> from cogni_realtime import RealtimeConfig, StaticTokenProvider, create_container, GROUP_CHAT
    >>> container = create_container(RealtimeConfig.load_from_env(), StaticTokenProvider(token), GROUP_CHAT)
    >>> manager = container.connection_manager
    >>> await manager.connect(7)
"""

from .application.services import (
    AuthGuard,
    ListenerRegistry,
    ReconnectionPolicy,
    SessionBinding,
    StreamAssembler,
    TutorActivityTracker,
    TutorStatus,
)
from .config import RealtimeConfig
from .domain.exceptions import (
    AuthError,
    ConfigError,
    ExhaustionError,
    ProtocolError,
    RealtimeError,
    TransportError,
)
from .domain.interfaces import IConnectionManager, ITokenProvider, ITransport
from .domain.value_objects import (
    EVENTS,
    GROUP_CHAT,
    TUTOR,
    ChannelProfile,
    ConnectionState,
    EventKind,
)
from .infrastructure.auth import (
    CallbackTokenProvider,
    EnvironmentTokenProvider,
    StaticTokenProvider,
)
from .infrastructure.transport import (
    ConnectionManager,
    SocketIOTransport,
    WebSocketTransport,
)
from .presentation import create_container, get_shared_manager, reset_shared_managers

__version__ = "1.0.0"

__all__ = [
    "AuthError",
    "AuthGuard",
    "CallbackTokenProvider",
    "ChannelProfile",
    "ConfigError",
    "ConnectionManager",
    "ConnectionState",
    "EVENTS",
    "EnvironmentTokenProvider",
    "EventKind",
    "ExhaustionError",
    "GROUP_CHAT",
    "IConnectionManager",
    "ITokenProvider",
    "ITransport",
    "ListenerRegistry",
    "ProtocolError",
    "RealtimeConfig",
    "RealtimeError",
    "ReconnectionPolicy",
    "SessionBinding",
    "SocketIOTransport",
    "StaticTokenProvider",
    "StreamAssembler",
    "TUTOR",
    "TransportError",
    "TutorActivityTracker",
    "TutorStatus",
    "WebSocketTransport",
    "create_container",
    "get_shared_manager",
    "reset_shared_managers",
]
