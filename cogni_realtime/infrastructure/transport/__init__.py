"""Transport layer implementations."""

from .base_transport import BaseTransport
from .connection_manager import ConnectionManager
from .socketio_transport import SocketIOTransport
from .websocket_transport import WebSocketTransport

__all__ = [
    "BaseTransport",
    "ConnectionManager",
    "SocketIOTransport",
    "WebSocketTransport",
]
