"""Domain interfaces for the realtime connection layer.

This module defines the contracts that infrastructure implementations
must fulfill, so transports and token sources can be swapped (WebSocket,
socket.io, fakes in tests) without touching connection policy.
"""

from .i_transport import ITransport, FrameHandler, CloseHandler
from .i_token_provider import ITokenProvider
from .i_connection_manager import IConnectionManager

__all__ = [
    "ITransport",
    "FrameHandler",
    "CloseHandler",
    "ITokenProvider",
    "IConnectionManager",
]
