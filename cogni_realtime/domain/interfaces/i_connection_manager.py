"""IConnectionManager interface for realtime connection lifecycle management."""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from ..value_objects import ConnectionState, SessionKey


class IConnectionManager(ABC):
    """Interface for realtime connection lifecycle management.

    The connection manager adds higher-level policy on top of a transport:
    - Authentication before every attempt
    - Automatic reconnection with backoff
    - Session (room) membership, restored after reconnects
    - Event dispatch to subscribers

    Example:
        >>> manager = ConnectionManager(config, token_provider, WebSocketTransport)
        >>> await manager.connect("room-1")
        >>> manager.send_message("hi")
    """

    @abstractmethod
    async def connect(self, session_key: Optional[SessionKey] = None) -> bool:
        """Connect and join ``session_key``.

        Returns:
            True once connected and joined, False on auth or transport failure
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Tear everything down and return to IDLE. Safe from any state."""

    @abstractmethod
    def send_message(
        self, content: str, attachments: Optional[Sequence[Any]] = None
    ) -> bool:
        """Send a message to the bound session. Never raises."""

    @abstractmethod
    def send_typing(self, is_typing: bool) -> bool:
        """Send a typing indicator to the bound session. Never raises."""

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Current connection state."""
