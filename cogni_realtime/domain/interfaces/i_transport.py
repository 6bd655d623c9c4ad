"""ITransport interface for realtime transport implementations."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

FrameHandler = Callable[[str, Any], None]
CloseHandler = Callable[[Optional[str]], None]


class ITransport(ABC):
    """Interface for realtime transport implementations.

    Hides whether framing is raw JSON-over-WebSocket or a named-event
    protocol. Everything above this interface sees ``(event, payload)``
    pairs only.

    Connection lifecycle:
        1. open(url, token, on_frame, on_close) -> connection established
        2. send(event, payload) -> queued, written in order (many times)
        3. detach() -> low-level handlers unregistered
        4. close() -> pending frames flushed, connection closed

    ``on_close`` fires only for drops the caller did not initiate.

    Example:
        >>> transport = WebSocketTransport()
        >>> await transport.open(url, token, on_frame, on_close)
        >>> transport.send("join", {"group_id": 7})
        >>> transport.detach()
        >>> await transport.close()
    """

    @abstractmethod
    async def open(
        self,
        url: str,
        token: str,
        on_frame: FrameHandler,
        on_close: CloseHandler,
    ) -> None:
        """Establish the connection.

        Args:
            url: Server URL (scheme depends on the implementation)
            token: Bearer token, already validated
            on_frame: Called with (event, payload) for each inbound frame
            on_close: Called with a reason when the connection drops

        Raises:
            TransportError: If the connection cannot be established
        """

    @abstractmethod
    def send(self, event: str, payload: Dict[str, Any]) -> None:
        """Queue one outbound frame. Never blocks.

        Raises:
            TransportError: If the transport is not open
        """

    @abstractmethod
    def detach(self) -> None:
        """Unregister the frame/close handlers. Idempotent."""

    @abstractmethod
    async def close(self) -> None:
        """Flush queued frames and close. Idempotent."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while frames can be sent."""
