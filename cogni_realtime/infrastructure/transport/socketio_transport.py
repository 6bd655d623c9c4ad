"""Named-event transport over socket.io (``python-socketio`` AsyncClient)."""

import logging
from typing import Any, Callable, Dict, Optional

import socketio
from socketio.exceptions import SocketIOError

from ...const import DEFAULT_NAMESPACE, DEFAULT_SOCKETIO_PATH
from ...domain.exceptions import TransportError
from ..decorators import handle_transport_errors
from .base_transport import BaseTransport

_LOGGER = logging.getLogger(__name__)

# Events the client library raises itself; never forwarded as frames
_RESERVED_EVENTS = frozenset({"connect", "connect_error", "disconnect"})


class SocketIOTransport(BaseTransport):
    """ITransport over socket.io.

    The library's own reconnection is disabled: retry policy belongs to the
    connection manager. The token is sent in the handshake ``auth`` mapping.
    A server acknowledgement carrying ``{"error": ...}`` is reported to the
    frame handler as an ``error`` frame for the emitted event.

    Example:
        >>> transport = SocketIOTransport(namespace="/", socketio_path="/socket.io")
        >>> await transport.open("https://api.example.com", token, on_frame, on_close)
        >>> transport.send("join_group", {"group_id": 7})
    """

    def __init__(
        self,
        namespace: str = DEFAULT_NAMESPACE,
        socketio_path: str = DEFAULT_SOCKETIO_PATH,
        client_factory: Callable[..., Any] = socketio.AsyncClient,
    ):
        """Initialize socket.io transport.

        Args:
            namespace: socket.io namespace to connect
            socketio_path: Server endpoint path
            client_factory: AsyncClient constructor (injectable for tests)
        """
        super().__init__()
        self._namespace = namespace
        self._socketio_path = socketio_path
        self._client_factory = client_factory
        self._sio: Optional[Any] = None

    @handle_transport_errors("socket.io open", wrap_as=TransportError)
    async def _connect(self, url: str, token: str) -> None:
        sio = self._client_factory(reconnection=False, logger=False)
        sio.on("connect", handler=self._handle_connect, namespace=self._namespace)
        sio.on(
            "disconnect", handler=self._handle_disconnect, namespace=self._namespace
        )
        sio.on("*", handler=self._handle_event, namespace=self._namespace)
        self._sio = sio

        await sio.connect(
            url,
            auth={"token": token},
            transports=["websocket"],
            namespaces=[self._namespace],
            socketio_path=self._socketio_path,
            wait=True,
        )

    async def _write(self, event: str, payload: Dict[str, Any]) -> None:
        if self._sio is None:
            raise TransportError("socket.io client not connected")
        await self._sio.emit(
            event,
            payload,
            namespace=self._namespace,
            callback=self._ack_handler(event),
        )

    async def _disconnect(self) -> None:
        sio = self._sio
        self._sio = None
        if sio is None:
            return
        try:
            await sio.disconnect()
        except (SocketIOError, OSError) as err:
            _LOGGER.debug("socket.io disconnect error (non-critical): %s", err)

    # ------------------------------------------------------------------
    # socket.io handlers
    # ------------------------------------------------------------------

    def _handle_connect(self) -> None:
        _LOGGER.debug("socket.io namespace %s connected", self._namespace)

    def _handle_disconnect(self, reason: Any = None) -> None:
        self._connection_lost(str(reason) if reason else "server disconnected")

    def _handle_event(self, event: str, *args: Any) -> None:
        if event in _RESERVED_EVENTS:
            return
        self._deliver(event, args[0] if args else None)

    def _ack_handler(self, event: str) -> Callable[..., None]:
        def _on_ack(*args: Any) -> None:
            response = args[0] if args else None
            if isinstance(response, dict) and response.get("error"):
                _LOGGER.warning("Server rejected %r: %s", event, response["error"])
                self._deliver(
                    "error", {"message": str(response["error"]), "event": event}
                )

        return _on_ack
