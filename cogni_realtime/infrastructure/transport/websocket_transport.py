"""Raw JSON-over-WebSocket transport.

Frames are JSON objects ``{"type": <event>, "payload": {...}}`` in both
directions. The bearer token travels in the ``token`` query parameter.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ...domain.exceptions import ProtocolError, TransportError
from ..decorators import handle_transport_errors
from ..protocol import FrameCodec
from .base_transport import BaseTransport

_LOGGER = logging.getLogger(__name__)


def _with_token(url: str, token: str) -> str:
    parts = urlsplit(url)
    query = [(key, value) for key, value in parse_qsl(parts.query) if key != "token"]
    query.append(("token", token))
    return urlunsplit(parts._replace(query=urlencode(query)))


class WebSocketTransport(BaseTransport):
    """ITransport over a plain WebSocket using the ``websockets`` library.

    Inbound text that is not a valid frame envelope is reported to the
    frame handler as an ``error`` frame; the connection stays up.

    Example:
        >>> transport = WebSocketTransport()
        >>> await transport.open("wss://api.example.com/ws", token, on_frame, on_close)
        >>> transport.send("join", {"group_id": 7})
    """

    def __init__(self, codec: Optional[FrameCodec] = None, **connect_kwargs: Any):
        """Initialize WebSocket transport.

        Args:
            codec: Frame codec (default FrameCodec)
            **connect_kwargs: Extra keyword arguments for ``websockets`` connect
                (e.g. ``ping_interval``, ``max_size``)
        """
        super().__init__()
        self._codec = codec or FrameCodec()
        self._connect_kwargs = connect_kwargs
        self._ws: Optional[ClientConnection] = None
        self._reader: Optional[asyncio.Task] = None

    @handle_transport_errors("WebSocket open", wrap_as=TransportError)
    async def _connect(self, url: str, token: str) -> None:
        # open_timeout is applied by the connection manager
        self._ws = await connect(
            _with_token(url, token), open_timeout=None, **self._connect_kwargs
        )
        self._reader = asyncio.create_task(self._read_loop())
        _LOGGER.debug("WebSocket connected to %s", url)

    async def _write(self, event: str, payload: Dict[str, Any]) -> None:
        if self._ws is None:
            raise TransportError("WebSocket not connected")
        await self._ws.send(self._codec.encode_text(event, payload))

    async def _disconnect(self) -> None:
        reader = self._reader
        self._reader = None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()

        ws = self._ws
        self._ws = None
        if ws is None:
            return
        try:
            await ws.close()
        except (WebSocketException, OSError) as err:
            _LOGGER.debug("WebSocket close error (non-critical): %s", err)

    async def _read_loop(self) -> None:
        ws = self._ws
        reason = "closed by server"
        try:
            async for raw in ws:
                self._handle_raw(raw)
        except ConnectionClosed as err:
            reason = f"connection closed ({err.rcvd.code if err.rcvd else 'no close frame'})"
        except (WebSocketException, OSError) as err:
            reason = f"read failed: {err}"
        else:
            if ws.close_code is not None:
                reason = f"closed by server ({ws.close_code})"
        self._connection_lost(reason)

    def _handle_raw(self, raw: Any) -> None:
        try:
            event, payload = self._codec.parse_text(raw)
        except ProtocolError as err:
            _LOGGER.warning("Malformed frame: %s", err)
            self._deliver("error", {"message": str(err)})
            return
        self._deliver(event, payload)
