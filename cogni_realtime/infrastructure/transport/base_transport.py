"""Shared transport plumbing: outbound queue, writer task, handler lifecycle."""

import asyncio
import logging
from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple

from ...const import TRANSPORT_CLOSE_TIMEOUT
from ...domain.exceptions import TransportError
from ...domain.interfaces import ITransport
from ...domain.interfaces.i_transport import CloseHandler, FrameHandler

_LOGGER = logging.getLogger(__name__)

_Frame = Tuple[str, Dict[str, Any]]


class BaseTransport(ITransport):
    """Common lifecycle for queue-based transports.

    Subclasses implement the wire specifics:
    - ``_connect(url, token)``: establish the connection and start reading
    - ``_write(event, payload)``: put one frame on the wire
    - ``_disconnect()``: release the connection; must tolerate a
      half-open or never-opened connection

    and report inbound traffic through ``_deliver`` and drops through
    ``_connection_lost``.

    ``send`` never blocks: frames go onto a queue drained by one writer task,
    so they reach the wire in call order. ``close`` lets the writer flush
    what is queued (bounded by TRANSPORT_CLOSE_TIMEOUT) before the
    connection is released.
    """

    def __init__(self):
        """Initialize closed transport."""
        self._on_frame: Optional[FrameHandler] = None
        self._on_close: Optional[CloseHandler] = None
        self._queue: "asyncio.Queue[Optional[_Frame]]" = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None
        self._open = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        """True while frames can be sent."""
        return self._open

    async def open(
        self,
        url: str,
        token: str,
        on_frame: FrameHandler,
        on_close: CloseHandler,
    ) -> None:
        """Establish the connection and start the writer task."""
        if self._open or self._closed:
            raise TransportError("Transport cannot be reopened")

        self._on_frame = on_frame
        self._on_close = on_close

        await self._connect(url, token)

        self._open = True
        self._writer = asyncio.create_task(self._write_loop())
        _LOGGER.debug("%s open", type(self).__name__)

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        """Queue one outbound frame."""
        if not self._open:
            raise TransportError(f"Cannot send {event!r}: transport not open")
        self._queue.put_nowait((event, dict(payload)))

    def detach(self) -> None:
        """Unregister the frame/close handlers."""
        self._on_frame = None
        self._on_close = None

    async def close(self) -> None:
        """Flush queued frames, then release the connection."""
        if self._closed:
            return
        self._closed = True
        was_open = self._open
        self._open = False

        writer = self._writer
        if writer is not None and not writer.done():
            if was_open:
                self._queue.put_nowait(None)
                done, _ = await asyncio.wait({writer}, timeout=TRANSPORT_CLOSE_TIMEOUT)
                if not done:
                    _LOGGER.debug(
                        "%d queued frame(s) not flushed within %.1fs",
                        self._queue.qsize(),
                        TRANSPORT_CLOSE_TIMEOUT,
                    )
                    writer.cancel()
            else:
                writer.cancel()

        await self._disconnect()
        _LOGGER.debug("%s closed", type(self).__name__)

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _connect(self, url: str, token: str) -> None:
        """Open the wire connection.

        Raises:
            TransportError: If the connection cannot be established
        """

    @abstractmethod
    async def _write(self, event: str, payload: Dict[str, Any]) -> None:
        """Put one frame on the wire."""

    @abstractmethod
    async def _disconnect(self) -> None:
        """Release the wire connection."""

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _deliver(self, event: str, payload: Any) -> None:
        """Hand one inbound frame to the registered handler."""
        handler = self._on_frame
        if handler is None:
            _LOGGER.debug("Frame %r arrived after detach, dropped", event)
            return
        handler(event, payload)

    def _connection_lost(self, reason: Optional[str]) -> None:
        """Report a drop the caller did not initiate."""
        if not self._open:
            return
        self._open = False

        writer = self._writer
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()

        _LOGGER.debug("%s lost: %s", type(self).__name__, reason)
        handler = self._on_close
        if handler is not None:
            handler(reason)

    async def _write_loop(self) -> None:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return

            event, payload = frame
            try:
                await self._write(event, payload)
            except asyncio.CancelledError:
                raise
            except Exception as err:  # pylint: disable=broad-exception-caught
                _LOGGER.warning("Writing %r failed: %s", event, err)
                self._connection_lost(f"write failed: {err}")
                return
