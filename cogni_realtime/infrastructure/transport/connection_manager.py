"""Connection manager for the realtime transport lifecycle.

This module implements connection lifecycle management with:
- Token validation before every attempt
- Exponential backoff retry logic (one pending retry at a time)
- Session membership restored after reconnects
- Typed event dispatch and stream assembly
- State management through ConnectionStateMachine
"""

import asyncio
import logging
import time
from functools import partial
from typing import Any, Callable, Optional, Sequence, Set, Union

from ...application.services import (
    AuthGuard,
    ListenerRegistry,
    ReconnectionPolicy,
    SessionBinding,
    StreamAssembler,
    TutorActivityTracker,
    TutorStatus,
)
from ...config import RealtimeConfig
from ...const import EXHAUSTION_MESSAGE
from ...domain.entities import ReconnectAttempt
from ...domain.exceptions import (
    AuthError,
    ExhaustionError,
    ProtocolError,
    RealtimeError,
    TransportError,
)
from ...domain.interfaces import IConnectionManager, ITokenProvider, ITransport
from ...domain.value_objects import (
    EVENTS,
    ChannelProfile,
    ConnectionState,
    ErrorPayload,
    EventKind,
    InboundFrame,
    Notification,
    SessionKey,
    STREAM_KINDS,
)
from ..decorators import require_session
from ..protocol import FrameCodec
from ..state_machines import ConnectionEvent, ConnectionStateMachine

_LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[], ITransport]
Sleep = Callable[[float], Any]


class ConnectionManager(IConnectionManager):
    """Manages one realtime connection: auth, reconnects, session, dispatch.

    One instance serves one channel profile (group chat, typed events or
    the AI tutor). It exclusively owns its state, session key, attempt
    counter and transports.

    Guarantees:
    - At most one connection attempt in flight; concurrent ``connect``
      calls share its outcome
    - At most one pending retry; any new ``connect`` cancels it first
    - Every attempt captures an epoch; ``disconnect`` bumps it, so frames,
      drops and retries belonging to an older attempt are ignored
    - Low-level handlers are detached before a transport is closed
    - A drop sooner than ``stable_connection_ms`` after connecting continues
      the previous backoff instead of starting over

    Attributes:
        _transport: Current transport (None when not connected)
        _binding: Session membership and join/leave handshakes
        _attempt: Retries scheduled since the last success
        _state_machine: Connection state (owned, never shared)

    Example:
        >>> manager = ConnectionManager(config, token_provider, WebSocketTransport)
        >>> manager.on(EventKind.NEW_MESSAGE, print)
        >>> if await manager.connect(7):
        ...     manager.send_message("hello")
        >>> manager.disconnect()
    """

    def __init__(
        self,
        config: RealtimeConfig,
        token_provider: ITokenProvider,
        transport_factory: TransportFactory,
        profile: ChannelProfile = EVENTS,
        policy: Optional[ReconnectionPolicy] = None,
        registry: Optional[ListenerRegistry] = None,
        auth_guard: Optional[AuthGuard] = None,
        codec: Optional[FrameCodec] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize connection manager. Nothing is opened here.

        Args:
            config: Connection configuration
            token_provider: Source of bearer tokens, asked on every attempt
            transport_factory: Builds a fresh transport per attempt
            profile: Channel vocabulary (default EVENTS)
            policy: Backoff policy (default derived from ``config``)
            registry: Subscriber registry (default empty)
            auth_guard: Token validator (default derived from ``config``)
            codec: Inbound frame decoder
            sleep: Coroutine function used for retry delays, in seconds
            clock: Monotonic clock used to measure connection uptime
        """
        self._config = config
        self._token_provider = token_provider
        self._transport_factory = transport_factory
        self._profile = profile
        self._policy = policy or ReconnectionPolicy(
            base_delay_ms=config.reconnect_delay_ms,
            multiplier=config.reconnect_multiplier,
            max_delay_ms=config.reconnect_max_delay_ms,
            max_attempts=config.max_reconnect_attempts,
        )
        self._registry = registry or ListenerRegistry()
        self._auth_guard = auth_guard or AuthGuard(leeway_s=config.token_leeway_s)
        self._codec = codec or FrameCodec()
        self._sleep = sleep
        self._clock = clock

        self._binding = SessionBinding(profile)
        self._assembler = StreamAssembler()
        self._tutor: Optional[TutorActivityTracker] = None
        if profile.track_tutor_activity:
            self._tutor = TutorActivityTracker(on_change=self._on_tutor_status)

        self._attempt = ReconnectAttempt(max_attempts=self._policy.max_attempts)
        self._state_machine = ConnectionStateMachine(
            auto_reconnect=config.auto_reconnect
        )
        self._state_machine.on_change(self._registry.notify_status)
        self._state_machine.on_state(ConnectionState.CONNECTED, self._on_connected)
        self._state_machine.on_state(ConnectionState.FAILED, self._on_failed)

        self._transport: Optional[ITransport] = None
        self._epoch = 0
        self._connect_task: Optional[asyncio.Task] = None
        self._retry_task: Optional[asyncio.Task] = None
        self._closing: Set[asyncio.Task] = set()
        self._last_error: Optional[RealtimeError] = None
        self._connected_at = 0.0

    def _on_connected(self):
        """Callback when connection established."""
        _LOGGER.info(
            "Realtime %s connection established (session: %s)",
            self._profile.name,
            self._binding.key,
        )

    def _on_failed(self):
        """Callback when connection failed."""
        _LOGGER.warning(
            "Realtime %s connection failed: %s", self._profile.name, self._last_error
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state_machine.state

    @property
    def is_connected(self) -> bool:
        """True in CONNECTED state."""
        return self._state_machine.is_connected

    @property
    def session_key(self) -> Optional[SessionKey]:
        """Bound session key, if any."""
        return self._binding.key

    @property
    def attempts(self) -> int:
        """Retries scheduled since the last successful connection."""
        return self._attempt.count

    @property
    def last_error(self) -> Optional[RealtimeError]:
        """Most recent error, cleared on a successful connection."""
        return self._last_error

    @property
    def profile(self) -> ChannelProfile:
        """Channel profile this manager serves."""
        return self._profile

    @property
    def tutor_status(self) -> Optional[TutorStatus]:
        """Tutor activity, or None when the profile does not track it."""
        return self._tutor.status if self._tutor is not None else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, session_key: Optional[SessionKey] = None) -> bool:
        """Connect and join ``session_key`` (or the previously bound key).

        Returns:
            True once connected and joined, False on auth or transport
            failure (retries may continue in the background)

        Example:
            >>> await manager.connect("room-1")
            True
            >>> await manager.connect("room-1")  # already there
            True
        """
        if self._state_machine.is_connected:
            if session_key is not None and session_key != self._binding.key:
                _LOGGER.info(
                    "Switching session %s -> %s", self._binding.key, session_key
                )
                self._binding.join_session(session_key)
            return True

        if session_key is not None:
            # Recorded now; the join goes out once the transport is up
            self._binding.join_session(session_key)

        task = self._connect_task
        if task is not None and not task.done():
            _LOGGER.debug("Connect already in progress, awaiting it")
            return await self._await_connect(task)

        self._cancel_retry()
        self._attempt.reset()
        self._epoch += 1
        task = asyncio.ensure_future(self._run_connect(self._epoch))
        self._connect_task = task
        return await self._await_connect(task)

    @staticmethod
    async def _await_connect(task: asyncio.Task) -> bool:
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # The attempt was cancelled by disconnect(), not the caller
            if task.cancelled():
                return False
            raise

    def disconnect(self) -> None:
        """Tear everything down and return to IDLE. Safe from any state."""
        self._epoch += 1
        self._cancel_retry()

        task = self._connect_task
        self._connect_task = None
        if task is not None and not task.done():
            task.cancel()

        self._binding.leave_session()
        self._binding.detach()
        self._discard_transport(self._transport)
        self._assembler.discard_all()
        self._attempt.reset()
        if self._tutor is not None:
            self._tutor.reset()

        was = self._state_machine.state
        self._state_machine.transition(ConnectionEvent.DISCONNECT)
        if was is not ConnectionState.IDLE:
            _LOGGER.info("Realtime %s connection closed", self._profile.name)

    async def aclose(self) -> None:
        """``disconnect`` and wait for transport teardown."""
        self.disconnect()
        if self._closing:
            await asyncio.gather(*list(self._closing), return_exceptions=True)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def join_session(self, session_key: SessionKey) -> None:
        """Bind to ``session_key``; the join frame is sent once connected."""
        self._binding.join_session(session_key)

    def leave_session(self) -> None:
        """Leave the bound session (local key is always cleared)."""
        self._binding.leave_session()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    @require_session("send message")
    def send_message(
        self, content: str, attachments: Optional[Sequence[Any]] = None
    ) -> bool:
        """Send a message to the bound session.

        Returns:
            False without side effects unless connected and bound
        """
        fields = {"content": content}
        if attachments:
            fields["attachments"] = list(attachments)
        self._emit(EventKind.SEND_MESSAGE, **fields)
        if self._tutor is not None:
            self._tutor.message_sent()
        return True

    @require_session("send typing indicator")
    def send_typing(self, is_typing: bool) -> bool:
        """Send ``typing_start`` / ``typing_stop`` to the bound session."""
        kind = EventKind.TYPING_START if is_typing else EventKind.TYPING_STOP
        self._emit(kind)
        return True

    @require_session("send voice message")
    def send_voice_message(
        self, transcript: str, audio_url: Optional[str] = None
    ) -> bool:
        """Send a transcribed voice message to the bound session."""
        fields = {"transcript": transcript}
        if audio_url:
            fields["audio_url"] = audio_url
        self._emit(EventKind.VOICE_MESSAGE, **fields)
        if self._tutor is not None:
            self._tutor.message_sent()
        return True

    def _emit(self, kind: EventKind, **fields: Any) -> None:
        self._send_frame(self._profile.wire_name(kind), self._binding.payload(**fields))

    def _send_frame(self, event: str, payload: dict) -> None:
        transport = self._transport
        if transport is None or not transport.is_open:
            raise TransportError(f"Cannot send {event!r}: not connected")
        transport.send(event, payload)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on(
        self, kind: Union[EventKind, str], callback: Callable[[Any], Any]
    ) -> Callable[[], None]:
        """Subscribe to an event kind; returns an unsubscribe function.

        Wire aliases such as ``user_joined`` resolve to their kind.
        """
        return self._registry.on(self._resolve_kind(kind), callback)

    def off(self, kind: Union[EventKind, str], callback: Callable[[Any], Any]) -> None:
        """Remove every registration of ``callback`` for ``kind``."""
        self._registry.off(self._resolve_kind(kind), callback)

    @staticmethod
    def _resolve_kind(kind: Union[EventKind, str]) -> EventKind:
        if isinstance(kind, EventKind):
            return kind
        return EventKind.from_wire(kind) or EventKind(kind)

    def on_status_change(
        self, callback: Callable[[ConnectionState], Any]
    ) -> Callable[[], None]:
        """Subscribe to state changes; invoked at once with the current state."""
        return self._registry.on_status_change(callback, self.state)

    def off_status_change(self, callback: Callable[[ConnectionState], Any]) -> None:
        """Remove a status subscription."""
        self._registry.off_status_change(callback)

    # ------------------------------------------------------------------
    # Connection attempts
    # ------------------------------------------------------------------

    async def _run_connect(self, epoch: int) -> bool:
        if self._state_machine.can_connect:
            self._state_machine.transition(ConnectionEvent.CONNECT)

        try:
            await self._attempt_connection(epoch)
        except asyncio.CancelledError:
            # Superseded by disconnect(); it already reset everything
            _LOGGER.debug("Connect attempt cancelled")
            return False
        except AuthError as err:
            self._fail_auth(err)
            return False
        except TransportError as err:
            self._record_transport_failure(err)
            self._after_failed_connect(epoch)
            return False
        return True

    async def _attempt_connection(self, epoch: int) -> None:
        """One attempt: token, auth guard, transport open, join.

        Raises:
            AuthError: Token missing, malformed or expired
            TransportError: Transport failed to open in time
        """
        self._discard_transport(self._transport)
        self._binding.detach()

        try:
            token = await self._token_provider.get_token()
        except RealtimeError:
            raise
        except Exception as err:  # pylint: disable=broad-exception-caught
            raise AuthError(f"Token provider failed: {err}") from err
        self._auth_guard.validate(token)

        transport = self._transport_factory()
        self._transport = transport
        try:
            await asyncio.wait_for(
                transport.open(
                    self._config.endpoint_url(),
                    token,
                    partial(self._on_frame, epoch),
                    partial(self._on_transport_closed, epoch, transport),
                ),
                timeout=self._config.connect_timeout,
            )
        except asyncio.TimeoutError as err:
            self._discard_transport(transport)
            raise TransportError(
                f"Connection timed out after {self._config.connect_timeout_ms} ms"
            ) from err
        except BaseException:
            self._discard_transport(transport)
            raise

        if epoch != self._epoch:
            self._discard_transport(transport)
            raise asyncio.CancelledError()
        if transport is not self._transport or not transport.is_open:
            # Closed while opening; on_close already discarded it
            if transport is self._transport:
                self._discard_transport(transport)
            raise TransportError("Connection lost during open")

        self._binding.attach(self._send_frame)
        self._attempt.succeed()
        self._connected_at = self._clock()
        self._last_error = None
        self._assembler.discard_all()
        if self._tutor is not None:
            self._tutor.reset()
        self._binding.rejoin()
        self._state_machine.transition(ConnectionEvent.CONNECT_SUCCESS)

    def _after_failed_connect(self, epoch: int) -> None:
        if not self._config.auto_reconnect:
            self._state_machine.transition(ConnectionEvent.RETRIES_EXHAUSTED)
            self._dispatch_error(self._last_error, "transport")
            return

        if not self._retries_left():
            self._exhaust()
            return

        self._state_machine.transition(ConnectionEvent.CONNECT_FAILED)
        self._start_retries(epoch)

    def _retries_left(self) -> bool:
        return self._policy.should_retry(self._attempt.count, self._attempt.max_attempts)

    def _start_retries(self, epoch: int) -> None:
        self._cancel_retry()
        self._retry_task = asyncio.ensure_future(self._retry_loop(epoch))
        self._retry_task.add_done_callback(self._on_retry_done)

    async def _retry_loop(self, epoch: int) -> None:
        while True:
            count = self._attempt.increment()
            delay_ms = self._policy.next_delay(count)
            _LOGGER.warning(
                "Reconnecting in %d ms (attempt %d/%d)",
                delay_ms,
                count,
                self._policy.max_attempts,
            )
            await self._sleep(delay_ms / 1000)
            if epoch != self._epoch:
                return

            try:
                await self._attempt_connection(epoch)
            except AuthError as err:
                self._fail_auth(err)
                return
            except TransportError as err:
                self._record_transport_failure(err)
                if not self._retries_left():
                    self._exhaust()
                    return
                self._state_machine.transition(ConnectionEvent.CONNECT_FAILED)
                continue
            return

    def _on_retry_done(self, task: asyncio.Task) -> None:
        if task is self._retry_task:
            self._retry_task = None
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.error("Reconnect loop crashed: %s", err, exc_info=err)

    def _cancel_retry(self) -> None:
        task = self._retry_task
        self._retry_task = None
        if task is not None and not task.done():
            _LOGGER.debug("Cancelling pending reconnect")
            task.cancel()

    # ------------------------------------------------------------------
    # Failures
    # ------------------------------------------------------------------

    def _record_transport_failure(self, err: TransportError) -> None:
        self._last_error = err
        _LOGGER.warning("Connection attempt failed: %s", err)

    def _fail_auth(self, err: AuthError) -> None:
        self._last_error = err
        _LOGGER.warning("Authentication failed: %s", err)
        self._state_machine.transition(ConnectionEvent.AUTH_FAILED)
        self._dispatch_error(err, "auth")

    def _exhaust(self) -> None:
        err = ExhaustionError(EXHAUSTION_MESSAGE, attempts=self._attempt.count)
        self._last_error = err
        _LOGGER.error(
            "Giving up on realtime %s connection after %d reconnect attempt(s)",
            self._profile.name,
            self._attempt.count,
        )
        self._state_machine.transition(ConnectionEvent.RETRIES_EXHAUSTED)
        self._dispatch_error(err, "exhaustion")
        self._registry.dispatch(
            EventKind.NOTIFICATION,
            Notification(level="error", message=EXHAUSTION_MESSAGE),
        )

    def _dispatch_error(self, err: Optional[RealtimeError], category: str) -> None:
        self._registry.dispatch(
            EventKind.ERROR,
            ErrorPayload(
                message=str(err) if err is not None else category,
                category=category,
                event=getattr(err, "event", None),
            ),
        )

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _on_transport_closed(
        self, epoch: int, transport: ITransport, reason: Optional[str]
    ) -> None:
        if epoch != self._epoch or transport is not self._transport:
            _LOGGER.debug("Ignoring close of a stale transport: %s", reason)
            return

        _LOGGER.warning("Realtime %s connection lost: %s", self._profile.name, reason)
        self._last_error = TransportError(f"Connection lost: {reason}")
        self._discard_transport(transport)
        self._binding.detach()
        self._assembler.discard_all()
        if self._tutor is not None:
            self._tutor.reset()

        if not self._state_machine.transition(ConnectionEvent.CONNECTION_LOST):
            return
        if not self._config.auto_reconnect:
            return

        uptime = self._clock() - self._connected_at
        if uptime < self._config.stable_connection:
            _LOGGER.debug("Connection lasted %.1f s, continuing backoff", uptime)
            self._attempt.resume()
        else:
            self._attempt.reset()
        if not self._retries_left():
            self._exhaust()
            return
        self._start_retries(epoch)

    def _on_frame(self, epoch: int, event: str, data: Any) -> None:
        if epoch != self._epoch:
            _LOGGER.debug("Dropping %r from a stale connection", event)
            return

        if EventKind.from_wire(event) is None:
            _LOGGER.debug("Ignoring unknown event %r", event)
            return

        try:
            frame = self._codec.decode(event, data)
        except ProtocolError as err:
            _LOGGER.warning("Dropping malformed frame: %s", err)
            self._last_error = err
            self._dispatch_error(err, "protocol")
            return

        if not self._profile.accepts(frame.kind):
            _LOGGER.debug(
                "Event %s not handled by %s profile", frame.kind.value, self._profile.name
            )
            return

        if self._tutor is not None:
            self._tutor.observe(frame.kind)

        if frame.kind in STREAM_KINDS and self._profile.assemble_streams:
            self._route_stream(frame)
            return

        if frame.kind is EventKind.ERROR:
            self._last_error = ProtocolError(frame.payload.message, event=frame.payload.event)
            _LOGGER.warning("Server error: %s", frame.payload.message)

        self._registry.dispatch(frame.kind, frame.payload)

    def _route_stream(self, frame: InboundFrame) -> None:
        kind = frame.kind
        if kind is EventKind.TUTOR_MESSAGE_START:
            self._assembler.start(frame.payload)
            self._registry.dispatch(kind, frame.payload)
            return

        discarded = self._assembler.is_discarded(frame.payload.message_id)
        if discarded:
            _LOGGER.debug(
                "Dropping %s for discarded message %s",
                kind.value,
                frame.payload.message_id,
            )

        if kind is EventKind.TUTOR_MESSAGE_CHUNK:
            completed = self._assembler.add_chunk(frame.payload)
            if not discarded:
                self._registry.dispatch(kind, frame.payload)
            if completed is None:
                return
            if self._tutor is not None:
                self._tutor.observe(EventKind.TUTOR_MESSAGE_COMPLETE)
        else:
            completed = self._assembler.complete(frame.payload)
            if completed is None:
                return

        self._registry.dispatch(EventKind.TUTOR_MESSAGE_COMPLETE, completed)

    def _on_tutor_status(self, status: TutorStatus) -> None:
        self._registry.dispatch(EventKind.TUTOR_STATUS, status)

    # ------------------------------------------------------------------
    # Transport teardown
    # ------------------------------------------------------------------

    def _discard_transport(self, transport: Optional[ITransport]) -> None:
        if transport is None:
            return
        if transport is self._transport:
            self._transport = None
        transport.detach()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _LOGGER.warning("No running event loop; transport not closed cleanly")
            return

        task = loop.create_task(self._close_transport(transport))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_transport(self, transport: ITransport) -> None:
        try:
            await transport.close()
        except Exception as err:  # pylint: disable=broad-exception-caught
            _LOGGER.debug("Transport close error (non-critical): %s", err)

    def __repr__(self) -> str:
        """Developer representation."""
        return (
            f"ConnectionManager(profile={self._profile.name!r}, "
            f"state={self.state.value!r}, session={self._binding.key!r})"
        )
