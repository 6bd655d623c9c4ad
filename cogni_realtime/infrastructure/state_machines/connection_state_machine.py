"""Connection state machine for explicit state management."""

import logging
from enum import Enum, auto
from typing import Callable, Dict, Optional

from ...domain.value_objects import ConnectionState

_LOGGER = logging.getLogger(__name__)


class ConnectionEvent(Enum):
    """Connection events that trigger state transitions."""

    CONNECT = auto()
    CONNECT_SUCCESS = auto()
    CONNECT_FAILED = auto()
    AUTH_FAILED = auto()
    CONNECTION_LOST = auto()
    RETRIES_EXHAUSTED = auto()
    DISCONNECT = auto()


class ConnectionStateMachine:
    """State machine for connection lifecycle management.

    Valid transitions:
        IDLE/DISCONNECTED/FAILED -> CONNECTING (on CONNECT)
        CONNECTING -> CONNECTED (on CONNECT_SUCCESS)
        CONNECTING -> FAILED (on AUTH_FAILED)
        CONNECTING -> RECONNECTING (on CONNECT_FAILED, retries remaining)
        CONNECTED -> RECONNECTING (on CONNECTION_LOST)
        CONNECTED -> DISCONNECTED (on CONNECTION_LOST, auto-reconnect off)
        RECONNECTING -> CONNECTED (on CONNECT_SUCCESS)
        RECONNECTING -> FAILED (on AUTH_FAILED or RETRIES_EXHAUSTED)
        CONNECTING -> FAILED (on RETRIES_EXHAUSTED, no retries allowed)
        any -> IDLE (on DISCONNECT)

    Every transition to a different state invokes the change listener.

    Example:
        >>> sm = ConnectionStateMachine()
        >>> sm.transition(ConnectionEvent.CONNECT)
        True
        >>> sm.state
        <ConnectionState.CONNECTING: 'connecting'>
        >>> sm.transition(ConnectionEvent.CONNECT_SUCCESS)
        True
        >>> sm.is_connected
        True
    """

    def __init__(self, auto_reconnect: bool = True):
        """Initialize state machine in IDLE state.

        Args:
            auto_reconnect: Whether CONNECTION_LOST leads to RECONNECTING
                (True) or DISCONNECTED (False)
        """
        self._state = ConnectionState.IDLE
        self._previous_state: Optional[ConnectionState] = None
        self._on_change: Optional[Callable[[ConnectionState], None]] = None
        self._on_state: Dict[ConnectionState, Callable[[], None]] = {}

        lost_target = (
            ConnectionState.RECONNECTING
            if auto_reconnect
            else ConnectionState.DISCONNECTED
        )

        # Valid transitions: (current_state, event) -> new_state
        self._transitions = {
            (ConnectionState.IDLE, ConnectionEvent.CONNECT): ConnectionState.CONNECTING,
            (
                ConnectionState.DISCONNECTED,
                ConnectionEvent.CONNECT,
            ): ConnectionState.CONNECTING,
            (ConnectionState.FAILED, ConnectionEvent.CONNECT): ConnectionState.CONNECTING,
            (
                ConnectionState.CONNECTING,
                ConnectionEvent.CONNECT_SUCCESS,
            ): ConnectionState.CONNECTED,
            (
                ConnectionState.CONNECTING,
                ConnectionEvent.AUTH_FAILED,
            ): ConnectionState.FAILED,
            (
                ConnectionState.CONNECTING,
                ConnectionEvent.CONNECT_FAILED,
            ): ConnectionState.RECONNECTING,
            (
                ConnectionState.CONNECTING,
                ConnectionEvent.RETRIES_EXHAUSTED,
            ): ConnectionState.FAILED,
            (ConnectionState.CONNECTED, ConnectionEvent.CONNECTION_LOST): lost_target,
            (
                ConnectionState.RECONNECTING,
                ConnectionEvent.CONNECT_SUCCESS,
            ): ConnectionState.CONNECTED,
            (
                ConnectionState.RECONNECTING,
                ConnectionEvent.CONNECT_FAILED,
            ): ConnectionState.RECONNECTING,
            (
                ConnectionState.RECONNECTING,
                ConnectionEvent.AUTH_FAILED,
            ): ConnectionState.FAILED,
            (
                ConnectionState.RECONNECTING,
                ConnectionEvent.RETRIES_EXHAUSTED,
            ): ConnectionState.FAILED,
        }

    @property
    def state(self) -> ConnectionState:
        """Get current state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if currently connected."""
        return self._state.is_live

    @property
    def can_connect(self) -> bool:
        """Check if a new connection cycle can be started."""
        return self._state in (
            ConnectionState.IDLE,
            ConnectionState.DISCONNECTED,
            ConnectionState.FAILED,
        )

    def transition(self, event: ConnectionEvent) -> bool:
        """Attempt state transition.

        DISCONNECT is valid from every state.

        Args:
            event: Event triggering transition

        Returns:
            True if transition valid and executed, False otherwise
        """
        if event is ConnectionEvent.DISCONNECT:
            self._change_state(ConnectionState.IDLE, event)
            return True

        key = (self._state, event)

        if key not in self._transitions:
            _LOGGER.debug(
                "Invalid transition: %s + %s",
                self._state.name,
                event.name,
            )
            return False

        self._change_state(self._transitions[key], event)
        return True

    def _change_state(self, new_state: ConnectionState, event: ConnectionEvent):
        """Change to new state and invoke callbacks.

        Args:
            new_state: State to transition to
            event: Event that triggered transition
        """
        if new_state is self._state:
            _LOGGER.debug("Connection state unchanged: %s (event: %s)", new_state.name, event.name)
            return

        self._previous_state = self._state
        self._state = new_state

        _LOGGER.debug(
            "Connection state: %s -> %s (event: %s)",
            self._previous_state.name,
            new_state.name,
            event.name,
        )

        if new_state in self._on_state:
            try:
                self._on_state[new_state]()
            except Exception as err:  # pylint: disable=broad-exception-caught
                _LOGGER.error("Error in state entry callback: %s", err)

        if self._on_change is not None:
            self._on_change(new_state)

    def on_change(self, callback: Callable[[ConnectionState], None]):
        """Register the listener notified on every state change."""
        self._on_change = callback

    def on_state(self, state: ConnectionState, callback: Callable[[], None]):
        """Register callback for state entry.

        Args:
            state: State to watch
            callback: Function to call on state entry (no args)
        """
        self._on_state[state] = callback

    def __str__(self) -> str:
        """String representation."""
        return f"ConnectionStateMachine(state={self._state.name})"

    def __repr__(self) -> str:
        """Developer representation."""
        return f"ConnectionStateMachine(state={self._state!r}, previous={self._previous_state!r})"
