"""Connection state value object."""

from enum import Enum


class ConnectionState(str, Enum):
    """Lifecycle state of one connection manager.

    Exactly one manager owns one state at a time; subscribers observe it
    through status notifications but never mutate it.
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"
    FAILED = "failed"

    @property
    def is_live(self) -> bool:
        """True when frames can flow."""
        return self is ConnectionState.CONNECTED
