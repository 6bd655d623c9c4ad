"""Session binding: the single room/session a connection is joined to."""

import logging
from typing import Any, Callable, Dict, Optional

from ...domain.exceptions import TransportError
from ...domain.value_objects import ChannelProfile, EventKind, SessionKey

_LOGGER = logging.getLogger(__name__)

Sender = Callable[[str, Dict[str, Any]], None]


class SessionBinding:
    """Tracks the bound session key and performs join/leave handshakes.

    The key is the *desired* membership; ``is_joined`` says whether a join
    frame went out on the current transport. A transport drop keeps the key
    but clears ``is_joined``, so ``rejoin()`` restores membership exactly
    once after reconnecting.

    Example:
        >>> binding = SessionBinding(GROUP_CHAT)
        >>> binding.attach(transport.send)
        >>> binding.join_session(7)      # emits join{group_id: 7}
        >>> binding.join_session(7)      # no-op
        >>> binding.join_session(8)      # emits leave{7} then join{8}
    """

    def __init__(self, profile: ChannelProfile):
        """Initialize unbound.

        Args:
            profile: Channel vocabulary (session field, wire names)
        """
        self._profile = profile
        self._key: Optional[SessionKey] = None
        self._joined = False
        self._sender: Optional[Sender] = None

    @property
    def key(self) -> Optional[SessionKey]:
        """Currently bound session key."""
        return self._key

    @property
    def is_bound(self) -> bool:
        """True when a session key is set."""
        return self._key is not None

    @property
    def is_joined(self) -> bool:
        """True when a join frame was emitted on the attached transport."""
        return self._joined

    def attach(self, sender: Sender) -> None:
        """Use ``sender`` for handshake frames (new transport)."""
        self._sender = sender
        self._joined = False

    def detach(self) -> None:
        """Forget the transport; the key survives for ``rejoin()``."""
        self._sender = None
        self._joined = False

    def payload(self, **fields: Any) -> Dict[str, Any]:
        """Outbound payload scoped to the bound session."""
        data = {self._profile.session_field: self._key}
        data.update(fields)
        return data

    def join_session(self, key: SessionKey) -> None:
        """Bind to ``key``, leaving any other session first.

        Joining the key already joined on this transport is a no-op. Without
        an attached transport only the local key is recorded; the join frame
        goes out on the next ``rejoin()``.
        """
        if key is None:
            raise ValueError("Session key must not be None")

        if key == self._key and self._joined:
            _LOGGER.debug("Already joined session %s", key)
            return

        if self._key is not None and key != self._key:
            self.leave_session()

        self._key = key
        self._send_join()

    def leave_session(self) -> None:
        """Leave the bound session.

        The leave frame is emitted only when joined; the local key is
        cleared regardless of whether the emit succeeds.
        """
        if not self.is_bound:
            return

        key = self._key
        try:
            if self._joined and self._sender is not None:
                self._sender(
                    self._profile.wire_name(EventKind.LEAVE), self.payload()
                )
                _LOGGER.info("Left session %s", key)
        except TransportError as err:
            _LOGGER.warning("Leave frame for session %s not sent: %s", key, err)
        finally:
            self._key = None
            self._joined = False

    def rejoin(self) -> bool:
        """Re-issue the join for the bound key on a fresh transport.

        Returns:
            True if a join frame was emitted
        """
        if not self.is_bound or self._joined:
            return False
        return self._send_join()

    def _send_join(self) -> bool:
        if self._sender is None:
            _LOGGER.debug("Session %s recorded; join deferred until connected", self._key)
            return False

        try:
            self._sender(self._profile.wire_name(EventKind.JOIN), self.payload())
        except TransportError as err:
            _LOGGER.warning("Join frame for session %s not sent: %s", self._key, err)
            self._joined = False
            return False

        self._joined = True
        _LOGGER.info("Joined session %s", self._key)
        return True
