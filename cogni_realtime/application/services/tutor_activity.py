"""Tutor activity tracking (idle / thinking / responding / error)."""

import logging
from enum import Enum
from typing import Callable, Optional

from ...domain.value_objects import EventKind

_LOGGER = logging.getLogger(__name__)


class TutorStatus(str, Enum):
    """What the AI tutor is doing from the learner's point of view."""

    IDLE = "idle"
    THINKING = "thinking"
    RESPONDING = "responding"
    ERROR = "error"


class TutorActivityTracker:
    """Derives the tutor status from outbound and inbound events.

    Transitions:
        message sent / tutor_thinking -> THINKING
        tutor_message_start / chunk   -> RESPONDING
        tutor_message_complete        -> IDLE
        error                         -> ERROR
        reset (connect/disconnect)    -> IDLE

    Only actual changes are reported through ``on_change``.
    """

    _INBOUND = {
        EventKind.TUTOR_THINKING: TutorStatus.THINKING,
        EventKind.TUTOR_MESSAGE_START: TutorStatus.RESPONDING,
        EventKind.TUTOR_MESSAGE_CHUNK: TutorStatus.RESPONDING,
        EventKind.TUTOR_MESSAGE_COMPLETE: TutorStatus.IDLE,
        EventKind.ERROR: TutorStatus.ERROR,
    }

    def __init__(self, on_change: Optional[Callable[[TutorStatus], None]] = None):
        self._status = TutorStatus.IDLE
        self._on_change = on_change

    @property
    def status(self) -> TutorStatus:
        """Current tutor status."""
        return self._status

    def message_sent(self) -> None:
        """A learner message went out."""
        self._set(TutorStatus.THINKING)

    def observe(self, kind: EventKind) -> None:
        """Update from an inbound event kind."""
        status = self._INBOUND.get(kind)
        if status is not None:
            self._set(status)

    def reset(self) -> None:
        """Back to IDLE."""
        self._set(TutorStatus.IDLE)

    def _set(self, status: TutorStatus) -> None:
        if status is self._status:
            return
        _LOGGER.debug("Tutor status: %s -> %s", self._status.value, status.value)
        self._status = status
        if self._on_change is not None:
            self._on_change(status)
