"""Tests for TutorActivityTracker."""

from unittest.mock import Mock

from cogni_realtime.application.services import TutorActivityTracker, TutorStatus
from cogni_realtime.domain.value_objects import EventKind


class TestTutorActivityTracker:
    """Test tutor status derivation."""

    def test_starts_idle(self):
        """Test initial status."""
        assert TutorActivityTracker().status is TutorStatus.IDLE

    def test_full_exchange(self):
        """Test send -> thinking -> responding -> idle."""
        on_change = Mock()
        tracker = TutorActivityTracker(on_change)

        tracker.message_sent()
        tracker.observe(EventKind.TUTOR_THINKING)
        tracker.observe(EventKind.TUTOR_MESSAGE_START)
        tracker.observe(EventKind.TUTOR_MESSAGE_CHUNK)
        tracker.observe(EventKind.TUTOR_MESSAGE_COMPLETE)

        # Only actual changes are reported
        assert [c.args[0] for c in on_change.call_args_list] == [
            TutorStatus.THINKING,
            TutorStatus.RESPONDING,
            TutorStatus.IDLE,
        ]

    def test_error(self):
        """Test an error frame moves to ERROR until reset."""
        tracker = TutorActivityTracker()
        tracker.observe(EventKind.ERROR)
        assert tracker.status is TutorStatus.ERROR

        tracker.reset()
        assert tracker.status is TutorStatus.IDLE

    def test_unrelated_kinds_ignored(self):
        """Test non-tutor kinds do not change the status."""
        on_change = Mock()
        tracker = TutorActivityTracker(on_change)
        tracker.observe(EventKind.NEW_MESSAGE)
        tracker.observe(EventKind.PROGRESS_UPDATE)
        on_change.assert_not_called()
