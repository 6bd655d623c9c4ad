"""Tests for ListenerRegistry."""

import asyncio
import logging
from unittest.mock import Mock

import pytest

from cogni_realtime.application.services import ListenerRegistry
from cogni_realtime.domain.value_objects import ConnectionState, EventKind


@pytest.fixture
def registry():
    """Empty registry."""
    return ListenerRegistry()


class TestEventSubscriptions:
    """Test on/off/dispatch."""

    def test_dispatch_in_registration_order(self, registry):
        """Test callbacks run in the order they were added."""
        calls = []
        registry.on(EventKind.NEW_MESSAGE, lambda p: calls.append(("a", p)))
        registry.on(EventKind.NEW_MESSAGE, lambda p: calls.append(("b", p)))

        assert registry.dispatch(EventKind.NEW_MESSAGE, "hi") == 2
        assert calls == [("a", "hi"), ("b", "hi")]

    def test_other_kinds_not_invoked(self, registry):
        """Test dispatch only reaches the matching kind."""
        callback = Mock()
        registry.on(EventKind.MEMBER_JOINED, callback)

        assert registry.dispatch(EventKind.NEW_MESSAGE, "hi") == 0
        callback.assert_not_called()

    def test_duplicate_registration_invoked_twice(self, registry):
        """Test no implicit dedup."""
        callback = Mock()
        registry.on(EventKind.NEW_MESSAGE, callback)
        registry.on(EventKind.NEW_MESSAGE, callback)

        registry.dispatch(EventKind.NEW_MESSAGE, "hi")
        assert callback.call_count == 2
        assert registry.listener_count(EventKind.NEW_MESSAGE) == 2

    def test_off_removes_every_registration(self, registry):
        """Test off() removes all registrations of the callback."""
        callback = Mock()
        other = Mock()
        registry.on(EventKind.NEW_MESSAGE, callback)
        registry.on(EventKind.NEW_MESSAGE, other)
        registry.on(EventKind.NEW_MESSAGE, callback)

        registry.off(EventKind.NEW_MESSAGE, callback)
        registry.dispatch(EventKind.NEW_MESSAGE, "hi")

        callback.assert_not_called()
        other.assert_called_once_with("hi")

    def test_off_unknown_callback_is_noop(self, registry):
        """Test removing an unregistered callback does nothing."""
        registry.off(EventKind.NEW_MESSAGE, Mock())
        assert registry.listener_count(EventKind.NEW_MESSAGE) == 0

    def test_unsubscribe_handle_removes_one(self, registry):
        """Test the returned handle removes only its own registration."""
        callback = Mock()
        first = registry.on(EventKind.NEW_MESSAGE, callback)
        registry.on(EventKind.NEW_MESSAGE, callback)

        first()
        first()
        registry.dispatch(EventKind.NEW_MESSAGE, "hi")

        callback.assert_called_once_with("hi")

    def test_off_during_dispatch(self, registry):
        """Test a callback removed mid-dispatch is not invoked afterwards."""
        second = Mock()

        def first(_payload):
            registry.off(EventKind.NEW_MESSAGE, second)

        registry.on(EventKind.NEW_MESSAGE, first)
        registry.on(EventKind.NEW_MESSAGE, second)

        assert registry.dispatch(EventKind.NEW_MESSAGE, "hi") == 1
        second.assert_not_called()

    def test_on_during_dispatch_waits_for_next(self, registry):
        """Test a callback added mid-dispatch only sees later dispatches."""
        late = Mock()

        def first(_payload):
            registry.on(EventKind.NEW_MESSAGE, late)

        registry.on(EventKind.NEW_MESSAGE, first)
        registry.dispatch(EventKind.NEW_MESSAGE, "one")
        late.assert_not_called()

        registry.dispatch(EventKind.NEW_MESSAGE, "two")
        late.assert_called_once_with("two")

    def test_raising_callback_isolated(self, registry, caplog):
        """Test a raising callback is logged and others still run."""
        after = Mock()
        registry.on(EventKind.NEW_MESSAGE, Mock(side_effect=RuntimeError("boom")))
        registry.on(EventKind.NEW_MESSAGE, after)

        with caplog.at_level(logging.ERROR):
            registry.dispatch(EventKind.NEW_MESSAGE, "hi")

        after.assert_called_once_with("hi")
        assert "boom" in caplog.text

    @pytest.mark.asyncio
    async def test_async_callback_scheduled(self, registry):
        """Test coroutine callbacks run on the loop."""
        received = []

        async def callback(payload):
            received.append(payload)

        registry.on(EventKind.NEW_MESSAGE, callback)
        registry.dispatch(EventKind.NEW_MESSAGE, "hi")
        await asyncio.sleep(0)

        assert received == ["hi"]

    @pytest.mark.asyncio
    async def test_async_callback_error_logged(self, registry, caplog):
        """Test errors in async callbacks are logged."""

        async def callback(_payload):
            raise RuntimeError("async boom")

        registry.on(EventKind.NEW_MESSAGE, callback)
        with caplog.at_level(logging.ERROR):
            registry.dispatch(EventKind.NEW_MESSAGE, "hi")
            await asyncio.sleep(0)
            await asyncio.sleep(0)

        assert "async boom" in caplog.text

    def test_async_callback_without_loop(self, registry, caplog):
        """Test an async callback outside a loop is reported, not run."""

        async def callback(_payload):
            raise AssertionError("must not run")

        registry.on(EventKind.NEW_MESSAGE, callback)
        with caplog.at_level(logging.ERROR):
            registry.dispatch(EventKind.NEW_MESSAGE, "hi")

        assert "no running event loop" in caplog.text


class TestStatusSubscriptions:
    """Test status listeners."""

    def test_immediate_invocation(self, registry):
        """Test a new status listener gets the current state right away."""
        callback = Mock()
        registry.on_status_change(callback, ConnectionState.IDLE)
        callback.assert_called_once_with(ConnectionState.IDLE)

    def test_notify_and_off(self, registry):
        """Test notify reaches listeners until removed."""
        callback = Mock()
        registry.on_status_change(callback, ConnectionState.IDLE)
        registry.notify_status(ConnectionState.CONNECTING)
        registry.off_status_change(callback)
        registry.notify_status(ConnectionState.CONNECTED)

        assert [c.args[0] for c in callback.call_args_list] == [
            ConnectionState.IDLE,
            ConnectionState.CONNECTING,
        ]

    def test_unsubscribe_handle(self, registry):
        """Test the returned handle removes the status listener."""
        callback = Mock()
        unsubscribe = registry.on_status_change(callback, ConnectionState.IDLE)
        unsubscribe()
        registry.notify_status(ConnectionState.CONNECTING)
        callback.assert_called_once()

    def test_clear(self, registry):
        """Test clear() removes everything."""
        event_cb = Mock()
        status_cb = Mock()
        registry.on(EventKind.ERROR, event_cb)
        registry.on_status_change(status_cb, ConnectionState.IDLE)

        registry.clear()
        registry.dispatch(EventKind.ERROR, "x")
        registry.notify_status(ConnectionState.FAILED)

        event_cb.assert_not_called()
        status_cb.assert_called_once()
