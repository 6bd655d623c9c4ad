"""Tests for ConnectionManager.

These tests verify the connection lifecycle, reconnection with backoff,
session membership, guarded sends and typed event dispatch.
"""

import asyncio
from unittest.mock import Mock

import pytest

from cogni_realtime.domain.exceptions import (
    AuthError,
    ExhaustionError,
    ProtocolError,
    TransportError,
)
from cogni_realtime.domain.value_objects import (
    EVENTS,
    GROUP_CHAT,
    TUTOR,
    ChatMessage,
    CompletedMessage,
    ConnectionState,
    ErrorPayload,
    EventKind,
    Notification,
)
from cogni_realtime.application.services import TutorStatus
from cogni_realtime.config import RealtimeConfig
from cogni_realtime.infrastructure.transport import ConnectionManager
from tests.doubles import FakeTokenProvider, make_token, wait_until


@pytest.fixture
def manager(config, token_provider, transport_factory, recording_sleep):
    """Create connection manager with fake transport factory."""
    return ConnectionManager(
        config,
        token_provider,
        transport_factory,
        profile=EVENTS,
        sleep=recording_sleep,
    )


def _recorder(manager, kind):
    received = []
    manager.on(kind, received.append)
    return received


class TestConnectionManagerInitialization:
    """Test connection manager initialization."""

    def test_initial_state_idle(self, manager):
        """Test initial state is IDLE."""
        assert manager.state is ConnectionState.IDLE
        assert not manager.is_connected
        assert manager.session_key is None
        assert manager.attempts == 0

    def test_nothing_opened_on_construction(self, manager, transport_factory, token_provider):
        """Test construction has no side effects."""
        assert transport_factory.transports == []
        assert token_provider.calls == 0

    def test_status_listener_gets_current_state(self, manager):
        """Test on_status_change invokes the callback immediately."""
        callback = Mock()
        manager.on_status_change(callback)
        callback.assert_called_once_with(ConnectionState.IDLE)


class TestConnect:
    """Test connect method."""

    @pytest.mark.asyncio
    async def test_connect_success_joins_session(self, manager, transport_factory, token, config):
        """Test successful connection joins the session."""
        result = await manager.connect("room-1")

        assert result is True
        assert manager.state is ConnectionState.CONNECTED
        assert manager.session_key == "room-1"
        transport = transport_factory.latest
        assert transport.sent == [("join", {"group_id": "room-1"})]
        assert transport.token == token
        assert transport.url == config.endpoint_url()

    @pytest.mark.asyncio
    async def test_connect_same_session_is_noop(self, manager, transport_factory):
        """Test connecting again to the same session does nothing."""
        await manager.connect("room-1")
        result = await manager.connect("room-1")

        assert result is True
        assert len(transport_factory.transports) == 1
        assert transport_factory.latest.events() == ["join"]

    @pytest.mark.asyncio
    async def test_connect_other_session_switches_rooms(self, manager, transport_factory):
        """Test connecting to another key leaves the old room on the same transport."""
        await manager.connect("room-1")
        result = await manager.connect("room-2")

        assert result is True
        assert manager.session_key == "room-2"
        assert len(transport_factory.transports) == 1
        assert transport_factory.latest.sent == [
            ("join", {"group_id": "room-1"}),
            ("leave", {"group_id": "room-1"}),
            ("join", {"group_id": "room-2"}),
        ]

    @pytest.mark.asyncio
    async def test_concurrent_connects_share_one_attempt(self, manager, transport_factory):
        """Test at most one connection attempt is in flight."""
        first, second = await asyncio.gather(
            manager.connect("room-1"), manager.connect("room-1")
        )

        assert first is True
        assert second is True
        assert len(transport_factory.transports) == 1
        assert transport_factory.latest.events() == ["join"]

    @pytest.mark.asyncio
    async def test_connect_without_session(self, manager, transport_factory):
        """Test connecting without a key sends no join."""
        assert await manager.connect() is True
        assert transport_factory.latest.sent == []
        assert manager.session_key is None

    @pytest.mark.asyncio
    async def test_status_transitions(self, manager):
        """Test every transition is notified once."""
        states = []
        manager.on_status_change(states.append)

        await manager.connect("room-1")

        assert states == [
            ConnectionState.IDLE,
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        ]


class TestAuthentication:
    """Test the auth guard runs before any transport is opened."""

    @pytest.mark.asyncio
    async def test_missing_token_fails_without_transport(self, config, transport_factory, recording_sleep):
        """Test missing token goes to FAILED and opens nothing."""
        manager = ConnectionManager(
            config, FakeTokenProvider(None), transport_factory, sleep=recording_sleep
        )
        errors = _recorder(manager, EventKind.ERROR)

        result = await manager.connect("room-1")

        assert result is False
        assert manager.state is ConnectionState.FAILED
        assert transport_factory.transports == []
        assert isinstance(manager.last_error, AuthError)
        assert errors[0].category == "auth"
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_expired_token_fails(self, config, transport_factory, recording_sleep):
        """Test expired token is rejected client-side."""
        manager = ConnectionManager(
            config,
            FakeTokenProvider(make_token(exp_offset=-60)),
            transport_factory,
            sleep=recording_sleep,
        )

        assert await manager.connect("room-1") is False
        assert manager.state is ConnectionState.FAILED
        assert transport_factory.transports == []

    @pytest.mark.asyncio
    async def test_malformed_token_fails(self, config, transport_factory):
        """Test a token that is not a JWT is rejected."""
        manager = ConnectionManager(
            config, FakeTokenProvider("not-a-jwt"), transport_factory
        )

        assert await manager.connect() is False
        assert isinstance(manager.last_error, AuthError)

    @pytest.mark.asyncio
    async def test_token_asked_fresh_each_attempt(self, manager, token_provider, transport_factory):
        """Test the provider is asked again on every attempt."""
        transport_factory.fail_next(1)

        await manager.connect("room-1")
        await wait_until(lambda: manager.state is ConnectionState.CONNECTED)

        assert token_provider.calls == 2


class TestReconnection:
    """Test retry scheduling and exhaustion."""

    @pytest.mark.asyncio
    async def test_backoff_delays_then_failed(self, manager, transport_factory, recording_sleep):
        """Test three retries at 2000/3000/4500 ms, then FAILED."""
        transport_factory.fail_always()
        notifications = _recorder(manager, EventKind.NOTIFICATION)
        errors = _recorder(manager, EventKind.ERROR)

        result = await manager.connect("room-1")
        assert result is False

        await wait_until(lambda: manager.state is ConnectionState.FAILED)

        assert recording_sleep.delays == [2.0, 3.0, 4.5]
        assert manager.attempts == 3
        assert len(transport_factory.transports) == 4
        assert isinstance(manager.last_error, ExhaustionError)
        assert len(notifications) == 1
        assert isinstance(notifications[0], Notification)
        assert notifications[0].level == "error"
        assert [e.category for e in errors] == ["exhaustion"]

    @pytest.mark.asyncio
    async def test_no_retry_after_failed(self, manager, transport_factory, recording_sleep):
        """Test nothing is scheduled once FAILED."""
        transport_factory.fail_always()
        await manager.connect("room-1")
        await wait_until(lambda: manager.state is ConnectionState.FAILED)
        opened = len(transport_factory.transports)

        for _ in range(10):
            await asyncio.sleep(0)

        assert len(transport_factory.transports) == opened
        assert len(recording_sleep.delays) == 3

    @pytest.mark.asyncio
    async def test_retry_success_rejoins_once(self, manager, transport_factory, recording_sleep):
        """Test a successful retry rejoins and resets the counter."""
        transport_factory.fail_next(1)

        assert await manager.connect("room-1") is False

        await wait_until(lambda: manager.state is ConnectionState.CONNECTED)

        assert recording_sleep.delays == [2.0]
        assert manager.attempts == 0
        assert manager.last_error is None
        assert transport_factory.latest.events() == ["join"]

    @pytest.mark.asyncio
    async def test_drop_reconnects_and_rejoins_once(self, manager, transport_factory, recording_sleep):
        """Test a server-side drop leads to RECONNECTING then CONNECTED."""
        states = []
        manager.on_status_change(states.append)
        await manager.connect("room-1")
        first = transport_factory.latest

        first.drop("server restart")
        assert manager.state is ConnectionState.RECONNECTING
        assert isinstance(manager.last_error, TransportError)

        await wait_until(lambda: manager.state is ConnectionState.CONNECTED)

        second = transport_factory.latest
        assert second is not first
        assert first.detached
        assert second.sent == [("join", {"group_id": "room-1"})]
        assert recording_sleep.delays == [2.0]
        assert states == [
            ConnectionState.IDLE,
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
            ConnectionState.RECONNECTING,
            ConnectionState.CONNECTED,
        ]

    @pytest.mark.asyncio
    async def test_every_reconnect_rejoins_once(self, manager, transport_factory):
        """Test drop, failed retry, reconnect, drop, reconnect: one join per transport."""
        await manager.connect("room-1")

        transport_factory.fail_next(1)
        transport_factory.latest.drop()
        await wait_until(lambda: manager.state is ConnectionState.CONNECTED)
        transport_factory.latest.drop()
        await wait_until(lambda: manager.state is ConnectionState.CONNECTED)

        join = [("join", {"group_id": "room-1"})]
        assert [t.sent for t in transport_factory.transports] == [join, [], join, join]
        assert all(t.detached for t in transport_factory.transports[:-1])

    @pytest.mark.asyncio
    async def test_close_during_open_schedules_retry(self, manager, transport_factory, recording_sleep):
        """Test a transport closed before open() returns counts as a failed attempt."""
        recording_sleep.block()
        transport_factory.close_during_next_open()

        assert await manager.connect("room-1") is False
        await wait_until(lambda: len(recording_sleep.delays) == 1)
        assert manager.state is ConnectionState.RECONNECTING
        assert isinstance(manager.last_error, TransportError)
        assert "during open" in str(manager.last_error)

        recording_sleep.release()
        await wait_until(lambda: manager.state is ConnectionState.CONNECTED)

        assert recording_sleep.delays == [2.0]
        assert transport_factory.transports[0].detached
        assert transport_factory.latest.sent == [("join", {"group_id": "room-1"})]

    @pytest.mark.asyncio
    async def test_close_during_open_while_retrying(self, manager, transport_factory, recording_sleep):
        """Test the retry loop keeps going after a close during open."""
        transport_factory.fail_next(1)
        transport_factory.close_during_next_open()

        await manager.connect("room-1")
        await wait_until(lambda: manager.state is ConnectionState.CONNECTED)

        assert recording_sleep.delays == [2.0, 3.0]
        assert len(transport_factory.transports) == 3

    @pytest.mark.asyncio
    async def test_close_during_every_open_fails(self, manager, transport_factory, recording_sleep):
        """Test closes during open exhaust the retries like any other failure."""
        transport_factory.close_during_next_open(4)

        await manager.connect("room-1")
        await wait_until(lambda: manager.state is ConnectionState.FAILED)

        assert recording_sleep.delays == [2.0, 3.0, 4.5]
        assert isinstance(manager.last_error, ExhaustionError)

    @pytest.mark.asyncio
    async def test_short_lived_connections_back_off(self, config, token_provider, transport_factory, recording_sleep):
        """Test a server that accepts then closes at once still reaches FAILED."""
        manager = ConnectionManager(
            config, token_provider, transport_factory, sleep=recording_sleep, clock=lambda: 0.0
        )
        await manager.connect("room-1")

        for _ in range(3):
            transport_factory.latest.drop("closed with 4001")
            await wait_until(lambda: manager.state is ConnectionState.CONNECTED)
            assert manager.attempts == 0
        transport_factory.latest.drop("closed with 4001")

        assert manager.state is ConnectionState.FAILED
        assert recording_sleep.delays == [2.0, 3.0, 4.5]
        assert isinstance(manager.last_error, ExhaustionError)

    @pytest.mark.asyncio
    async def test_stable_connection_restarts_backoff(self, config, token_provider, transport_factory, recording_sleep):
        """Test a drop after a stable connection starts again at the base delay."""
        now = [0.0]
        manager = ConnectionManager(
            config, token_provider, transport_factory, sleep=recording_sleep, clock=lambda: now[0]
        )
        await manager.connect("room-1")

        for _ in range(3):
            now[0] += config.stable_connection
            transport_factory.latest.drop()
            await wait_until(lambda: manager.state is ConnectionState.CONNECTED)

        assert recording_sleep.delays == [2.0, 2.0, 2.0]

    @pytest.mark.asyncio
    async def test_drop_without_auto_reconnect(self, token_provider, transport_factory, recording_sleep):
        """Test a drop ends in DISCONNECTED when auto-reconnect is off."""
        config = RealtimeConfig(auto_reconnect=False)
        manager = ConnectionManager(
            config, token_provider, transport_factory, sleep=recording_sleep
        )
        await manager.connect("room-1")

        transport_factory.latest.drop()
        for _ in range(5):
            await asyncio.sleep(0)

        assert manager.state is ConnectionState.DISCONNECTED
        assert recording_sleep.delays == []
        assert len(transport_factory.transports) == 1

    @pytest.mark.asyncio
    async def test_explicit_connect_resets_counter(self, manager, transport_factory, recording_sleep):
        """Test connect() after FAILED starts over with a zero counter."""
        transport_factory.fail_always()
        await manager.connect("room-1")
        await wait_until(lambda: manager.state is ConnectionState.FAILED)
        assert manager.attempts == 3

        transport_factory.succeed()
        result = await manager.connect()

        assert result is True
        assert manager.attempts == 0
        assert manager.session_key == "room-1"
        assert transport_factory.latest.events() == ["join"]

    @pytest.mark.asyncio
    async def test_connect_cancels_pending_retry(self, manager, transport_factory, recording_sleep):
        """Test a new connect() replaces the pending retry."""
        recording_sleep.block()
        transport_factory.fail_next(1)

        await manager.connect("room-1")
        await wait_until(lambda: len(recording_sleep.delays) == 1)
        assert manager.attempts == 1

        result = await manager.connect()
        recording_sleep.release()
        for _ in range(5):
            await asyncio.sleep(0)

        assert result is True
        assert manager.attempts == 0
        assert len(transport_factory.transports) == 2
        assert manager.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_connect_timeout_is_transport_error(self, token_provider, transport_factory):
        """Test a transport that never opens times out."""
        config = RealtimeConfig(connect_timeout_ms=10, auto_reconnect=False)
        manager = ConnectionManager(config, token_provider, transport_factory)
        transport_factory.hang_next()

        result = await manager.connect("room-1")

        assert result is False
        assert manager.state is ConnectionState.FAILED
        assert isinstance(manager.last_error, TransportError)
        assert "timed out" in str(manager.last_error)
        assert transport_factory.latest.detached

    @pytest.mark.asyncio
    async def test_zero_attempts_fails_immediately(self, token_provider, transport_factory, recording_sleep):
        """Test max_reconnect_attempts=0 schedules nothing."""
        config = RealtimeConfig(max_reconnect_attempts=0)
        manager = ConnectionManager(
            config, token_provider, transport_factory, sleep=recording_sleep
        )
        transport_factory.fail_next(1)

        assert await manager.connect("room-1") is False
        assert manager.state is ConnectionState.FAILED
        assert recording_sleep.delays == []


class TestDisconnect:
    """Test disconnect method."""

    @pytest.mark.asyncio
    async def test_disconnect_leaves_and_closes(self, manager, transport_factory):
        """Test disconnect emits leave, detaches, closes and goes IDLE."""
        await manager.connect("room-1")
        transport = transport_factory.latest

        await manager.aclose()

        assert manager.state is ConnectionState.IDLE
        assert manager.session_key is None
        assert transport.events() == ["join", "leave"]
        assert transport.detached
        assert transport.closed

    def test_disconnect_from_idle_is_safe(self, manager):
        """Test disconnect without a connection."""
        manager.disconnect()
        manager.disconnect()
        assert manager.state is ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_disconnect_during_connect(self, manager, transport_factory):
        """Test disconnect supersedes an in-flight connect."""
        transport_factory.hang_next()
        pending = asyncio.ensure_future(manager.connect("room-1"))
        await wait_until(
            lambda: transport_factory.latest is not None
            and transport_factory.latest.open_started
        )

        manager.disconnect()
        result = await pending

        assert result is False
        assert manager.state is ConnectionState.IDLE
        assert transport_factory.latest.detached

    @pytest.mark.asyncio
    async def test_disconnect_before_attempt_starts(self, manager, transport_factory):
        """Test connect() returns False when disconnect wins the race."""
        pending = asyncio.ensure_future(manager.connect("room-1"))
        await asyncio.sleep(0)

        manager.disconnect()

        assert await pending is False
        assert transport_factory.transports == []
        assert manager.state is ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_disconnect_cancels_retry(self, manager, transport_factory, recording_sleep):
        """Test no retry fires after disconnect."""
        recording_sleep.block()
        transport_factory.fail_next(1)
        await manager.connect("room-1")
        await wait_until(lambda: len(recording_sleep.delays) == 1)

        manager.disconnect()
        recording_sleep.release()
        for _ in range(5):
            await asyncio.sleep(0)

        assert manager.state is ConnectionState.IDLE
        assert len(transport_factory.transports) == 1

    @pytest.mark.asyncio
    async def test_stale_frames_ignored_after_disconnect(self, manager, transport_factory):
        """Test frames from a superseded connection are not dispatched."""
        received = _recorder(manager, EventKind.NEW_MESSAGE)
        await manager.connect("room-1")
        handler = transport_factory.latest._on_frame

        manager.disconnect()
        handler("new_message", {"id": 1, "content": "late"})

        assert received == []


class TestGuardedSends:
    """Test send operations only act when connected and bound."""

    def test_send_when_idle(self, manager):
        """Test send returns False before connecting."""
        assert manager.send_message("hi") is False
        assert manager.send_typing(True) is False
        assert manager.send_voice_message("hello") is False

    @pytest.mark.asyncio
    async def test_send_without_session(self, manager, transport_factory):
        """Test send returns False when connected but unbound."""
        await manager.connect()

        assert manager.send_message("hi") is False
        assert transport_factory.latest.sent == []

    @pytest.mark.asyncio
    async def test_send_message(self, manager, transport_factory):
        """Test message frame carries the session key."""
        await manager.connect("room-1")

        assert manager.send_message("hi", attachments=["a.png"]) is True
        assert transport_factory.latest.sent[-1] == (
            "send_message",
            {"group_id": "room-1", "content": "hi", "attachments": ["a.png"]},
        )

    @pytest.mark.asyncio
    async def test_send_typing(self, manager, transport_factory):
        """Test typing indicators."""
        await manager.connect("room-1")

        assert manager.send_typing(True) is True
        assert manager.send_typing(False) is True
        assert transport_factory.latest.events()[-2:] == ["typing_start", "typing_stop"]

    @pytest.mark.asyncio
    async def test_send_after_drop(self, manager, transport_factory, recording_sleep):
        """Test sends are refused while reconnecting."""
        recording_sleep.block()
        await manager.connect("room-1")
        transport_factory.latest.drop()

        assert manager.send_message("hi") is False
        manager.disconnect()
        recording_sleep.release()


class TestDispatch:
    """Test inbound frame dispatch."""

    @pytest.mark.asyncio
    async def test_typed_payload_dispatched(self, manager, transport_factory):
        """Test a new_message frame arrives as ChatMessage."""
        received = _recorder(manager, EventKind.NEW_MESSAGE)
        await manager.connect("room-1")

        transport_factory.latest.push(
            "new_message", {"id": 5, "content": "hey", "group_id": "room-1", "pinned": True}
        )

        assert received == [
            ChatMessage(id=5, content="hey", group_id="room-1", extra={"pinned": True})
        ]

    @pytest.mark.asyncio
    async def test_alias_dispatched_under_canonical_kind(self, manager, transport_factory):
        """Test user_joined is delivered as member_joined."""
        received = _recorder(manager, EventKind.MEMBER_JOINED)
        await manager.connect("room-1")

        transport_factory.latest.push("user_joined", {"user_id": 3, "username": "ana"})

        assert received[0].username == "ana"

    @pytest.mark.asyncio
    async def test_subscribe_by_alias(self, manager, transport_factory):
        """Test on/off accept wire aliases as well as kinds."""
        callback = Mock()
        manager.on("user_joined", callback)
        await manager.connect("room-1")

        transport_factory.latest.push("member_joined", {"user_id": 3, "username": "ana"})
        manager.off("user_joined", callback)
        transport_factory.latest.push("user_joined", {"user_id": 4, "username": "bo"})

        assert callback.call_count == 1
        assert callback.call_args.args[0].username == "ana"

    def test_subscribe_local_kind_by_name(self, manager):
        """Test names of local kinds still resolve."""
        unsubscribe = manager.on("notification", Mock())
        unsubscribe()

    def test_subscribe_unknown_name(self, manager):
        """Test an unknown event name is rejected."""
        with pytest.raises(ValueError):
            manager.on("server_stats", Mock())

    @pytest.mark.asyncio
    async def test_off_stops_dispatch(self, manager, transport_factory):
        """Test off after on yields zero further dispatches."""
        callback = Mock()
        manager.on(EventKind.NEW_MESSAGE, callback)
        manager.off(EventKind.NEW_MESSAGE, callback)
        await manager.connect("room-1")

        transport_factory.latest.push("new_message", {"id": 1, "content": "x"})

        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_frame_surfaces_protocol_error(self, manager, transport_factory):
        """Test invalid payload is reported under error and the connection stays up."""
        errors = _recorder(manager, EventKind.ERROR)
        await manager.connect("room-1")

        transport_factory.latest.push("new_message", {"content": "no id"})

        assert manager.state is ConnectionState.CONNECTED
        assert errors[0].category == "protocol"
        assert isinstance(manager.last_error, ProtocolError)

    @pytest.mark.asyncio
    async def test_server_error_frame(self, manager, transport_factory):
        """Test server error frames are dispatched as ErrorPayload."""
        errors = _recorder(manager, EventKind.ERROR)
        await manager.connect("room-1")

        transport_factory.latest.push("error", {"message": "not a member", "event": "join"})

        assert errors == [ErrorPayload(message="not a member", event="join")]
        assert manager.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_unknown_event_ignored(self, manager, transport_factory):
        """Test unknown events are dropped silently."""
        errors = _recorder(manager, EventKind.ERROR)
        await manager.connect("room-1")

        transport_factory.latest.push("server_stats", {"load": 1})

        assert errors == []

    @pytest.mark.asyncio
    async def test_profile_filters_kinds(self, config, token_provider, transport_factory):
        """Test the chat profile does not dispatch tutor frames."""
        manager = ConnectionManager(config, token_provider, transport_factory, profile=GROUP_CHAT)
        received = _recorder(manager, EventKind.TUTOR_MESSAGE_CHUNK)
        await manager.connect(7)

        transport_factory.latest.push("tutor_message_chunk", {"id": "m1", "content": "x"})

        assert received == []
        assert transport_factory.latest.sent == [("join", {"group_id": 7})]


class TestStreaming:
    """Test streamed tutor responses."""

    @pytest.mark.asyncio
    async def test_hello_scenario(self, manager, transport_factory):
        """Test Hel + lo assembles to exactly one Hello."""
        chunks = _recorder(manager, EventKind.TUTOR_MESSAGE_CHUNK)
        completed = _recorder(manager, EventKind.TUTOR_MESSAGE_COMPLETE)
        await manager.connect("room-1")
        transport = transport_factory.latest

        transport.push("tutor_message_chunk", {"id": "m1", "content": "Hel"})
        transport.push("tutor_message_chunk", {"id": "m1", "content": "lo"})
        transport.push("tutor_message_complete", {"id": "m1"})

        assert [c.content for c in chunks] == ["Hel", "lo"]
        assert completed == [CompletedMessage(message_id="m1", content="Hello", chunk_count=2)]

    @pytest.mark.asyncio
    async def test_chunk_with_completion_flag(self, manager, transport_factory):
        """Test isComplete on a chunk finalizes the message."""
        completed = _recorder(manager, EventKind.TUTOR_MESSAGE_COMPLETE)
        await manager.connect("room-1")

        transport_factory.latest.push(
            "tutor_message_chunk", {"id": "m1", "content": "Hi", "isComplete": True}
        )

        assert [c.content for c in completed] == ["Hi"]

    @pytest.mark.asyncio
    async def test_drop_discards_in_flight(self, manager, transport_factory):
        """Test a drop discards partial messages and their late frames."""
        chunks = _recorder(manager, EventKind.TUTOR_MESSAGE_CHUNK)
        completed = _recorder(manager, EventKind.TUTOR_MESSAGE_COMPLETE)
        await manager.connect("room-1")
        transport_factory.latest.push("tutor_message_chunk", {"id": "m1", "content": "Hel"})

        transport_factory.latest.drop()
        await wait_until(lambda: manager.state is ConnectionState.CONNECTED)
        transport = transport_factory.latest
        transport.push("tutor_message_chunk", {"id": "m1", "content": "lo"})
        transport.push("tutor_message_complete", {"id": "m1"})

        assert completed == []
        assert [c.content for c in chunks] == ["Hel"]

        transport.push("tutor_message_chunk", {"id": "m2", "content": "Hi", "isComplete": True})

        assert completed == [CompletedMessage(message_id="m2", content="Hi", chunk_count=1)]

    @pytest.mark.parametrize(
        "fragments",
        [["Hello"], list("Hello"), ["He", "llo"], ["H", "", "ell", "o"]],
    )
    @pytest.mark.asyncio
    async def test_content_independent_of_chunking(self, manager, transport_factory, fragments):
        """Test the same text arrives once whatever the chunk boundaries."""
        completed = _recorder(manager, EventKind.TUTOR_MESSAGE_COMPLETE)
        await manager.connect("room-1")
        transport = transport_factory.latest

        for fragment in fragments:
            transport.push("tutor_message_chunk", {"id": "m1", "content": fragment})
        transport.push("tutor_message_complete", {"id": "m1"})

        assert [c.content for c in completed] == ["Hello"]


class TestTutorProfile:
    """Test the tutor profile vocabulary and activity tracking."""

    @pytest.fixture
    def tutor(self, config, token_provider, transport_factory, recording_sleep):
        """Create a tutor-profile manager."""
        return ConnectionManager(
            config, token_provider, transport_factory, profile=TUTOR, sleep=recording_sleep
        )

    @pytest.mark.asyncio
    async def test_tutor_wire_names(self, tutor, transport_factory):
        """Test the tutor sends 'message' keyed by sessionId."""
        await tutor.connect(42)

        tutor.send_message("What is a derivative?")

        assert transport_factory.latest.sent == [
            ("join", {"sessionId": 42}),
            ("message", {"sessionId": 42, "content": "What is a derivative?"}),
        ]

    @pytest.mark.asyncio
    async def test_tutor_status_follows_stream(self, tutor, transport_factory):
        """Test idle -> thinking -> responding -> idle."""
        statuses = _recorder(tutor, EventKind.TUTOR_STATUS)
        await tutor.connect(42)
        transport = transport_factory.latest

        tutor.send_message("hi")
        transport.push("tutor_message_chunk", {"id": "m1", "content": "Hel"})
        transport.push("tutor_message_complete", {"id": "m1"})

        assert statuses == [TutorStatus.THINKING, TutorStatus.RESPONDING, TutorStatus.IDLE]
        assert tutor.tutor_status is TutorStatus.IDLE

    @pytest.mark.asyncio
    async def test_tutor_error_alias(self, tutor, transport_factory):
        """Test tutor_error arrives under error and sets the ERROR status."""
        errors = _recorder(tutor, EventKind.ERROR)
        await tutor.connect(42)

        transport_factory.latest.push("tutor_error", {"message": "model overloaded"})

        assert errors[0].message == "model overloaded"
        assert tutor.tutor_status is TutorStatus.ERROR

    def test_events_profile_has_no_tutor_status(self, manager):
        """Test tutor tracking is off outside the tutor profile."""
        assert manager.tutor_status is None

    @pytest.mark.asyncio
    async def test_voice_message(self, tutor, transport_factory):
        """Test voice messages carry the transcript."""
        await tutor.connect(42)

        assert tutor.send_voice_message("hello", audio_url="https://cdn/a.webm") is True
        assert transport_factory.latest.sent[-1] == (
            "voice_message",
            {"sessionId": 42, "transcript": "hello", "audio_url": "https://cdn/a.webm"},
        )
