"""Unit tests for ChatSession and MemoryChannel."""

import logging
from unittest.mock import MagicMock

import pytest

from synapsis_session import (
    Channel,
    ChannelError,
    ChatSession,
    MemoryChannel,
    SessionConfig,
    ToolCallStatus,
    TurnStatus,
)
from synapsis_session.models import Message, MessagePart
from synapsis_session.protocol.events import Event


class TestMemoryChannel:
    """Test the in-memory channel."""

    def test_satisfies_protocol(self, channel):
        assert isinstance(channel, Channel)

    def test_push_requires_join(self, channel):
        with pytest.raises(ChannelError):
            channel.push("session:cancel", {})

    def test_records_pushes(self, channel):
        channel.join()
        channel.push("session:cancel", {})

        assert channel.pushed == [("session:cancel", {})]

    def test_emit_dropped_when_not_joined(self, channel):
        handler = MagicMock()
        channel.on("done", handler)

        assert channel.emit("done", {}) == 0
        handler.assert_not_called()

    def test_emit_calls_handlers(self, channel):
        handler = MagicMock()
        channel.on("text_delta", handler)
        channel.join()

        assert channel.emit("text_delta", {"text": "Hi"}) == 1
        handler.assert_called_once_with({"text": "Hi"})

    def test_clear(self, channel):
        channel.join()
        channel.push("session:cancel", {})
        channel.clear()

        assert channel.pushed == []


class TestInbound:
    """Test events delivered through the channel."""

    def test_streamed_text(self, session, channel):
        channel.emit("text_delta", {"text": "Hel"})
        channel.emit("text_delta", {"text": "lo"})
        channel.emit("done", {})

        state = session.state
        assert state.messages[-1].parts[0].content == "Hello"
        assert state.is_idle

    def test_state_is_a_snapshot(self, session, channel):
        channel.emit("text_delta", {"text": "Hi"})

        snapshot = session.state
        snapshot.streaming_text = "changed"

        assert session.state.streaming_text == "Hi"

    def test_malformed_event_ignored(self, session, channel):
        channel.emit("tool_use", {"tool": "bash"})

        assert session.state.pending_tool_calls == []

    def test_hidden_reasoning(self, channel):
        session = ChatSession(channel, SessionConfig(show_reasoning=False))
        session.join()

        channel.emit("reasoning", {"text": "hmm"})
        session.ingest(Event.reasoning("more"))
        channel.emit("text_delta", {"text": "Answer"})

        assert session.state.streaming_text == "Answer"
        assert session.state.messages == []

    def test_extra_events_routed(self, channel):
        session = ChatSession(channel, extra_events=["compaction_started"])
        listener = MagicMock()
        session.subscribe(listener)
        session.join()

        assert channel.emit("compaction_started", {"tokens": 10}) == 1
        listener.assert_not_called()

    def test_join_twice_binds_once(self, channel):
        session = ChatSession(channel)
        session.join()
        session.leave()
        session.join()

        channel.emit("text_delta", {"text": "a"})

        assert session.state.streaming_text == "a"

    def test_leave_keeps_turn(self, session, channel):
        channel.emit("text_delta", {"text": "partial"})

        session.leave()
        channel.emit("done", {})

        assert session.state.streaming_text == "partial"
        assert session.state.turn_status == TurnStatus.STREAMING

    @pytest.mark.asyncio
    async def test_consume(self, session):
        async def source():
            yield Event.text_delta("Hel")
            yield Event.text_delta("lo")
            yield Event.done()

        state = await session.consume(source())

        assert state.messages[-1].parts[0].content == "Hello"

    def test_hydrate_and_complete_message(self, session):
        session.hydrate([Message(id="m1", role="user", parts=[MessagePart.text("Hi")])])
        session.complete_message(
            {"id": "m2", "role": "assistant", "parts": [{"type": "text", "text": "Hello"}]}
        )

        assert [m.id for m in session.state.messages] == ["m1", "m2"]


class TestOutbound:
    """Test local intents and pushed commands."""

    def test_send_message(self, session, channel):
        command = session.send_message("List files")

        assert channel.pushed == [("session:message", {"content": "List files"})]
        assert command.cmd == "session:message"
        assert session.state.messages[-1].role == "user"

    def test_deny_pushes_once(self, session, channel):
        channel.emit("tool_use", {"tool": "read_file", "tool_use_id": "t1"})
        channel.emit("permission_request", {"tool": "read_file", "tool_use_id": "t1", "input": {}})

        session.deny("t1")
        second = session.deny("t1")

        assert second is None
        assert channel.pushed == [("session:tool_deny", {"tool_use_id": "t1"})]
        assert session.permission_requests == []
        assert session.state.find_tool_call("t1").status == ToolCallStatus.DENIED

    def test_approve_unknown(self, session, channel):
        assert session.approve("nope") is None
        assert channel.pushed == []

    def test_next_permission_request(self, session, channel):
        channel.emit("permission_request", {"tool": "bash", "tool_use_id": "t1"})
        channel.emit("permission_request", {"tool": "bash", "tool_use_id": "t2"})

        assert session.next_permission_request.tool_use_id == "t1"
        session.approve("t1")
        assert session.next_permission_request.tool_use_id == "t2"

    def test_cancel(self, session, channel):
        channel.emit("text_delta", {"text": "partial"})

        session.cancel()

        assert channel.pushed == [("session:cancel", {})]
        assert session.state.streaming_text == "partial"

    def test_failed_push_leaves_state(self, channel):
        session = ChatSession(channel)

        with pytest.raises(ChannelError):
            session.send_message("Hello")

        assert session.state.messages == []


class TestSubscribe:
    """Test state listeners."""

    def test_listener_gets_snapshots(self, session, channel):
        listener = MagicMock()
        session.subscribe(listener)

        channel.emit("text_delta", {"text": "Hi"})

        listener.assert_called_once()
        assert listener.call_args.args[0].streaming_text == "Hi"

    def test_no_call_without_change(self, session, channel):
        listener = MagicMock()
        session.subscribe(listener)

        channel.emit("tool_result", {"tool_use_id": "ghost", "content": "ok"})
        session.approve("ghost")

        listener.assert_not_called()

    def test_unsubscribe(self, session, channel):
        listener = MagicMock()
        unsubscribe = session.subscribe(listener)
        unsubscribe()
        unsubscribe()

        channel.emit("text_delta", {"text": "Hi"})

        listener.assert_not_called()

    def test_failing_listener_logged(self, session, channel, caplog):
        failing = MagicMock(side_effect=RuntimeError("render failed"))
        healthy = MagicMock()
        session.subscribe(failing)
        session.subscribe(healthy)

        with caplog.at_level(logging.ERROR, logger="synapsis_session.session"):
            channel.emit("text_delta", {"text": "Hi"})

        healthy.assert_called_once()
        assert "Error in state listener" in caplog.text
