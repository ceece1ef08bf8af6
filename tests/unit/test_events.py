"""Unit tests for inbound Event protocol type."""

import pytest
from pydantic import ValidationError

from synapsis_session.models import TurnStatus
from synapsis_session.protocol.events import (
    EVENT_DEFINITIONS,
    Event,
    EventType,
    PermissionRequestProps,
    ToolResultProps,
    ToolUseProps,
)


class TestEventCreation:
    """Test Event creation and basic properties."""

    def test_create_with_defaults(self):
        event = Event(type="done")

        assert event.type == "done"
        assert event.data == {}

    def test_create_factory_with_enum(self):
        event = Event.create(EventType.TEXT_DELTA, {"text": "Hel"})

        assert event.type == "text_delta"
        assert event.data == {"text": "Hel"}

    def test_create_factory_copies_data(self):
        data = {"text": "Hel"}
        event = Event.create("text_delta", data)
        data["text"] = "changed"

        assert event.data["text"] == "Hel"

    def test_event_is_immutable(self):
        event = Event.done()

        with pytest.raises(ValidationError):
            event.type = "error"

    def test_unknown_kind_is_accepted(self):
        """Newer backends may send kinds this client does not know."""
        event = Event.create("compaction_started", {"tokens": 1200})

        assert event.is_known() is False
        assert event.definition is None
        with pytest.raises(KeyError):
            event.payload()


class TestEventDefinitions:
    """Test the schema registry."""

    def test_every_event_type_is_defined(self):
        assert set(EVENT_DEFINITIONS) == {event_type.value for event_type in EventType}

    def test_reasoning_shares_text_schema(self):
        assert (
            EVENT_DEFINITIONS["reasoning"].schema is EVENT_DEFINITIONS["text_delta"].schema
        )


class TestEventPayload:
    """Test typed payload validation."""

    def test_text_delta(self):
        props = Event.text_delta("Hello").payload()

        assert props.text == "Hello"

    def test_tool_use_without_input(self):
        props = Event.tool_use("read_file", "t1").payload()

        assert isinstance(props, ToolUseProps)
        assert props.input is None

    def test_tool_result_defaults(self):
        props = Event.create("tool_result", {"tool_use_id": "t1"}).payload()

        assert isinstance(props, ToolResultProps)
        assert props.content == ""
        assert props.is_error is False

    def test_tool_result_none_content(self):
        props = Event.tool_result("t1", None).payload()

        assert props.content == ""

    def test_tool_result_structured_content(self):
        props = Event.tool_result("t1", {"files": ["a.py"]}).payload()

        assert props.content == {"files": ["a.py"]}

    def test_permission_request_null_input(self):
        props = Event.create(
            "permission_request", {"tool": "bash", "tool_use_id": "t1", "input": None}
        ).payload()

        assert isinstance(props, PermissionRequestProps)
        assert props.input == {}

    def test_session_status(self):
        props = Event.session_status(TurnStatus.TOOL_WAIT).payload()

        assert props.status == TurnStatus.TOOL_WAIT

    def test_session_status_rejects_unknown_value(self):
        with pytest.raises(ValidationError):
            Event.session_status("thinking").payload()

    def test_missing_required_field(self):
        with pytest.raises(ValidationError):
            Event.create("tool_use", {"tool": "bash"}).payload()

    def test_text_delta_content_fallback(self):
        """Backends that send the fragment as content are accepted."""
        props = Event.create("text_delta", {"content": "Hi"}).payload()

        assert props.text == "Hi"

    def test_text_delta_prefers_text(self):
        props = Event.create("reasoning", {"text": "a", "content": "b"}).payload()

        assert props.text == "a"

    def test_text_delta_empty(self):
        assert Event.create("text_delta", {}).payload().text == ""
        assert Event.create("text_delta", {"text": None, "content": None}).payload().text == ""

    def test_text_delta_rejects_non_string(self):
        with pytest.raises(ValidationError):
            Event.create("text_delta", {"text": ["Hi"]}).payload()

    def test_orchestrator_reason_optional(self):
        props = Event.create("orchestrator_pause").payload()

        assert props.reason is None


class TestEventFromWire:
    """Test parsing recorded channel frames."""

    def test_event_payload_frame(self):
        event = Event.from_wire({"event": "text_delta", "payload": {"text": "Hi"}})

        assert event.type == "text_delta"
        assert event.data == {"text": "Hi"}

    def test_type_data_frame(self):
        event = Event.from_wire({"type": "done", "data": {}})

        assert event.type == "done"

    def test_missing_payload(self):
        event = Event.from_wire({"event": "done"})

        assert event.data == {}

    def test_missing_kind(self):
        with pytest.raises(ValueError):
            Event.from_wire({"payload": {"text": "Hi"}})

    def test_non_object_payload(self):
        with pytest.raises(ValueError):
            Event.from_wire({"event": "text_delta", "payload": ["Hi"]})
