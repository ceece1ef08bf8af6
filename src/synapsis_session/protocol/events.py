"""Inbound event definitions.

Events arrive from the remote agent over the session channel, one channel
event name per kind. Each known kind is bound to a pydantic schema for its
payload; unknown kinds are still accepted as opaque events so that a newer
backend never breaks an older client.

Example wire frames (as pushed on the channel):
    text_delta          {"text": "Hel"}
    tool_use            {"tool": "read_file", "tool_use_id": "t1"}
    permission_request  {"tool": "read_file", "tool_use_id": "t1", "input": {}}
    tool_result         {"tool_use_id": "t1", "content": "ok", "is_error": false}
    done                {}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models import TurnStatus

T = TypeVar("T", bound=BaseModel)


class EventType(str, Enum):
    """All inbound event kinds understood by the session core."""

    # Streaming content
    TEXT_DELTA = "text_delta"
    REASONING = "reasoning"

    # Tool execution
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    PERMISSION_REQUEST = "permission_request"

    # Turn lifecycle
    SESSION_STATUS = "session_status"
    ERROR = "error"
    DONE = "done"

    # Orchestrator control
    ORCHESTRATOR_PAUSE = "orchestrator_pause"
    ORCHESTRATOR_ESCALATE = "orchestrator_escalate"
    ORCHESTRATOR_TERMINATE = "orchestrator_terminate"
    AGENT_SWITCHED = "agent_switched"


@dataclass(frozen=True)
class EventDefinition(Generic[T]):
    """Binds an event kind to the schema of its payload."""

    type: str
    schema: type[T]


# =============================================================================
# Payload schemas
# =============================================================================


class TextDeltaProps(BaseModel):
    """A fragment of answer text (or reasoning, for ``reasoning`` events).

    Some backends send the fragment as ``content``; a missing or empty
    fragment is an empty delta.
    """

    text: str = ""

    @model_validator(mode="before")
    @classmethod
    def _text_or_content(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and not data.get("text"):
            data = dict(data)
            data["text"] = data.pop("content", None) or ""
        return data


class ToolUseProps(BaseModel):
    """The agent started a tool invocation."""

    tool: str
    tool_use_id: str
    input: dict[str, Any] | None = None


class ToolResultProps(BaseModel):
    """A tool invocation finished."""

    tool_use_id: str
    content: Any = ""
    is_error: bool = False

    @field_validator("content")
    @classmethod
    def _content_not_none(cls, value: Any) -> Any:
        return "" if value is None else value


class PermissionRequestProps(BaseModel):
    """A tool invocation needs the user's approval."""

    tool: str
    tool_use_id: str
    input: dict[str, Any] = Field(default_factory=dict)

    @field_validator("input", mode="before")
    @classmethod
    def _input_not_none(cls, value: Any) -> Any:
        return {} if value is None else value


class SessionStatusProps(BaseModel):
    """Authoritative turn status reported by the remote side."""

    status: TurnStatus


class ErrorProps(BaseModel):
    """The remote side reported an error; the turn is over."""

    message: str


class DoneProps(BaseModel):
    """The turn finished."""


class OrchestratorProps(BaseModel):
    """Orchestrator pause/escalate/terminate notification."""

    reason: str | None = None


class AgentSwitchedProps(BaseModel):
    """The session switched agent mode (e.g. build or plan)."""

    agent: str


def define(event_type: EventType, schema: type[T]) -> EventDefinition[T]:
    return EventDefinition(type=event_type.value, schema=schema)


TextDelta = define(EventType.TEXT_DELTA, TextDeltaProps)
Reasoning = define(EventType.REASONING, TextDeltaProps)
ToolUse = define(EventType.TOOL_USE, ToolUseProps)
ToolResult = define(EventType.TOOL_RESULT, ToolResultProps)
PermissionRequested = define(EventType.PERMISSION_REQUEST, PermissionRequestProps)
SessionStatus = define(EventType.SESSION_STATUS, SessionStatusProps)
RemoteError = define(EventType.ERROR, ErrorProps)
Done = define(EventType.DONE, DoneProps)
OrchestratorPause = define(EventType.ORCHESTRATOR_PAUSE, OrchestratorProps)
OrchestratorEscalate = define(EventType.ORCHESTRATOR_ESCALATE, OrchestratorProps)
OrchestratorTerminate = define(EventType.ORCHESTRATOR_TERMINATE, OrchestratorProps)
AgentSwitched = define(EventType.AGENT_SWITCHED, AgentSwitchedProps)

EVENT_DEFINITIONS: dict[str, EventDefinition[Any]] = {
    definition.type: definition
    for definition in (
        TextDelta,
        Reasoning,
        ToolUse,
        ToolResult,
        PermissionRequested,
        SessionStatus,
        RemoteError,
        Done,
        OrchestratorPause,
        OrchestratorEscalate,
        OrchestratorTerminate,
        AgentSwitched,
    )
}


class Event(BaseModel):
    """An inbound event from the remote agent.

    ``type`` is the channel event name and ``data`` the raw payload. The
    payload is only validated when :meth:`payload` is called, so an event
    of an unknown kind, or with a malformed payload, can always be
    constructed and handed to ingestion.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    def is_known(self) -> bool:
        """Check if this event kind has a registered schema."""
        return self.type in EVENT_DEFINITIONS

    @property
    def definition(self) -> EventDefinition[Any] | None:
        return EVENT_DEFINITIONS.get(self.type)

    def payload(self) -> BaseModel:
        """Validate and return the typed payload.

        Raises:
            KeyError: If the event kind is unknown
            pydantic.ValidationError: If the payload is malformed
        """
        definition = EVENT_DEFINITIONS[self.type]
        return definition.schema.model_validate(self.data)

    @classmethod
    def create(
        cls,
        event_type: str | EventType,
        data: Mapping[str, Any] | None = None,
    ) -> Event:
        """Factory method for creating events."""
        return cls(
            type=event_type.value if isinstance(event_type, EventType) else event_type,
            data=dict(data or {}),
        )

    @classmethod
    def from_wire(cls, frame: Mapping[str, Any]) -> Event:
        """Build an event from a recorded ``{"event": kind, "payload": {...}}`` frame."""
        kind = frame.get("event") or frame.get("type")
        if not isinstance(kind, str):
            raise ValueError(f"Frame has no event kind: {dict(frame)!r}")
        payload = frame.get("payload", frame.get("data")) or {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"Frame payload for {kind!r} is not an object")
        return cls.create(kind, payload)

    # =========================================================================
    # Factory methods for common events
    # =========================================================================

    @classmethod
    def text_delta(cls, text: str) -> Event:
        return cls.create(EventType.TEXT_DELTA, {"text": text})

    @classmethod
    def reasoning(cls, text: str) -> Event:
        return cls.create(EventType.REASONING, {"text": text})

    @classmethod
    def tool_use(
        cls,
        tool: str,
        tool_use_id: str,
        input: dict[str, Any] | None = None,
    ) -> Event:
        data: dict[str, Any] = {"tool": tool, "tool_use_id": tool_use_id}
        if input is not None:
            data["input"] = input
        return cls.create(EventType.TOOL_USE, data)

    @classmethod
    def tool_result(cls, tool_use_id: str, content: Any, is_error: bool = False) -> Event:
        return cls.create(
            EventType.TOOL_RESULT,
            {"tool_use_id": tool_use_id, "content": content, "is_error": is_error},
        )

    @classmethod
    def permission_request(
        cls,
        tool: str,
        tool_use_id: str,
        input: dict[str, Any] | None = None,
    ) -> Event:
        return cls.create(
            EventType.PERMISSION_REQUEST,
            {"tool": tool, "tool_use_id": tool_use_id, "input": input or {}},
        )

    @classmethod
    def session_status(cls, status: str | TurnStatus) -> Event:
        value = status.value if isinstance(status, TurnStatus) else status
        return cls.create(EventType.SESSION_STATUS, {"status": value})

    @classmethod
    def error(cls, message: str) -> Event:
        return cls.create(EventType.ERROR, {"message": message})

    @classmethod
    def done(cls) -> Event:
        return cls.create(EventType.DONE)
