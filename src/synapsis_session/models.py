"""Session state models.

The in-memory projection of one conversation: the permanent transcript
plus the transient state of the turn currently in flight (streaming
buffer, tracked tool calls, pending permission requests).

All records are pydantic models so that snapshots can be serialized for
presentation and history payloads are validated on hydrate.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from .errors import InvalidTransitionError


def new_id(prefix: str) -> str:
    """Generate a short opaque identifier."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def utc_now() -> str:
    """Current time as an ISO8601 string."""
    return datetime.now(UTC).isoformat()


class Role(str, Enum):
    """Author of a transcript message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class PartType(str, Enum):
    """Kinds of message parts."""

    TEXT = "text"
    REASONING = "reasoning"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    FILE = "file"
    AGENT = "agent"


class StreamingKind(str, Enum):
    """What the streaming buffer currently holds."""

    TEXT = "text"
    THINKING = "thinking"


class TurnStatus(str, Enum):
    """Status of the current turn."""

    IDLE = "idle"
    STREAMING = "streaming"
    TOOL_WAIT = "tool_wait"


class ToolCallStatus(str, Enum):
    """Lifecycle of a tracked tool call."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ToolCallStatus.COMPLETED, ToolCallStatus.ERROR)

    @property
    def is_outstanding(self) -> bool:
        """Still waiting on the remote side (keeps the turn in tool_wait)."""
        return self in (ToolCallStatus.PENDING, ToolCallStatus.APPROVED)


# Legal status changes. completed/error are terminal; a result may still
# arrive after a local approve/deny decision.
TOOL_CALL_TRANSITIONS: dict[ToolCallStatus, frozenset[ToolCallStatus]] = {
    ToolCallStatus.PENDING: frozenset(
        {
            ToolCallStatus.APPROVED,
            ToolCallStatus.DENIED,
            ToolCallStatus.COMPLETED,
            ToolCallStatus.ERROR,
        }
    ),
    ToolCallStatus.APPROVED: frozenset({ToolCallStatus.COMPLETED, ToolCallStatus.ERROR}),
    ToolCallStatus.DENIED: frozenset({ToolCallStatus.COMPLETED, ToolCallStatus.ERROR}),
    ToolCallStatus.COMPLETED: frozenset(),
    ToolCallStatus.ERROR: frozenset(),
}


class MessagePart(BaseModel):
    """One part of a message (text, reasoning, tool use, tool result, ...).

    History payloads may use ``text`` instead of ``content``; both are
    accepted and normalised to ``content``.
    """

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True, validate_default=True)

    type: PartType
    content: Any = None
    tool: str | None = None
    tool_use_id: str | None = None
    input: dict[str, Any] | None = None
    is_error: bool | None = None
    status: str | None = None
    media_type: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalise_text(cls, data: Any) -> Any:
        if isinstance(data, dict) and "text" in data:
            data = dict(data)
            text = data.pop("text")
            if data.get("content") is None:
                data["content"] = text
        return data

    @classmethod
    def text(cls, content: str) -> MessagePart:
        return cls(type=PartType.TEXT, content=content)

    @classmethod
    def reasoning(cls, content: str) -> MessagePart:
        return cls(type=PartType.REASONING, content=content)

    @classmethod
    def file(cls, media_type: str, data: str) -> MessagePart:
        return cls(type=PartType.FILE, media_type=media_type, content=data)


class Message(BaseModel):
    """A transcript entry.

    ``timestamp`` is optional so that history round-trips unchanged; messages
    created locally are stamped when they are opened.
    """

    model_config = ConfigDict(
        use_enum_values=True, validate_assignment=True, validate_default=True, populate_by_name=True
    )

    id: str = Field(default_factory=lambda: new_id("msg"))
    role: Role
    parts: list[MessagePart] = Field(default_factory=list)
    timestamp: str | None = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "inserted_at"),
    )


class ToolCall(BaseModel):
    """A tool invocation tracked for the duration of one turn."""

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True, validate_default=True)

    id: str = Field(default_factory=lambda: new_id("tc"))
    tool: str
    tool_use_id: str
    input: dict[str, Any] = Field(default_factory=dict)
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: Any = None

    def can_transition(self, status: ToolCallStatus) -> bool:
        return ToolCallStatus(status) in TOOL_CALL_TRANSITIONS[ToolCallStatus(self.status)]

    def transition_to(self, status: ToolCallStatus) -> None:
        """Move to a new status, enforcing the tool call lifecycle.

        Raises:
            InvalidTransitionError: If the lifecycle does not allow the change
        """
        if not self.can_transition(status):
            raise InvalidTransitionError(
                self.tool_use_id,
                ToolCallStatus(self.status).value,
                ToolCallStatus(status).value,
            )
        self.status = status


class PermissionRequest(BaseModel):
    """A tool call awaiting the user's approve/deny decision."""

    tool: str
    tool_use_id: str
    input: dict[str, Any] = Field(default_factory=dict)


class SessionState(BaseModel):
    """In-memory projection of one session.

    ``open_message_id`` is the assistant message opened during the current
    turn; flushed content is appended there. ``agent`` is the active agent
    mode and survives hydrate.
    """

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True, validate_default=True)

    messages: list[Message] = Field(default_factory=list)
    streaming_text: str = ""
    streaming_kind: StreamingKind | None = None
    pending_tool_calls: list[ToolCall] = Field(default_factory=list)
    permission_requests: list[PermissionRequest] = Field(default_factory=list)
    turn_status: TurnStatus = TurnStatus.IDLE
    last_error: str | None = None
    open_message_id: str | None = None
    agent: str | None = None

    def copy_state(self) -> SessionState:
        """Deep copy used by every transition to keep the input untouched."""
        return self.model_copy(deep=True)

    def find_tool_call(self, tool_use_id: str) -> ToolCall | None:
        for call in self.pending_tool_calls:
            if call.tool_use_id == tool_use_id:
                return call
        return None

    def find_permission_request(self, tool_use_id: str) -> PermissionRequest | None:
        for request in self.permission_requests:
            if request.tool_use_id == tool_use_id:
                return request
        return None

    @property
    def is_idle(self) -> bool:
        return self.turn_status == TurnStatus.IDLE.value
