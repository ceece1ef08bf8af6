"""Turn accumulator.

Owns the rules for appending streamed fragments, tracking tool calls and
flushing accumulated content into transcript messages.

Every public function takes a state and returns a new one; the state
passed in is never modified.

Flush rules:
- A ``tool_use`` always ends the preceding text span, so buffered text is
  flushed before the tool call is opened. Text never ends up attributed
  after the tool output it preceded.
- ``complete_turn`` is the single boundary that turns transient turn state
  into permanent transcript. Running it twice is a no-op the second time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .models import (
    Message,
    MessagePart,
    PartType,
    Role,
    SessionState,
    StreamingKind,
    ToolCall,
    ToolCallStatus,
    TurnStatus,
    utc_now,
)
from .permissions import settle_turn_status

logger = logging.getLogger(__name__)


# =============================================================================
# In-place helpers (operate on a state copy owned by the caller)
# =============================================================================


def _open_message(state: SessionState) -> Message:
    """Return the assistant message open for this turn, creating it if needed."""
    if state.open_message_id is not None and state.messages:
        last = state.messages[-1]
        if last.id == state.open_message_id and last.role == Role.ASSISTANT:
            return last

    message = Message(role=Role.ASSISTANT, timestamp=utc_now())
    state.messages.append(message)
    state.open_message_id = message.id
    return message


def _flush_streaming(state: SessionState) -> None:
    """Move the streaming buffer into the open assistant message."""
    if state.streaming_text:
        if state.streaming_kind == StreamingKind.THINKING:
            part = MessagePart.reasoning(state.streaming_text)
        else:
            part = MessagePart.text(state.streaming_text)
        _open_message(state).parts.append(part)
    state.streaming_text = ""
    state.streaming_kind = None


def _clear_turn(state: SessionState) -> None:
    state.streaming_text = ""
    state.streaming_kind = None
    state.pending_tool_calls = []
    state.permission_requests = []
    state.open_message_id = None
    state.turn_status = TurnStatus.IDLE


# =============================================================================
# Transitions
# =============================================================================


def apply_delta(state: SessionState, kind: StreamingKind | str, text: str) -> SessionState:
    """Append a streamed fragment to the buffer.

    Fragments are concatenated in arrival order and the buffer takes the
    kind of the latest fragment. Nothing is flushed here; only
    ``open_tool_call`` and ``complete_turn`` move the buffer into the
    transcript.
    """
    new = state.copy_state()
    kind = StreamingKind(kind)
    new.streaming_text += text
    new.streaming_kind = kind
    new.turn_status = TurnStatus.STREAMING
    return new


def open_tool_call(
    state: SessionState,
    tool: str,
    tool_use_id: str,
    input: Mapping[str, Any] | None = None,
) -> SessionState:
    """Flush buffered text, then start tracking a new pending tool call."""
    if state.find_tool_call(tool_use_id) is not None:
        logger.debug(f"Ignoring duplicate tool_use for {tool_use_id}")
        return state

    new = state.copy_state()
    _flush_streaming(new)
    new.pending_tool_calls.append(
        ToolCall(tool=tool, tool_use_id=tool_use_id, input=dict(input or {}))
    )
    new.turn_status = TurnStatus.TOOL_WAIT
    return new


def resolve_tool_result(
    state: SessionState,
    tool_use_id: str,
    content: Any,
    is_error: bool,
) -> SessionState:
    """Record the result of a tracked tool call.

    A result for an unknown or already finished call is treated as a late or
    duplicate delivery and ignored.
    """
    new = state.copy_state()
    call = new.find_tool_call(tool_use_id)
    if call is None:
        logger.debug(f"Ignoring tool_result for unknown tool call {tool_use_id}")
        return state
    if ToolCallStatus(call.status).is_terminal:
        logger.debug(f"Ignoring duplicate tool_result for {tool_use_id} ({call.status})")
        return state

    call.transition_to(ToolCallStatus.ERROR if is_error else ToolCallStatus.COMPLETED)
    call.result = content
    settle_turn_status(new)
    return new


def complete_turn(state: SessionState) -> SessionState:
    """Finalize the current turn into the transcript.

    Buffered text is flushed first, then each tool call contributes a
    ``tool_use`` part carrying its final status, followed by a
    ``tool_result`` part when a result arrived. All transient state is
    cleared and the turn becomes idle.
    """
    new = state.copy_state()
    _flush_streaming(new)

    for call in new.pending_tool_calls:
        message = _open_message(new)
        message.parts.append(
            MessagePart(
                type=PartType.TOOL_USE,
                tool=call.tool,
                tool_use_id=call.tool_use_id,
                input=dict(call.input),
                status=ToolCallStatus(call.status).value,
            )
        )
        if call.result is not None:
            message.parts.append(
                MessagePart(
                    type=PartType.TOOL_RESULT,
                    tool_use_id=call.tool_use_id,
                    content=call.result,
                    is_error=call.status == ToolCallStatus.ERROR,
                )
            )

    _clear_turn(new)
    return new


def discard_turn(state: SessionState) -> SessionState:
    """End the turn without flushing anything (used on remote errors)."""
    new = state.copy_state()
    if new.streaming_text or new.pending_tool_calls:
        logger.info(
            f"Discarding in-flight turn ({len(new.streaming_text)} buffered chars, "
            f"{len(new.pending_tool_calls)} tool calls)"
        )
    _clear_turn(new)
    return new


def complete_message(state: SessionState, message: Message | Mapping[str, Any]) -> SessionState:
    """Replace the message with the same id, or append it, and end the turn.

    Used when a finished message arrives by another path and must replace
    whatever was accumulated locally.
    """
    new = state.copy_state()
    final = Message.model_validate(message).model_copy(deep=True)
    for index, existing in enumerate(new.messages):
        if existing.id == final.id:
            new.messages[index] = final
            break
    else:
        new.messages.append(final)
    _clear_turn(new)
    return new


def hydrate(state: SessionState, messages: Iterable[Message | Mapping[str, Any]]) -> SessionState:
    """Replace the transcript with history and reset transient state to idle."""
    transcript = [Message.model_validate(m).model_copy(deep=True) for m in messages or ()]
    return SessionState(messages=transcript, agent=state.agent)
