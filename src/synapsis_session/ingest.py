"""Event ingestion adapter.

Applies one inbound wire event at a time to a session state. Ingestion is
pure with respect to its inputs: the same event sequence applied to the
same starting state always yields the same resulting state, and the state
passed in is never modified.

Event mapping:
- text_delta / reasoning -> apply_delta (text / thinking)
- tool_use -> open_tool_call
- tool_result -> resolve_tool_result
- permission_request -> add_permission_request
- session_status -> turn_status (idle also completes the turn)
- error -> last_error, turn ended and in-flight state discarded
- done -> complete_turn
- orchestrator_pause / orchestrator_terminate -> error with a prefixed message
- orchestrator_escalate -> turn_status = streaming
- agent_switched -> agent

Wire input never raises: unknown kinds and malformed payloads are logged
and leave the state unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from . import accumulator
from .models import SessionState, StreamingKind, TurnStatus
from .permissions import add_permission_request
from .protocol.events import (
    AgentSwitchedProps,
    ErrorProps,
    Event,
    EventType,
    OrchestratorProps,
    PermissionRequestProps,
    SessionStatusProps,
    TextDeltaProps,
    ToolResultProps,
    ToolUseProps,
)

logger = logging.getLogger(__name__)

Handler = Callable[[SessionState, Any], SessionState]


def _on_text_delta(state: SessionState, props: TextDeltaProps) -> SessionState:
    return accumulator.apply_delta(state, StreamingKind.TEXT, props.text)


def _on_reasoning(state: SessionState, props: TextDeltaProps) -> SessionState:
    return accumulator.apply_delta(state, StreamingKind.THINKING, props.text)


def _on_tool_use(state: SessionState, props: ToolUseProps) -> SessionState:
    return accumulator.open_tool_call(state, props.tool, props.tool_use_id, props.input)


def _on_tool_result(state: SessionState, props: ToolResultProps) -> SessionState:
    return accumulator.resolve_tool_result(
        state, props.tool_use_id, props.content, props.is_error
    )


def _on_permission_request(state: SessionState, props: PermissionRequestProps) -> SessionState:
    return add_permission_request(state, props.model_dump())


def _on_session_status(state: SessionState, props: SessionStatusProps) -> SessionState:
    if props.status == TurnStatus.IDLE:
        return accumulator.complete_turn(state)
    new = state.copy_state()
    new.turn_status = props.status
    return new


def fail_turn(state: SessionState, message: str) -> SessionState:
    """Record a remote error and force the turn to end.

    Buffered text and unresolved tool calls are discarded rather than
    flushed, leaving a clean idle state.
    """
    new = accumulator.discard_turn(state)
    new.last_error = message
    return new


def _on_error(state: SessionState, props: ErrorProps) -> SessionState:
    logger.warning(f"Remote error: {props.message}")
    return fail_turn(state, props.message)


def _on_done(state: SessionState, props: BaseModel) -> SessionState:
    return accumulator.complete_turn(state)


def _on_orchestrator_pause(state: SessionState, props: OrchestratorProps) -> SessionState:
    return fail_turn(state, f"Paused: {props.reason}")


def _on_orchestrator_terminate(state: SessionState, props: OrchestratorProps) -> SessionState:
    return fail_turn(state, f"Terminated: {props.reason}")


def _on_orchestrator_escalate(state: SessionState, props: OrchestratorProps) -> SessionState:
    new = state.copy_state()
    new.turn_status = TurnStatus.STREAMING
    return new


def _on_agent_switched(state: SessionState, props: AgentSwitchedProps) -> SessionState:
    new = state.copy_state()
    new.agent = props.agent
    return new


HANDLERS: dict[str, Handler] = {
    EventType.TEXT_DELTA.value: _on_text_delta,
    EventType.REASONING.value: _on_reasoning,
    EventType.TOOL_USE.value: _on_tool_use,
    EventType.TOOL_RESULT.value: _on_tool_result,
    EventType.PERMISSION_REQUEST.value: _on_permission_request,
    EventType.SESSION_STATUS.value: _on_session_status,
    EventType.ERROR.value: _on_error,
    EventType.DONE.value: _on_done,
    EventType.ORCHESTRATOR_PAUSE.value: _on_orchestrator_pause,
    EventType.ORCHESTRATOR_ESCALATE.value: _on_orchestrator_escalate,
    EventType.ORCHESTRATOR_TERMINATE.value: _on_orchestrator_terminate,
    EventType.AGENT_SWITCHED.value: _on_agent_switched,
}


def ingest(state: SessionState, event: Event) -> SessionState:
    """Apply one inbound event and return the resulting state."""
    handler = HANDLERS.get(event.type)
    if handler is None:
        logger.debug(f"Unhandled event type: {event.type}")
        return state

    try:
        props = event.payload()
    except ValidationError as e:
        logger.warning(f"Dropping malformed {event.type} event: {e.error_count()} errors")
        logger.debug(f"Malformed {event.type} payload: {event.data!r}")
        return state

    return handler(state, props)


def ingest_raw(
    state: SessionState,
    kind: str,
    payload: Mapping[str, Any] | None = None,
) -> SessionState:
    """Apply one event given as a channel event name and payload."""
    if not isinstance(kind, str):
        logger.warning(f"Dropping event with invalid kind: {kind!r}")
        return state
    if payload is not None and not isinstance(payload, Mapping):
        logger.warning(f"Dropping {kind} event with non-object payload")
        return state
    return ingest(state, Event.create(kind, payload))


def ingest_all(state: SessionState, events: Iterable[Event]) -> SessionState:
    """Apply a sequence of events in order."""
    for event in events:
        state = ingest(state, event)
    return state
