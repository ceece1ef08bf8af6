"""Permission correlator.

Matches tool calls to permission requests by ``tool_use_id`` and resolves
them to approve/deny decisions.

Flow:
1. ``permission_request`` arrives → request queued (FIFO), turn waits
2. Presentation shows the oldest active request
3. User decides → request removed, tool call optimistically approved/denied,
   one outbound command produced
4. The remote side confirms through the normal ``tool_result`` / turn
   completion events; nothing waits for an echo of the decision

A request is active only while its tool call is still pending (or while
no tool call for it has been seen yet). Several requests can be active at
once and each is decided independently.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .models import PermissionRequest, SessionState, ToolCallStatus, TurnStatus
from .protocol.commands import Command

logger = logging.getLogger(__name__)


def _is_active(state: SessionState, request: PermissionRequest) -> bool:
    call = state.find_tool_call(request.tool_use_id)
    return call is None or call.status == ToolCallStatus.PENDING


def active_permission_requests(state: SessionState) -> list[PermissionRequest]:
    """Requests still awaiting a decision, oldest first."""
    return [request for request in state.permission_requests if _is_active(state, request)]


def next_permission_request(state: SessionState) -> PermissionRequest | None:
    """The request presentation should show first, if any."""
    active = active_permission_requests(state)
    return active[0] if active else None


def settle_turn_status(state: SessionState) -> None:
    """Leave ``tool_wait`` once nothing waits on the remote side or the user.

    A denied call counts as settled: it waits on nothing from the user and
    stays tracked until its result arrives or the turn completes.

    Operates in place on a state copy owned by the caller.
    """
    if state.turn_status != TurnStatus.TOOL_WAIT:
        return
    outstanding = any(
        ToolCallStatus(call.status).is_outstanding for call in state.pending_tool_calls
    )
    if not outstanding and not active_permission_requests(state):
        state.turn_status = TurnStatus.STREAMING


def add_permission_request(
    state: SessionState,
    request: PermissionRequest | Mapping[str, Any],
) -> SessionState:
    """Queue a permission request and put the turn into ``tool_wait``.

    A repeated request for the same ``tool_use_id`` is a duplicate delivery
    and is ignored, as is a request for a tool call that is no longer
    pending. A tracked tool call without input adopts the input carried by
    the request.
    """
    request = PermissionRequest.model_validate(request)
    if state.find_permission_request(request.tool_use_id) is not None:
        logger.debug(f"Ignoring duplicate permission_request for {request.tool_use_id}")
        return state
    call = state.find_tool_call(request.tool_use_id)
    if call is not None and call.status != ToolCallStatus.PENDING:
        logger.debug(
            f"Ignoring permission_request for tool call {request.tool_use_id} ({call.status})"
        )
        return state

    new = state.copy_state()
    new.permission_requests.append(request.model_copy(deep=True))
    call = new.find_tool_call(request.tool_use_id)
    if call is not None and not call.input and request.input:
        call.input = dict(request.input)
    new.turn_status = TurnStatus.TOOL_WAIT
    return new


def decide(
    state: SessionState,
    tool_use_id: str,
    approved: bool,
) -> tuple[SessionState, Command | None]:
    """Resolve a permission request locally and build the outbound command.

    The request is removed right away and a still-pending tool call is
    optimistically marked approved/denied. A call that finished before the
    user decided keeps its status; the decision is still forwarded.

    Returns:
        The new state and the command to push, or ``(state, None)`` when
        there is nothing left to decide for the id (unknown id, or a
        tool call that was already decided without a queued request).
    """
    request = state.find_permission_request(tool_use_id)
    call = state.find_tool_call(tool_use_id)
    if request is None and (call is None or call.status != ToolCallStatus.PENDING):
        logger.info(f"Ignoring stale decision for tool call {tool_use_id}")
        return state, None

    new = state.copy_state()
    new.permission_requests = [
        r for r in new.permission_requests if r.tool_use_id != tool_use_id
    ]

    call = new.find_tool_call(tool_use_id)
    target = ToolCallStatus.APPROVED if approved else ToolCallStatus.DENIED
    if call is not None:
        if call.can_transition(target):
            call.transition_to(target)
        else:
            logger.debug(
                f"Tool call {tool_use_id} already {call.status}; keeping status on decision"
            )

    settle_turn_status(new)

    command = Command.tool_approve(tool_use_id) if approved else Command.tool_deny(tool_use_id)
    logger.debug(f"Decision for {tool_use_id}: {command.cmd}")
    return new, command
