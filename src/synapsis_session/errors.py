"""Exceptions raised at the local API surface.

Wire input never raises; these signal programming errors by the caller.
"""

from __future__ import annotations


class SessionError(Exception):
    """Base class for session core errors."""


class InvalidTransitionError(SessionError):
    """A tool call was asked to move to a status its lifecycle does not allow."""

    def __init__(self, tool_use_id: str, current: str, requested: str) -> None:
        super().__init__(
            f"Tool call {tool_use_id} cannot move from {current!r} to {requested!r}"
        )
        self.tool_use_id = tool_use_id
        self.current = current
        self.requested = requested


class ChannelError(SessionError):
    """The channel is not in a state that allows the requested operation."""
