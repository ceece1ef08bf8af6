"""Channel abstraction for the session transport.

The session core never talks to a socket directly. It consumes a channel
that delivers inbound events by name and accepts outbound pushes; the
transport behind it (a Phoenix-style websocket channel in production)
handles connection management, reconnection and ordering.

Key properties the core relies on:
- Events are delivered in send order, at least once, per channel
- Handlers are called one at a time from a single event loop
- join/leave are idempotent from the core's point of view
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from .errors import ChannelError

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], None]


@runtime_checkable
class Channel(Protocol):
    """Protocol for a per-session channel.

    All channels must implement:
    - on: register a handler for an inbound event name
    - push: send an outbound event with a payload
    - join/leave: lifecycle management
    """

    @property
    def topic(self) -> str:
        """Channel topic (e.g. ``session:<id>``)."""
        ...

    @property
    def joined(self) -> bool:
        """Check if the channel is joined."""
        ...

    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler called with each payload of ``event``."""
        ...

    def push(self, event: str, payload: dict[str, Any]) -> None:
        """Send an outbound event.

        Raises:
            ChannelError: If the channel is not joined
        """
        ...

    def join(self) -> None:
        """Join the channel."""
        ...

    def leave(self) -> None:
        """Leave the channel. Safe to call at any time."""
        ...


class MemoryChannel:
    """In-memory channel for tests and offline replay.

    Records every push and lets callers emit inbound events. No I/O.

    Usage:
        channel = MemoryChannel("session:abc")
        session = ChatSession(channel)
        session.join()

        channel.emit("text_delta", {"text": "Hello"})
        channel.emit("done", {})

        session.send_message("Thanks")
        assert channel.pushed[-1] == ("session:message", {"content": "Thanks"})
    """

    def __init__(self, topic: str = "session:local") -> None:
        self._topic = topic
        self._joined = False
        self._handlers: dict[str, list[EventHandler]] = {}
        self._pushed: list[tuple[str, dict[str, Any]]] = []

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def joined(self) -> bool:
        return self._joined

    @property
    def pushed(self) -> list[tuple[str, dict[str, Any]]]:
        """All pushes sent through this channel, oldest first."""
        return list(self._pushed)

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def push(self, event: str, payload: dict[str, Any]) -> None:
        if not self._joined:
            raise ChannelError(f"Cannot push {event} on {self._topic}: channel not joined")
        self._pushed.append((event, dict(payload)))

    def join(self) -> None:
        if not self._joined:
            self._joined = True
            logger.debug(f"Joined {self._topic}")

    def leave(self) -> None:
        if self._joined:
            self._joined = False
            logger.debug(f"Left {self._topic}")

    def emit(self, event: str, payload: dict[str, Any] | None = None) -> int:
        """Deliver an inbound event to its handlers.

        Events emitted while the channel is not joined are dropped, as a
        real channel would not deliver them.

        Returns:
            Number of handlers called
        """
        if not self._joined:
            logger.debug(f"Dropping {event} on {self._topic}: channel not joined")
            return 0
        handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            handler(dict(payload or {}))
        return len(handlers)

    def clear(self) -> None:
        """Forget recorded pushes."""
        self._pushed.clear()
