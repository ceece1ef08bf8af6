"""Chat session controller.

Owns exactly one SessionState and bridges it to a channel:

- Inbound: every known event name is registered on the channel and routed
  through the ingestion adapter.
- Outbound: each local intent applies its optimistic update and pushes the
  one command the dispatcher produced.
- Observers: listeners registered with :meth:`ChatSession.subscribe` get a
  snapshot after every state change.

All transitions are synchronous, so no listener or handler ever sees a
half-applied update. Sessions are fully independent of each other.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from functools import partial
from typing import Any

from . import accumulator, dispatcher
from .channel import Channel
from .config import SessionConfig
from .ingest import ingest, ingest_raw
from .models import Message, PermissionRequest, SessionState
from .permissions import active_permission_requests, next_permission_request
from .protocol.commands import Command, ImageAttachment
from .protocol.events import EVENT_DEFINITIONS, Event, EventType

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState], None]


class ChatSession:
    """One conversation bound to one channel.

    Usage:
        channel = MemoryChannel(config.topic(session_id))
        session = ChatSession(channel, config)
        session.hydrate(history)
        session.join()

        unsubscribe = session.subscribe(render)
        session.send_message("List the files in src/")
        ...
        session.leave()
    """

    def __init__(
        self,
        channel: Channel,
        config: SessionConfig | None = None,
        extra_events: Iterable[str] = (),
    ) -> None:
        """Initialize the session.

        Args:
            channel: Transport channel for this session
            config: Session configuration (defaults if omitted)
            extra_events: Additional inbound event names to listen for;
                they are ingested as opaque events
        """
        self._channel = channel
        self._config = config or SessionConfig()
        self._extra_events = tuple(extra_events)
        self._state = SessionState()
        self._listeners: list[StateListener] = []
        self._handlers_bound = False

    @property
    def channel(self) -> Channel:
        return self._channel

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        """Snapshot of the current state (a copy; changing it has no effect)."""
        return self._state.copy_state()

    @property
    def permission_requests(self) -> list[PermissionRequest]:
        """Requests still awaiting a decision, oldest first."""
        return active_permission_requests(self.state)

    @property
    def next_permission_request(self) -> PermissionRequest | None:
        """The request to show first, if any."""
        return next_permission_request(self.state)

    # =========================================================================
    # Channel lifecycle
    # =========================================================================

    def join(self) -> None:
        """Register inbound handlers and join the channel."""
        if not self._handlers_bound:
            for kind in (*EVENT_DEFINITIONS, *self._extra_events):
                self._channel.on(kind, partial(self.handle, kind))
            self._handlers_bound = True
        self._channel.join()
        logger.info(f"Session joined {self._channel.topic}")

    def leave(self) -> None:
        """Leave the channel. An in-flight turn is left as it is."""
        self._channel.leave()
        logger.info(f"Session left {self._channel.topic}")

    # =========================================================================
    # Inbound
    # =========================================================================

    def handle(self, kind: str, payload: Mapping[str, Any] | None = None) -> None:
        """Ingest one event given as channel event name and payload."""
        if kind == EventType.REASONING.value and not self._config.show_reasoning:
            return
        self._commit(ingest_raw(self._state, kind, payload))

    def ingest(self, event: Event) -> None:
        """Ingest one typed event."""
        if event.type == EventType.REASONING.value and not self._config.show_reasoning:
            return
        self._commit(ingest(self._state, event))

    async def consume(self, events: AsyncIterator[Event]) -> SessionState:
        """Ingest events from an async source in order until it is exhausted.

        Returns:
            Snapshot of the state after the last event
        """
        async for event in events:
            self.ingest(event)
        return self.state

    def hydrate(self, messages: Iterable[Message | Mapping[str, Any]]) -> None:
        """Seed the transcript from history and reset transient state."""
        self._commit(accumulator.hydrate(self._state, messages))

    def complete_message(self, message: Message | Mapping[str, Any]) -> None:
        """Replace (by id) or append a finished message and end the turn."""
        self._commit(accumulator.complete_message(self._state, message))

    # =========================================================================
    # Outbound intents
    # =========================================================================

    def send_message(
        self,
        content: str,
        images: Iterable[ImageAttachment | Mapping[str, Any]] | None = None,
    ) -> Command:
        """Send a user message (echoed locally right away)."""
        new, command = dispatcher.send_message(self._state, content, images)
        self._push(command)
        self._commit(new)
        return command

    def approve(self, tool_use_id: str) -> Command | None:
        """Approve a tool call. Returns None when there was nothing to approve."""
        return self._decide(dispatcher.approve, tool_use_id)

    def deny(self, tool_use_id: str) -> Command | None:
        """Deny a tool call. Returns None when there was nothing to deny."""
        return self._decide(dispatcher.deny, tool_use_id)

    def cancel(self) -> Command:
        """Ask the remote side to stop the current turn (fire-and-forget)."""
        _, command = dispatcher.cancel(self._state)
        self._push(command)
        return command

    def _decide(
        self,
        decision: Callable[[SessionState, str], tuple[SessionState, Command | None]],
        tool_use_id: str,
    ) -> Command | None:
        new, command = decision(self._state, tool_use_id)
        if command is None:
            return None
        self._push(command)
        self._commit(new)
        return command

    def _push(self, command: Command) -> None:
        # Push before committing so a failed push leaves the state untouched
        self._channel.push(command.cmd, dict(command.params))
        logger.debug(f"Pushed {command.cmd} ({command.id})")

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot after every state change.

        Returns:
            Unsubscribe function
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, new: SessionState) -> None:
        if new is self._state:
            return
        self._state = new

        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Error in state listener for {self._channel.topic}")
