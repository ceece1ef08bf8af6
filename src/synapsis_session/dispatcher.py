"""Outbound command dispatcher.

Turns local user intents into an optimistic state update plus exactly one
outbound command. The remote side is authoritative; local changes made
here are reconciled by the normal inbound event stream.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .models import Message, MessagePart, Role, SessionState, TurnStatus, utc_now
from .permissions import decide
from .protocol.commands import Command, ImageAttachment

logger = logging.getLogger(__name__)


def send_message(
    state: SessionState,
    content: str,
    images: Iterable[ImageAttachment | Mapping[str, Any]] | None = None,
) -> tuple[SessionState, Command]:
    """Echo the user's message locally and build the send command.

    The remote side does not echo the user's own message back, so it is
    appended to the transcript here. Attached images become ``file`` parts.
    """
    attachments = [ImageAttachment.model_validate(image) for image in images or ()]

    new = state.copy_state()
    parts = [MessagePart.text(content)]
    parts.extend(MessagePart.file(image.media_type, image.data) for image in attachments)
    new.messages.append(Message(role=Role.USER, parts=parts, timestamp=utc_now()))
    new.streaming_text = ""
    new.streaming_kind = None
    new.open_message_id = None
    new.turn_status = TurnStatus.STREAMING
    new.last_error = None

    logger.debug(f"Sending message ({len(content)} chars, {len(attachments)} images)")
    return new, Command.send_message(content, attachments)


def approve(state: SessionState, tool_use_id: str) -> tuple[SessionState, Command | None]:
    """Approve a pending tool call."""
    return decide(state, tool_use_id, approved=True)


def deny(state: SessionState, tool_use_id: str) -> tuple[SessionState, Command | None]:
    """Deny a pending tool call."""
    return decide(state, tool_use_id, approved=False)


def cancel(state: SessionState) -> tuple[SessionState, Command]:
    """Ask the remote side to stop the current turn.

    Fire-and-forget: no local state changes. The outcome arrives as a
    regular ``session_status`` or ``error`` event, or not at all.
    """
    return state, Command.cancel()
