"""Outbound command definitions.

Commands are pushed on the session channel in response to local user
intents. The channel event names are the backend's wire contract and
must not change.

Example:
    {
        "id": "cmd_abc123",
        "cmd": "session:tool_deny",
        "params": {"tool_use_id": "t1"}
    }

Only ``cmd`` and ``params`` go on the wire; ``id`` identifies the command
locally (logging, de-duplication in tests).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CommandType(str, Enum):
    """All outbound command kinds (values are channel event names)."""

    SEND_MESSAGE = "session:message"
    TOOL_APPROVE = "session:tool_approve"
    TOOL_DENY = "session:tool_deny"
    CANCEL = "session:cancel"


class ImageAttachment(BaseModel):
    """An image sent along with a user message."""

    media_type: str
    data: str


class Command(BaseModel):
    """A command from this client to the remote session."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"cmd_{uuid.uuid4().hex[:12]}")
    cmd: str
    params: dict[str, Any] = Field(default_factory=dict)

    def get_param(self, key: str, default: Any = None) -> Any:
        """Get a parameter with optional default."""
        return self.params.get(key, default)

    @classmethod
    def create(
        cls,
        cmd: str | CommandType,
        params: dict[str, Any] | None = None,
        command_id: str | None = None,
    ) -> Command:
        """Factory method for creating commands."""
        return cls(
            id=command_id or f"cmd_{uuid.uuid4().hex[:12]}",
            cmd=cmd.value if isinstance(cmd, CommandType) else cmd,
            params=params or {},
        )

    # Convenience factories for the four intents
    @classmethod
    def send_message(
        cls,
        content: str,
        images: Iterable[ImageAttachment | Mapping[str, Any]] | None = None,
    ) -> Command:
        """Create a send_message command. ``images`` is omitted when empty."""
        params: dict[str, Any] = {"content": content}
        attachments = [ImageAttachment.model_validate(image) for image in images or ()]
        if attachments:
            params["images"] = [image.model_dump() for image in attachments]
        return cls.create(CommandType.SEND_MESSAGE, params)

    @classmethod
    def tool_approve(cls, tool_use_id: str) -> Command:
        return cls.create(CommandType.TOOL_APPROVE, {"tool_use_id": tool_use_id})

    @classmethod
    def tool_deny(cls, tool_use_id: str) -> Command:
        return cls.create(CommandType.TOOL_DENY, {"tool_use_id": tool_use_id})

    @classmethod
    def cancel(cls) -> Command:
        return cls.create(CommandType.CANCEL)
