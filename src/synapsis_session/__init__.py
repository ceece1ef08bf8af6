"""Synapsis session core.

Rebuilds an ordered conversation transcript from the partial events a
remote agent streams over a session channel, and turns local user intents
(send, approve, deny, cancel) into outbound commands.
"""

from .channel import Channel, MemoryChannel
from .config import SessionConfig
from .errors import ChannelError, InvalidTransitionError, SessionError
from .ingest import ingest, ingest_all, ingest_raw
from .models import (
    Message,
    MessagePart,
    PartType,
    PermissionRequest,
    Role,
    SessionState,
    StreamingKind,
    ToolCall,
    ToolCallStatus,
    TurnStatus,
)
from .protocol import Command, CommandType, Event, EventType
from .session import ChatSession

__version__ = "0.1.0"

__all__ = [
    "Channel",
    "ChannelError",
    "ChatSession",
    "Command",
    "CommandType",
    "Event",
    "EventType",
    "InvalidTransitionError",
    "MemoryChannel",
    "Message",
    "MessagePart",
    "PartType",
    "PermissionRequest",
    "Role",
    "SessionConfig",
    "SessionError",
    "SessionState",
    "StreamingKind",
    "ToolCall",
    "ToolCallStatus",
    "TurnStatus",
    "ingest",
    "ingest_all",
    "ingest_raw",
]
