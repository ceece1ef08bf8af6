"""Wire protocol for the session channel.

Defines the inbound events and outbound commands exchanged with the
remote agent over a per-session channel.

Key concepts:
- Events: remote agent → client, one channel event name per kind
- Commands: client → remote agent, one per local user intent
- Unknown event kinds are accepted as opaque events (forward compatibility)
"""

from .commands import Command, CommandType, ImageAttachment
from .events import EVENT_DEFINITIONS, Event, EventDefinition, EventType

__all__ = [
    "Command",
    "CommandType",
    "ImageAttachment",
    "Event",
    "EventType",
    "EventDefinition",
    "EVENT_DEFINITIONS",
]
