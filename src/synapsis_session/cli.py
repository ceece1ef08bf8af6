"""Synapsis session CLI.

Replays recorded channel traffic through the session core, offline.

Usage:
    synapsis-session replay events.jsonl                     # Transcript as a table
    synapsis-session replay events.jsonl --history msgs.json # Seed from history first
    synapsis-session replay events.jsonl --format json       # Full state as JSON
    synapsis-session events                                  # List wire event names

Replay files are newline-delimited JSON. Each line is either an inbound
event or a local intent:

    {"event": "text_delta", "payload": {"text": "Hel"}}
    {"intent": "deny", "tool_use_id": "t1"}
    {"intent": "send_message", "content": "Try again", "images": []}
    {"intent": "cancel"}
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from .channel import MemoryChannel
from .config import SessionConfig
from .errors import SessionError
from .logging import configure_logging
from .models import SessionState
from .protocol.commands import CommandType
from .protocol.events import EVENT_DEFINITIONS, Event
from .session import ChatSession

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

INTENTS = ("send_message", "approve", "deny", "cancel")


def truncate(text: Any, max_len: int = 60) -> str:
    """Truncate text for display."""
    if text is None:
        return ""
    text = text if isinstance(text, str) else json.dumps(text, default=str)
    text = text.replace("\n", " ")
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def read_frames(path: Path) -> Iterator[tuple[int, dict[str, Any]]]:
    """Yield (line number, frame) for each JSON object line in a replay file."""
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                frame = json.loads(line)
            except json.JSONDecodeError as e:
                click.echo(f"{path}:{lineno}: skipping invalid JSON ({e.msg})", err=True)
                continue
            if not isinstance(frame, dict):
                click.echo(f"{path}:{lineno}: skipping non-object frame", err=True)
                continue
            yield lineno, frame


def load_history(path: Path) -> list[dict[str, Any]]:
    """Load history from a JSON file.

    Accepts a bare list of messages, ``{"messages": [...]}`` or the REST
    envelope ``{"data": {"messages": [...]}}``.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.BadParameter(
            f"{path} is not valid JSON ({e.msg})", param_hint="--history"
        ) from e
    if isinstance(data, dict):
        data = data.get("data", data)
        if isinstance(data, dict):
            data = data.get("messages", [])
    if not isinstance(data, list):
        raise click.BadParameter(
            f"{path} does not contain a message list", param_hint="--history"
        )
    return data


def apply_intent(session: ChatSession, frame: dict[str, Any]) -> None:
    """Apply a local intent frame to the session."""
    intent = frame["intent"]
    if intent == "send_message":
        session.send_message(frame.get("content", ""), frame.get("images"))
    elif intent == "approve":
        session.approve(frame["tool_use_id"])
    elif intent == "deny":
        session.deny(frame["tool_use_id"])
    elif intent == "cancel":
        session.cancel()
    else:
        raise ValueError(f"Unknown intent {intent!r} (expected one of {', '.join(INTENTS)})")


def render_table(state: SessionState, pushed: list[tuple[str, dict[str, Any]]]) -> None:
    """Print the transcript and transient state as text."""
    click.echo(f"Transcript ({len(state.messages)} message(s))")
    click.echo("-" * 75)
    for message in state.messages:
        prefix = f"[{message.role}]"
        for part in message.parts:
            if part.type == "tool_use":
                detail = f"{part.tool} ({part.tool_use_id}) [{part.status}]"
            elif part.type == "tool_result":
                flag = " ERROR" if part.is_error else ""
                detail = f"{part.tool_use_id}{flag}: {truncate(part.content)}"
            elif part.type == "file":
                detail = part.media_type or "file"
            else:
                detail = truncate(part.content)
            click.echo(f"{prefix:<12} {part.type:<12} {detail}")
            prefix = ""

    click.echo("")
    click.echo(f"Status:    {state.turn_status}")
    if state.agent:
        click.echo(f"Agent:     {state.agent}")
    if state.streaming_text:
        click.echo(f"Streaming: ({state.streaming_kind}) {truncate(state.streaming_text)}")
    for call in state.pending_tool_calls:
        click.echo(f"Tool call: {call.tool} ({call.tool_use_id}) [{call.status}]")
    for request in state.permission_requests:
        click.echo(f"Awaiting:  {request.tool} ({request.tool_use_id})")
    if state.last_error:
        click.echo(f"Error:     {state.last_error}")
    for event, payload in pushed:
        click.echo(f"Pushed:    {event} {json.dumps(payload)}")


@click.group()
@click.option(
    "--log-level", default=None, help="Log level (default: SYNAPSIS_LOG_LEVEL or WARNING)"
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """Synapsis session tools."""
    try:
        config = SessionConfig.from_env()
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    if log_level:
        config.log_level = log_level.upper()
    configure_logging(config.log_level)
    ctx.obj = config


@main.command()
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--history",
    "history_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with the message history to hydrate first",
)
@click.option(
    "--show-reasoning/--hide-reasoning",
    default=None,
    help="Include reasoning events (default: SYNAPSIS_SHOW_REASONING or on)",
)
@click.option("--session-id", default="replay", help="Session id used for the channel topic")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.pass_obj
def replay(
    config: SessionConfig,
    events_file: Path,
    history_file: Path | None,
    show_reasoning: bool | None,
    session_id: str,
    output_format: str,
) -> None:
    """Replay recorded events and intents and print the resulting state.

    Examples:

        # Replay a recorded turn
        synapsis-session replay turn.jsonl

        # Seed from REST history, output JSON
        synapsis-session replay turn.jsonl --history history.json -f json
    """
    if show_reasoning is not None:
        config.show_reasoning = show_reasoning

    channel = MemoryChannel(config.topic(session_id))
    session = ChatSession(channel, config)

    if history_file is not None:
        try:
            session.hydrate(load_history(history_file))
        except ValidationError as e:
            raise click.BadParameter(
                f"{history_file} has invalid messages ({e.error_count()} errors)",
                param_hint="--history",
            ) from e
    session.join()

    for lineno, frame in read_frames(events_file):
        try:
            if "intent" in frame:
                apply_intent(session, frame)
            else:
                event = Event.from_wire(frame)
                if not channel.emit(event.type, event.data):
                    # No handler is registered for unknown kinds
                    session.ingest(event)
        except (KeyError, ValueError, SessionError) as e:
            click.echo(f"{events_file}:{lineno}: skipping frame ({e})", err=True)

    state = session.state
    session.leave()

    if output_format == FORMAT_JSON:
        output = {
            "topic": channel.topic,
            "state": state.model_dump(mode="json"),
            "pushed": [{"event": event, "payload": payload} for event, payload in channel.pushed],
        }
        click.echo(json.dumps(output, indent=2, ensure_ascii=False))
        return

    render_table(state, channel.pushed)


@main.command()
def events() -> None:
    """List inbound event names and outbound command names."""
    click.echo("Inbound events:")
    for kind, definition in EVENT_DEFINITIONS.items():
        fields = ", ".join(definition.schema.model_fields)
        click.echo(f"  {kind:<24} {{{fields}}}")
    click.echo("\nOutbound commands:")
    for command in CommandType:
        click.echo(f"  {command.value}")


if __name__ == "__main__":
    main()
