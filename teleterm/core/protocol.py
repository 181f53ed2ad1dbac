"""Wire codec for the terminal host protocol.

Frames are JSON text records tagged by `type`. Requests flow client -> host,
confirmations and output flow host -> client. Because the host may also stream
raw terminal bytes outside the JSON envelope, anything that is not a JSON
object decodes to `RawOutput` instead of failing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Annotated, Literal, TypeAlias, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from teleterm.constants import (
    MSG_INPUT,
    MSG_INPUT_ALT,
    MSG_OUTPUT_LEGACY,
    MSG_RESIZE,
    MSG_SPAWN,
    MSG_TERMINAL_OUTPUT,
    MSG_TERMINAL_SPAWNED,
)

logger = logging.getLogger(__name__)

__all__ = [
    "InputRequest",
    "Message",
    "RawOutput",
    "Request",
    "ResizeRequest",
    "SpawnConfig",
    "SpawnRequest",
    "TerminalOutput",
    "TerminalSpawned",
    "TerminalSpawnedData",
    "UnknownMessage",
    "decode",
    "encode",
]


class _WireModel(BaseModel):  # type: ignore[explicit-any]
    # Hosts may send ids as JSON numbers; ids are compared as strings.
    model_config = ConfigDict(frozen=True, populate_by_name=True, coerce_numbers_to_str=True)


# --- Outbound requests ---


class SpawnConfig(_WireModel):
    terminal_type: str = Field(alias="terminalType")
    name: str
    working_dir: str = Field(alias="workingDir")


class SpawnRequest(_WireModel):
    """Ask the host to start a shell under a client-chosen name."""

    type: Literal["spawn"] = MSG_SPAWN
    config: SpawnConfig


class ResizeRequest(_WireModel):
    type: Literal["resize"] = MSG_RESIZE
    terminal_id: str = Field(alias="terminalId")
    cols: int = Field(ge=1)
    rows: int = Field(ge=1)


class InputRequest(_WireModel):
    """Keystrokes or pasted text for a running terminal."""

    type: Literal["command", "input"] = MSG_INPUT
    terminal_id: str = Field(alias="terminalId")
    command: str = Field(validation_alias=AliasChoices("command", "data"), serialization_alias="command")


# --- Inbound messages ---


class TerminalSpawnedData(_WireModel):
    id: str | None = None
    name: str | None = None
    session_name: str | None = Field(default=None, alias="sessionName")


class TerminalSpawned(_WireModel):
    """Spawn confirmation. Broadcast to every connection on the host."""

    type: Literal["terminal-spawned"] = MSG_TERMINAL_SPAWNED
    data: TerminalSpawnedData


class TerminalOutput(_WireModel):
    type: Literal["terminal-output", "output"] = MSG_TERMINAL_OUTPUT
    terminal_id: str | None = Field(default=None, alias="terminalId")
    data: str = ""


@dataclass(frozen=True)
class UnknownMessage:
    """Structured record with a type no consumer handles. Kept for diagnostics."""

    type: str | None
    record: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class RawOutput:
    """Frame that is not a JSON object; written to the terminal verbatim."""

    data: str


Request: TypeAlias = SpawnRequest | ResizeRequest | InputRequest

_KnownMessage = Annotated[
    Union[SpawnRequest, ResizeRequest, InputRequest, TerminalSpawned, TerminalOutput],
    Field(discriminator="type"),
]
_MESSAGE_ADAPTER: TypeAdapter[_KnownMessage] = TypeAdapter(_KnownMessage)

Message: TypeAlias = (
    SpawnRequest | ResizeRequest | InputRequest | TerminalSpawned | TerminalOutput | UnknownMessage | RawOutput
)

# Every type value the discriminated union understands.
KNOWN_TYPES = frozenset(
    {MSG_SPAWN, MSG_RESIZE, MSG_INPUT, MSG_INPUT_ALT, MSG_TERMINAL_SPAWNED, MSG_TERMINAL_OUTPUT, MSG_OUTPUT_LEGACY}
)


def encode(request: Request) -> str:
    """Serialize a request to its wire text."""
    return request.model_dump_json(by_alias=True, exclude_none=True)


def decode(frame: str | bytes) -> Message:
    """Decode one transport frame.

    Args:
        frame: Text frame (bytes frames are decoded as UTF-8 with replacement)

    Returns:
        A typed message, `UnknownMessage` for unrecognized or invalid records,
        or `RawOutput` when the frame is not a JSON object.
    """
    text = frame.decode("utf-8", errors="replace") if isinstance(frame, bytes) else frame

    try:
        record = json.loads(text)
    except json.JSONDecodeError:
        return RawOutput(data=text)
    if not isinstance(record, dict):
        return RawOutput(data=text)

    raw_type = record.get("type")
    msg_type = raw_type if isinstance(raw_type, str) else None
    if msg_type not in KNOWN_TYPES:
        return UnknownMessage(type=msg_type, record=record)

    try:
        return _MESSAGE_ADAPTER.validate_python(record)
    except ValidationError as e:
        logger.debug("Invalid %s record: %s", msg_type, e)
        return UnknownMessage(type=msg_type, record=record)
