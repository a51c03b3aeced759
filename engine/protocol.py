"""Pydantic models for the newline-delimited JSON socket protocol."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from .actions import Action
from .errors import ProtocolError
from .log import LogEntry
from .serialize import encode_line, to_serializable
from .state import GameState

MessageType = Literal["sync", "update", "metadata", "error"]


class Envelope(BaseModel):
    """One wire message: ``{"type": ..., "data": {...}}``."""

    type: MessageType
    data: dict[str, Any] = Field(default_factory=dict)


class SyncRequest(BaseModel):
    """Client asks the authority for the full state and log."""

    game_name: str
    game_id: str = "default"
    player_id: str | None = None
    num_players: int = Field(default=2, ge=1)
    credentials: str | None = None


class UpdateRequest(BaseModel):
    """Client relays an action produced against ``state_id``."""

    game_name: str
    game_id: str = "default"
    player_id: str | None = None
    state_id: int
    action: dict[str, Any]

    def to_action(self) -> Action:
        return Action.from_dict(self.action)


class SyncPush(BaseModel):
    game_id: str
    state: dict[str, Any]
    log: list[dict[str, Any]] = Field(default_factory=list)

    def to_state(self) -> GameState:
        return GameState.from_dict(self.state)

    def to_log(self) -> list[LogEntry]:
        return [LogEntry.from_dict(entry) for entry in self.log]


class UpdatePush(BaseModel):
    game_id: str
    state: dict[str, Any]
    deltalog: list[dict[str, Any]] = Field(default_factory=list)

    def to_state(self) -> GameState:
        return GameState.from_dict(self.state)

    def to_deltalog(self) -> list[LogEntry]:
        return [LogEntry.from_dict(entry) for entry in self.deltalog]


class PlayerInfo(BaseModel):
    id: str
    is_connected: bool = False


class MetadataPush(BaseModel):
    game_id: str
    players: list[PlayerInfo] = Field(default_factory=list)


class ErrorPush(BaseModel):
    """Error reported back to the sender of a rejected request."""

    type: str
    message: str
    reason: str | None = None
    player_id: str | None = None
    action_type: str | None = None


def encode_message(message_type: str, data: Any) -> bytes:
    """Wrap ``data`` in an envelope and encode it as one JSON line."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return encode_line({"type": message_type, "data": to_serializable(data)})


def decode_message(line: bytes | str) -> Envelope:
    """Parse one JSON line into an envelope, raising ``ProtocolError`` on bad input."""
    try:
        raw = json.loads(line)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"Malformed message: {exc}") from exc
    try:
        return Envelope.model_validate(raw)
    except ValidationError as exc:
        raise ProtocolError(f"Invalid envelope: {exc.error_count()} validation error(s)") from exc


def parse_data(model: type[BaseModel], data: dict[str, Any]) -> Any:
    """Validate an envelope body against ``model``."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(f"Invalid {model.__name__}: {exc.error_count()} validation error(s)") from exc
