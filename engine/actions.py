"""Action vocabulary shared by clients, transports, and the authority."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Self

from .serialize import to_serializable

if TYPE_CHECKING:
    from .log import LogEntry
    from .state import GameState


class ActionType(str, Enum):
    """Every action kind the reducer and the log reconciler understand."""

    MAKE_MOVE = "MAKE_MOVE"
    GAME_EVENT = "GAME_EVENT"
    RESET = "RESET"
    UNDO = "UNDO"
    REDO = "REDO"
    SYNC = "SYNC"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class ActionPayload:
    """Move/event call: name, positional args, and the acting identity."""

    type: str
    args: tuple[Any, ...] = ()
    player_id: str | None = None
    credentials: str | None = None
    metadata: Any | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "args": to_serializable(list(self.args)),
            "player_id": self.player_id,
            "credentials": self.credentials,
            "metadata": to_serializable(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        player_id = data.get("player_id")
        return cls(
            type=str(data["type"]),
            args=tuple(data.get("args") or ()),
            player_id=str(player_id) if player_id is not None else None,
            credentials=data.get("credentials"),
            metadata=data.get("metadata"),
        )


@dataclass(frozen=True)
class Action:
    """A single dispatchable action.

    ``state``/``log``/``deltalog`` are only populated for the authority-driven
    kinds (RESET, SYNC, UPDATE). ``client_only`` actions are applied locally
    and never relayed to the transport.
    """

    type: ActionType
    payload: ActionPayload | None = None
    state: GameState | None = None
    log: tuple[LogEntry, ...] | None = None
    deltalog: tuple[LogEntry, ...] | None = None
    client_only: bool = False

    def with_metadata(self, metadata: Any) -> "Action":
        """Return a copy whose payload carries ``metadata`` (bot diagnostics)."""
        if self.payload is None:
            return self
        return replace(self, payload=replace(self.payload, metadata=metadata))

    def without_credentials(self) -> "Action":
        """Return a copy safe to store in a log visible to other players."""
        if self.payload is None or self.payload.credentials is None:
            return self
        return replace(self, payload=replace(self.payload, credentials=None))

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        payload: dict[str, Any] = {"type": self.type.value, "client_only": self.client_only}
        if self.payload is not None:
            payload["payload"] = self.payload.to_dict()
        if self.state is not None:
            payload["state"] = self.state.to_dict()
        if self.log is not None:
            payload["log"] = [entry.to_dict() for entry in self.log]
        if self.deltalog is not None:
            payload["deltalog"] = [entry.to_dict() for entry in self.deltalog]
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build an action from serialized data."""
        from .log import LogEntry
        from .state import GameState

        raw_payload = data.get("payload")
        raw_state = data.get("state")
        raw_log = data.get("log")
        raw_deltalog = data.get("deltalog")
        return cls(
            type=ActionType(str(data["type"])),
            payload=ActionPayload.from_dict(raw_payload) if raw_payload is not None else None,
            state=GameState.from_dict(raw_state) if raw_state is not None else None,
            log=tuple(LogEntry.from_dict(entry) for entry in raw_log) if raw_log is not None else None,
            deltalog=(
                tuple(LogEntry.from_dict(entry) for entry in raw_deltalog) if raw_deltalog is not None else None
            ),
            client_only=bool(data.get("client_only", False)),
        )


def make_move(name: str, args: Any = (), player_id: str | None = None, credentials: str | None = None) -> Action:
    """Create a MAKE_MOVE action."""
    return Action(
        type=ActionType.MAKE_MOVE,
        payload=ActionPayload(type=name, args=tuple(args), player_id=player_id, credentials=credentials),
    )


def game_event(name: str, args: Any = (), player_id: str | None = None, credentials: str | None = None) -> Action:
    """Create a GAME_EVENT action."""
    return Action(
        type=ActionType.GAME_EVENT,
        payload=ActionPayload(type=name, args=tuple(args), player_id=player_id, credentials=credentials),
    )


def reset(state: GameState | None) -> Action:
    """Replace the local state wholesale (never relayed)."""
    return Action(type=ActionType.RESET, state=state, client_only=True)


def undo(player_id: str | None = None, credentials: str | None = None) -> Action:
    """Create an UNDO action."""
    return Action(
        type=ActionType.UNDO,
        payload=ActionPayload(type="undo", player_id=player_id, credentials=credentials),
    )


def redo(player_id: str | None = None, credentials: str | None = None) -> Action:
    """Create a REDO action."""
    return Action(
        type=ActionType.REDO,
        payload=ActionPayload(type="redo", player_id=player_id, credentials=credentials),
    )


def sync(state: GameState | None, log: Any = None) -> Action:
    """Authority push of the full state and log."""
    return Action(
        type=ActionType.SYNC,
        state=state,
        log=tuple(log) if log is not None else None,
        client_only=True,
    )


def update(state: GameState | None, deltalog: Any = None) -> Action:
    """Authority push of the new state and the entries it produced."""
    return Action(
        type=ActionType.UPDATE,
        state=state,
        deltalog=tuple(deltalog) if deltalog is not None else None,
        client_only=True,
    )

