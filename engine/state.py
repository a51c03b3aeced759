"""Immutable game state records: turn context, snapshots, and full state."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Mapping, Self

from .log import LogEntry
from .serialize import digest, to_serializable

if TYPE_CHECKING:
    from .game import Game


@dataclass(frozen=True)
class Ctx:
    """Turn/phase metadata maintained by the turn flow."""

    num_players: int
    turn: int = 1
    current_player: str = "0"
    play_order: tuple[str, ...] = ()
    play_order_pos: int = 0
    num_moves: int = 0
    active_players: dict[str, str] | None = None
    gameover: Any | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "num_players": self.num_players,
            "turn": self.turn,
            "current_player": self.current_player,
            "play_order": list(self.play_order),
            "play_order_pos": self.play_order_pos,
            "num_moves": self.num_moves,
            "active_players": to_serializable(self.active_players),
            "gameover": to_serializable(self.gameover),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build a ctx from serialized data."""
        active = data.get("active_players")
        return cls(
            num_players=int(data["num_players"]),
            turn=int(data.get("turn", 1)),
            current_player=str(data.get("current_player", "0")),
            play_order=tuple(str(player_id) for player_id in data.get("play_order", ())),
            play_order_pos=int(data.get("play_order_pos", 0)),
            num_moves=int(data.get("num_moves", 0)),
            active_players=dict(active) if active is not None else None,
            gameover=data.get("gameover"),
        )


@dataclass(frozen=True)
class Snapshot:
    """Undo/redo checkpoint of the game data and turn context."""

    G: Any
    ctx: Ctx

    def to_dict(self) -> dict[str, Any]:
        return {"G": to_serializable(self.G), "ctx": self.ctx.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(G=data.get("G"), ctx=Ctx.from_dict(data["ctx"]))


@dataclass(frozen=True)
class GameState:
    """Full reducer state.

    ``deltalog`` only holds the entries emitted by the most recent reducer
    step; the accumulated log lives beside the state (client log table or the
    authority's storage), never inside it.
    """

    G: Any
    ctx: Ctx
    state_id: int = 0
    deltalog: tuple[LogEntry, ...] = ()
    undo_stack: tuple[Snapshot, ...] = ()
    redo_stack: tuple[Snapshot, ...] = ()

    def snapshot(self) -> Snapshot:
        """Return an undo checkpoint for the current G/ctx."""
        return Snapshot(G=self.G, ctx=self.ctx)

    def evolve(self, **changes: Any) -> "GameState":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "G": to_serializable(self.G),
            "ctx": self.ctx.to_dict(),
            "state_id": self.state_id,
            "deltalog": [entry.to_dict() for entry in self.deltalog],
            "undo_stack": [snapshot.to_dict() for snapshot in self.undo_stack],
            "redo_stack": [snapshot.to_dict() for snapshot in self.redo_stack],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build a state from serialized data."""
        return cls(
            G=data.get("G"),
            ctx=Ctx.from_dict(data["ctx"]),
            state_id=int(data.get("state_id", 0)),
            deltalog=tuple(LogEntry.from_dict(entry) for entry in data.get("deltalog", ())),
            undo_stack=tuple(Snapshot.from_dict(item) for item in data.get("undo_stack", ())),
            redo_stack=tuple(Snapshot.from_dict(item) for item in data.get("redo_stack", ())),
        )

    def state_digest(self) -> str:
        """Return a deterministic digest of G/ctx for logging and inspection."""
        return digest({"G": self.G, "ctx": self.ctx.to_dict()})


def initialize_game(game: "Game", num_players: int = 2) -> GameState:
    """Create the initial state for ``game`` with ``num_players`` seats."""
    ctx = game.flow.init_ctx(num_players)
    G = game.setup(ctx)
    state = GameState(G=G, ctx=ctx, state_id=0)
    state = state.evolve(undo_stack=(state.snapshot(),))
    return game.flow.check_gameover(game, state)
