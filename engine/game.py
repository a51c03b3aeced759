"""Rule-engine contract consumed by the reducer, the client, and the authority."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from .flow import TurnFlow
from .state import Ctx

PlayerId = str
MoveFn = Callable[..., Any]


class _InvalidMove:
    """Sentinel a move returns to reject itself without changing state."""

    _instance: "_InvalidMove | None" = None

    def __new__(cls) -> "_InvalidMove":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INVALID_MOVE"


INVALID_MOVE = _InvalidMove()


@dataclass(frozen=True)
class MoveSpec:
    """A move function plus the options that control how it is synchronized.

    ``redact`` hides the move's args from every other player's log.
    ``client=False`` makes multiplayer clients wait for the authority instead
    of applying the move optimistically.
    """

    fn: MoveFn
    redact: bool = False
    client: bool = True

    def __call__(self, G: Any, ctx: Ctx, *args: Any) -> Any:
        return self.fn(G, ctx, *args)


class Game(ABC):
    """Abstract interface that every game definition must satisfy."""

    name: str = "game"

    def __init__(self, flow: TurnFlow | None = None):
        self._flow = flow or TurnFlow()

    @abstractmethod
    def setup(self, ctx: Ctx) -> Any:
        """Return the initial game data ``G`` for a fresh match."""

    @property
    @abstractmethod
    def moves(self) -> Mapping[str, MoveFn | MoveSpec]:
        """Return the move table: name -> ``fn(G, ctx, *args) -> G'``."""

    @property
    def flow(self) -> TurnFlow:
        """Turn flow: events, active-player predicate, turn advancement."""
        return self._flow

    @property
    def move_names(self) -> list[str]:
        """Return the sorted move names used to build dispatchers."""
        return sorted(self.moves.keys())

    def get_move(self, name: str) -> MoveSpec | None:
        """Return the normalized move spec for ``name`` or ``None``."""
        move = self.moves.get(name)
        if move is None:
            return None
        if isinstance(move, MoveSpec):
            return move
        return MoveSpec(fn=move)

    def player_view(self, G: Any, ctx: Ctx, player_id: PlayerId | None) -> Any:
        """Return ``G`` with other players' secrets removed. Default: no secrets."""
        return G

    def end_if(self, G: Any, ctx: Ctx) -> Any | None:
        """Return a non-None game-over marker when the match has ended."""
        return None

    def enumerate(self, G: Any, ctx: Ctx, player_id: PlayerId) -> Sequence[tuple[str, tuple[Any, ...]]]:
        """Return candidate ``(move_name, args)`` pairs for bots."""
        raise NotImplementedError(f"{self.__class__.__name__} does not implement enumerate().")
