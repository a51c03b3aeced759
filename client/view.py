"""Projects the store state into the view a client hands to its subscribers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from engine.log import LogEntry
from engine.state import Ctx, GameState

if TYPE_CHECKING:
    from engine.game import Game


@dataclass(frozen=True)
class ClientState:
    """Per-player view of the game plus client-held log and connection status."""

    G: Any
    ctx: Ctx
    state_id: int
    deltalog: tuple[LogEntry, ...]
    log: tuple[LogEntry, ...]
    is_active: bool
    is_connected: bool


def project_state(
    state: GameState | None,
    *,
    game: "Game",
    player_id: str | None,
    multiplayer: bool,
    log: Sequence[LogEntry],
    is_connected: bool,
) -> ClientState | None:
    """Return the view for ``player_id``, or ``None`` before the first state arrives."""
    if state is None:
        return None

    is_active = True
    can_act = game.flow.is_player_active(state.G, state.ctx, player_id)
    if multiplayer and not can_act:
        is_active = False
    if not multiplayer and player_id is not None and not can_act:
        is_active = False
    if state.ctx.gameover is not None:
        is_active = False

    return ClientState(
        G=game.player_view(state.G, state.ctx, player_id),
        ctx=state.ctx,
        state_id=state.state_id,
        deltalog=tuple(state.deltalog),
        log=tuple(log),
        is_active=is_active,
        is_connected=is_connected,
    )
