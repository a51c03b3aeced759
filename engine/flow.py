"""Turn flow: event handling, turn advancement, and the active-player predicate."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Sequence

from .actions import Action
from .state import Ctx, GameState

if TYPE_CHECKING:
    from .game import Game

logger = logging.getLogger(__name__)

EVENT_END_TURN = "end_turn"
EVENT_END_GAME = "end_game"
EVENT_SET_ACTIVE_PLAYERS = "set_active_players"
DEFAULT_EVENTS: tuple[str, ...] = (EVENT_END_TURN, EVENT_END_GAME, EVENT_SET_ACTIVE_PLAYERS)
DEFAULT_STAGE = "default"


class TurnFlow:
    """Round-robin turn order with optional automatic turn ends."""

    def __init__(
        self,
        *,
        events: Sequence[str] = DEFAULT_EVENTS,
        moves_per_turn: int | None = None,
        play_order: Sequence[str] | None = None,
    ):
        unknown = [name for name in events if name not in DEFAULT_EVENTS]
        if unknown:
            raise ValueError(f"Unknown flow events: {unknown}. Supported events: {list(DEFAULT_EVENTS)}")
        if moves_per_turn is not None and moves_per_turn < 1:
            raise ValueError("moves_per_turn must be >= 1.")
        self._events = tuple(events)
        self.moves_per_turn = moves_per_turn
        self.play_order = tuple(play_order) if play_order is not None else None

    @property
    def enabled_event_names(self) -> list[str]:
        """Return event names exposed to clients as dispatchers."""
        return list(self._events)

    def init_ctx(self, num_players: int) -> Ctx:
        """Return the turn context for a fresh match."""
        if num_players < 1:
            raise ValueError("num_players must be >= 1.")
        order = self.play_order or tuple(str(index) for index in range(num_players))
        return Ctx(
            num_players=num_players,
            turn=1,
            current_player=order[0],
            play_order=tuple(order),
            play_order_pos=0,
        )

    def is_player_active(self, G: Any, ctx: Ctx, player_id: str | None) -> bool:
        """Return whether ``player_id`` may act in the current ctx."""
        if ctx.active_players is not None:
            return player_id is not None and player_id in ctx.active_players
        return player_id == ctx.current_player

    def can_player_call_event(self, G: Any, ctx: Ctx, player_id: str | None) -> bool:
        return self.is_player_active(G, ctx, player_id)

    def check_gameover(self, game: "Game", state: GameState) -> GameState:
        """Set ``ctx.gameover`` when the game's end condition fires."""
        if state.ctx.gameover is not None:
            return state
        gameover = game.end_if(state.G, state.ctx)
        if gameover is None:
            return state
        logger.debug("Game over: %r", gameover)
        return state.evolve(ctx=replace(state.ctx, gameover=gameover))

    def process_move(self, game: "Game", state: GameState) -> GameState:
        """Run flow bookkeeping after a move has updated ``G``."""
        state = state.evolve(ctx=replace(state.ctx, num_moves=state.ctx.num_moves + 1))
        state = self.check_gameover(game, state)
        if state.ctx.gameover is not None:
            return state
        if self.moves_per_turn is not None and state.ctx.num_moves >= self.moves_per_turn:
            return self._end_turn(game, state)
        return state

    def process_event(self, game: "Game", state: GameState, action: Action) -> GameState:
        """Apply a flow event and return the new state."""
        assert action.payload is not None
        name = action.payload.type
        args = action.payload.args

        if name == EVENT_END_TURN:
            return self._end_turn(game, state)
        if name == EVENT_END_GAME:
            gameover = args[0] if args else True
            return state.evolve(ctx=replace(state.ctx, gameover=gameover))
        if name == EVENT_SET_ACTIVE_PLAYERS:
            players = args[0] if args else []
            if isinstance(players, str):
                players = [players]
            if isinstance(players, dict):
                active = {str(player_id): str(stage) for player_id, stage in players.items()}
            else:
                active = {str(player_id): DEFAULT_STAGE for player_id in players}
            return state.evolve(ctx=replace(state.ctx, active_players=active or None))
        raise ValueError(f"Unknown event: {name!r}")

    def _end_turn(self, game: "Game", state: GameState) -> GameState:
        ctx = state.ctx
        position = (ctx.play_order_pos + 1) % len(ctx.play_order)
        next_ctx = replace(
            ctx,
            turn=ctx.turn + 1,
            play_order_pos=position,
            current_player=ctx.play_order[position],
            num_moves=0,
            active_players=None,
        )
        state = state.evolve(ctx=next_ctx)
        state = self.check_gameover(game, state)
        return state.evolve(undo_stack=(state.snapshot(),), redo_stack=())
