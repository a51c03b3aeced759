"""The game reducer: ``(state, action) -> state'`` plus the per-action deltalog."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .actions import Action, ActionType
from .game import INVALID_MOVE
from .log import LogEntry
from .state import GameState

if TYPE_CHECKING:
    from .game import Game

logger = logging.getLogger(__name__)


class GameReducer:
    """Pure state transition function for one game definition.

    On a multiplayer client (``multiplayer=True``) moves are applied
    optimistically to ``G`` but the turn flow is left to the authority, whose
    UPDATE carries the authoritative ctx.

    Illegal actions never raise: the reducer logs a warning and returns the
    previous state with an empty deltalog.
    """

    def __init__(self, game: "Game", num_players: int = 2, multiplayer: bool = False):
        self.game = game
        self.num_players = num_players
        self.multiplayer = multiplayer

    def __call__(self, state: GameState | None, action: Action) -> GameState | None:
        if action.type is ActionType.RESET:
            return action.state
        if action.type in (ActionType.SYNC, ActionType.UPDATE):
            return action.state if action.state is not None else state
        if state is None:
            logger.warning("Dropping %s: no state to apply it to.", action.type.value)
            return state

        state = state.evolve(deltalog=())
        if action.type is ActionType.MAKE_MOVE:
            return self._make_move(state, action)
        if action.type is ActionType.GAME_EVENT:
            return self._game_event(state, action)
        if action.type is ActionType.UNDO:
            return self._undo(state, action)
        if action.type is ActionType.REDO:
            return self._redo(state, action)
        return state

    def _entry(self, state: GameState, action: Action, *, redact: bool = False) -> LogEntry:
        return LogEntry(
            state_id=state.state_id,
            action=action.without_credentials(),
            turn=state.ctx.turn,
            redact=redact,
        )

    def _make_move(self, state: GameState, action: Action) -> GameState:
        assert action.payload is not None
        name = action.payload.type
        player_id = action.payload.player_id

        move = self.game.get_move(name)
        if move is None:
            logger.warning("disallowed move: %s", name)
            return state
        if self.multiplayer and not move.client:
            return state
        if state.ctx.gameover is not None:
            logger.warning("cannot make move after game end")
            return state
        if not self.game.flow.is_player_active(state.G, state.ctx, player_id):
            logger.warning("disallowed move: %s (player %r is not active)", name, player_id)
            return state

        G = move(state.G, state.ctx, *action.payload.args)
        if G is INVALID_MOVE:
            logger.warning("invalid move: %s args=%r", name, action.payload.args)
            return state

        entry = self._entry(state, action, redact=move.redact)
        next_state = state.evolve(G=G, state_id=state.state_id + 1, deltalog=(entry,))
        if not self.multiplayer:
            next_state = self.game.flow.process_move(self.game, next_state)
        if next_state.ctx.turn == state.ctx.turn:
            next_state = next_state.evolve(
                undo_stack=next_state.undo_stack + (next_state.snapshot(),),
                redo_stack=(),
            )
        return next_state

    def _game_event(self, state: GameState, action: Action) -> GameState:
        assert action.payload is not None
        name = action.payload.type
        player_id = action.payload.player_id

        if name not in self.game.flow.enabled_event_names:
            logger.warning("disallowed event: %s", name)
            return state
        if state.ctx.gameover is not None:
            logger.warning("cannot call event after game end")
            return state
        if not self.game.flow.can_player_call_event(state.G, state.ctx, player_id):
            logger.warning("disallowed event: %s (player %r is not active)", name, player_id)
            return state

        entry = self._entry(state, action)
        next_state = self.game.flow.process_event(self.game, state, action)
        return next_state.evolve(state_id=state.state_id + 1, deltalog=(entry,))

    def _undo(self, state: GameState, action: Action) -> GameState:
        if len(state.undo_stack) < 2:
            return state
        last = state.undo_stack[-1]
        restore = state.undo_stack[-2]
        return state.evolve(
            G=restore.G,
            ctx=restore.ctx,
            undo_stack=state.undo_stack[:-1],
            redo_stack=(last,) + state.redo_stack,
            state_id=state.state_id + 1,
            deltalog=(self._entry(state, action),),
        )

    def _redo(self, state: GameState, action: Action) -> GameState:
        if not state.redo_stack:
            return state
        restore = state.redo_stack[0]
        return state.evolve(
            G=restore.G,
            ctx=restore.ctx,
            undo_stack=state.undo_stack + (restore,),
            redo_stack=state.redo_stack[1:],
            state_id=state.state_id + 1,
            deltalog=(self._entry(state, action),),
        )
