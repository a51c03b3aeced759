"""Tests for the game reducer: moves, events, undo/redo, and the deltalog."""

from __future__ import annotations

from typing import Any, Mapping

from engine.actions import ActionType, game_event, make_move, redo, reset, sync, undo, update
from engine.game import Game, MoveSpec
from engine.reducer import GameReducer
from engine.state import Ctx, initialize_game
from tictactoe.tictactoe_game import TicTacToeGame


def _increment(G: Mapping[str, Any], ctx: Ctx, by: int = 1) -> dict[str, Any]:
    return {**G, "count": G["count"] + by}


class _CounterGame(Game):
    """Free-running counter: moves never end the turn on their own."""

    name = "counter"

    def setup(self, ctx: Ctx) -> dict[str, Any]:
        return {"count": 0}

    @property
    def moves(self) -> Mapping[str, Any]:
        return {
            "increment": _increment,
            "authority_only": MoveSpec(fn=_increment, client=False),
        }


def test_move_emits_one_entry_tagged_with_pre_action_state_id() -> None:
    game = TicTacToeGame()
    reducer = GameReducer(game)
    state = initialize_game(game)

    next_state = reducer(state, make_move("click_cell", (4,), "0"))

    assert next_state.state_id == 1
    assert next_state.G["cells"][4] == "0"
    assert len(next_state.deltalog) == 1
    entry = next_state.deltalog[0]
    assert entry.state_id == 0
    assert entry.turn == 1
    assert entry.action.type is ActionType.MAKE_MOVE
    assert entry.action.payload.args == (4,)


def test_move_runs_turn_flow_when_not_multiplayer() -> None:
    game = TicTacToeGame()
    next_state = GameReducer(game)(initialize_game(game), make_move("click_cell", (0,), "0"))

    assert next_state.ctx.current_player == "1"
    assert next_state.ctx.turn == 2
    assert next_state.ctx.num_moves == 0


def test_multiplayer_reducer_applies_G_but_leaves_turn_flow_to_authority() -> None:
    game = TicTacToeGame()
    next_state = GameReducer(game, multiplayer=True)(initialize_game(game), make_move("click_cell", (0,), "0"))

    assert next_state.G["cells"][0] == "0"
    assert next_state.state_id == 1
    assert next_state.ctx.current_player == "0"
    assert next_state.ctx.turn == 1


def test_illegal_moves_return_previous_state_with_empty_deltalog() -> None:
    game = TicTacToeGame()
    reducer = GameReducer(game)
    state = reducer(initialize_game(game), make_move("click_cell", (0,), "0"))

    for action in (
        make_move("click_cell", (1,), "0"),
        make_move("click_cell", (0,), "1"),
        make_move("no_such_move", (), "1"),
    ):
        rejected = reducer(state, action)
        assert rejected.state_id == state.state_id
        assert rejected.G == state.G
        assert rejected.deltalog == ()


def test_client_false_move_is_skipped_optimistically() -> None:
    game = _CounterGame()
    state = initialize_game(game)

    optimistic = GameReducer(game, multiplayer=True)(state, make_move("authority_only", (), "0"))
    authoritative = GameReducer(game)(state, make_move("authority_only", (), "0"))

    assert optimistic.G == {"count": 0}
    assert optimistic.state_id == 0
    assert authoritative.G == {"count": 1}


def test_end_turn_event_advances_player() -> None:
    game = _CounterGame()
    next_state = GameReducer(game)(initialize_game(game), game_event("end_turn", (), "0"))

    assert next_state.ctx.current_player == "1"
    assert next_state.state_id == 1
    assert next_state.deltalog[0].action.type is ActionType.GAME_EVENT


def test_events_from_inactive_players_are_ignored() -> None:
    game = _CounterGame()
    state = initialize_game(game)

    assert GameReducer(game)(state, game_event("end_turn", (), "1")).state_id == 0


def test_moves_after_end_game_are_ignored() -> None:
    game = _CounterGame()
    reducer = GameReducer(game)
    ended = reducer(initialize_game(game), game_event("end_game", ({"winner": "0"},), "0"))

    assert ended.ctx.gameover == {"winner": "0"}
    assert reducer(ended, make_move("increment", (), "0")).state_id == ended.state_id


def test_set_active_players_lets_listed_players_move() -> None:
    game = _CounterGame()
    reducer = GameReducer(game)
    state = reducer(initialize_game(game), game_event("set_active_players", (["0", "1"],), "0"))

    moved = reducer(state, make_move("increment", (), "1"))

    assert state.ctx.active_players == {"0": "default", "1": "default"}
    assert moved.G == {"count": 1}


def test_set_active_players_accepts_a_single_player_id() -> None:
    game = _CounterGame()
    reducer = GameReducer(game, num_players=11)
    state = reducer(initialize_game(game, 11), game_event("set_active_players", ("10",), "0"))

    assert state.ctx.active_players == {"10": "default"}


def test_undo_and_redo_walk_the_turn_history() -> None:
    game = _CounterGame()
    reducer = GameReducer(game)
    state = reducer(initialize_game(game), make_move("increment", (5,), "0"))

    undone = reducer(state, undo("0"))
    redone = reducer(undone, redo("0"))

    assert undone.G == {"count": 0}
    assert undone.state_id == 2
    assert undone.deltalog[0].action.type is ActionType.UNDO
    assert redone.G == {"count": 5}
    assert redone.state_id == 3


def test_undo_without_history_is_a_no_op() -> None:
    game = _CounterGame()
    state = initialize_game(game)

    assert GameReducer(game)(state, undo("0")) == state
    assert GameReducer(game)(state, redo("0")) == state


def test_log_entries_never_carry_credentials() -> None:
    game = TicTacToeGame()
    next_state = GameReducer(game)(initialize_game(game), make_move("click_cell", (0,), "0", credentials="secret"))

    assert next_state.deltalog[0].action.payload.credentials is None


def test_authority_actions_replace_state() -> None:
    game = TicTacToeGame()
    reducer = GameReducer(game)
    state = initialize_game(game)
    pushed = state.evolve(state_id=7)

    assert reducer(state, sync(pushed, [])) is pushed
    assert reducer(state, update(pushed, [])) is pushed
    assert reducer(state, reset(None)) is None
    assert reducer(None, make_move("click_cell", (0,), "0")) is None
