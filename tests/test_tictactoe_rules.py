"""Rule-level tests for the tic-tac-toe reference game."""

from __future__ import annotations

from dataclasses import replace

from engine.game import INVALID_MOVE
from engine.state import initialize_game
from tictactoe.tictactoe_game import TicTacToeGame, click_cell
from tictactoe.tictactoe_state import is_draw, open_cells, winner


def test_initial_state_is_empty_board_with_player_zero_to_move() -> None:
    state = initialize_game(TicTacToeGame(), num_players=2)

    assert state.G == {"cells": [None] * 9}
    assert state.state_id == 0
    assert state.ctx.current_player == "0"
    assert state.ctx.play_order == ("0", "1")
    assert state.ctx.gameover is None


def test_click_cell_claims_cell_for_current_player() -> None:
    state = initialize_game(TicTacToeGame())
    ctx = replace(state.ctx, current_player="1")

    G = click_cell(state.G, ctx, 4)

    assert G["cells"][4] == "1"
    assert state.G["cells"][4] is None


def test_click_cell_rejects_occupied_and_out_of_range_cells() -> None:
    state = initialize_game(TicTacToeGame())
    G = click_cell(state.G, state.ctx, 0)

    assert click_cell(G, state.ctx, 0) is INVALID_MOVE
    assert click_cell(G, state.ctx, 9) is INVALID_MOVE
    assert click_cell(G, state.ctx, -1) is INVALID_MOVE
    assert click_cell(G, state.ctx, "4") is INVALID_MOVE
    assert click_cell(G, state.ctx, True) is INVALID_MOVE


def test_end_if_reports_winner_and_draw() -> None:
    game = TicTacToeGame()
    ctx = initialize_game(game).ctx

    assert game.end_if({"cells": ["0", "0", "0", None, "1", "1", None, None, None]}, ctx) == {"winner": "0"}
    assert game.end_if({"cells": ["0", "1", "0", "0", "1", "1", "1", "0", "0"]}, ctx) == {"draw": True}
    assert game.end_if({"cells": [None] * 9}, ctx) is None


def test_board_helpers() -> None:
    cells = ["1", None, "0", None, "1", None, "0", None, "1"]

    assert winner(cells) == "1"
    assert not is_draw(cells)
    assert open_cells(cells) == [1, 3, 5, 7]


def test_enumerate_lists_every_open_cell() -> None:
    game = TicTacToeGame()
    state = initialize_game(game)
    G = click_cell(state.G, state.ctx, 4)

    options = game.enumerate(G, state.ctx, "1")

    assert ("click_cell", (4,)) not in options
    assert len(options) == 8
    assert all(name == "click_cell" for name, _ in options)
