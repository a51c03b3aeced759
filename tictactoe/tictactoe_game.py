"""Tic-tac-toe game definition."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from engine.flow import TurnFlow
from engine.game import INVALID_MOVE, Game, MoveFn, MoveSpec
from engine.state import Ctx

from .tictactoe_state import BOARD_SIZE, empty_board, is_draw, open_cells, winner


def click_cell(G: Mapping[str, Any], ctx: Ctx, cell: Any) -> Any:
    """Claim ``cell`` for the current player."""
    if not isinstance(cell, int) or isinstance(cell, bool) or not 0 <= cell < BOARD_SIZE:
        return INVALID_MOVE
    cells = list(G["cells"])
    if cells[cell] is not None:
        return INVALID_MOVE
    cells[cell] = ctx.current_player
    return {**G, "cells": cells}


class TicTacToeGame(Game):
    """Two players alternate claiming cells; one move per turn."""

    name = "tictactoe"

    def __init__(self) -> None:
        super().__init__(flow=TurnFlow(moves_per_turn=1))

    def setup(self, ctx: Ctx) -> dict[str, Any]:
        return empty_board()

    @property
    def moves(self) -> Mapping[str, MoveFn | MoveSpec]:
        return {"click_cell": click_cell}

    def end_if(self, G: Any, ctx: Ctx) -> Any | None:
        cells = G["cells"]
        owner = winner(cells)
        if owner is not None:
            return {"winner": owner}
        if is_draw(cells):
            return {"draw": True}
        return None

    def enumerate(self, G: Any, ctx: Ctx, player_id: str) -> Sequence[tuple[str, tuple[Any, ...]]]:
        return [("click_cell", (cell,)) for cell in open_cells(G["cells"])]
