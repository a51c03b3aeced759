"""Tic-tac-toe package exports."""

from .tictactoe_game import TicTacToeGame, click_cell
from .tictactoe_state import WINNING_LINES, empty_board, is_draw, open_cells, winner

__all__ = [
    "TicTacToeGame",
    "WINNING_LINES",
    "click_cell",
    "empty_board",
    "is_draw",
    "open_cells",
    "winner",
]
