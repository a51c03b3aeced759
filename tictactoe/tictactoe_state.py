"""Board helpers for tic-tac-toe."""

from __future__ import annotations

from typing import Any, Sequence

BOARD_SIZE = 9

WINNING_LINES: tuple[tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def empty_board() -> dict[str, Any]:
    """Return fresh game data: nine empty cells."""
    return {"cells": [None] * BOARD_SIZE}


def winner(cells: Sequence[str | None]) -> str | None:
    """Return the player id owning a full line, if any."""
    for a, b, c in WINNING_LINES:
        if cells[a] is not None and cells[a] == cells[b] == cells[c]:
            return cells[a]
    return None


def is_draw(cells: Sequence[str | None]) -> bool:
    return all(cell is not None for cell in cells) and winner(cells) is None


def open_cells(cells: Sequence[str | None]) -> list[int]:
    return [index for index, cell in enumerate(cells) if cell is None]
