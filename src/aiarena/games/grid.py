"""Shared helpers for k-in-a-row games on rectangular boards.

Boards are tuples of row tuples. Empty cells hold "", occupied cells the
mark of the player who owns them ("X" or "O").
"""

from __future__ import annotations

Board = tuple[tuple[str, ...], ...]

# Row/col steps: horizontal, vertical, diagonal down-right, diagonal up-right
_DIRECTIONS = ((0, 1), (1, 0), (1, 1), (-1, 1))


def empty_board(rows: int, cols: int) -> Board:
    return tuple(("",) * cols for _ in range(rows))


def place(board: Board, row: int, col: int, mark: str) -> Board:
    """Return a copy of board with mark at (row, col)."""
    new_row = board[row][:col] + (mark,) + board[row][col + 1:]
    return board[:row] + (new_row,) + board[row + 1:]


def line_through(board: Board, row: int, col: int, win_length: int) -> bool:
    """True if the piece at (row, col) is part of a run of win_length."""
    mark = board[row][col]
    if mark == "":
        return False
    rows, cols = len(board), len(board[0])
    for dr, dc in _DIRECTIONS:
        count = 1
        for sign in (1, -1):
            r, c = row + dr * sign, col + dc * sign
            while 0 <= r < rows and 0 <= c < cols and board[r][c] == mark:
                count += 1
                r += dr * sign
                c += dc * sign
        if count >= win_length:
            return True
    return False


def is_full(board: Board) -> bool:
    return all(cell != "" for row in board for cell in row)


def as_lists(board: Board) -> list[list[str]]:
    return [list(row) for row in board]


def render(board: Board) -> str:
    """Render ASCII board with labeled axes."""
    cols = len(board[0])
    lines = ["    " + "   ".join(str(c) for c in range(cols))]
    for r, row in enumerate(board):
        cells = " | ".join(cell or "." for cell in row)
        lines.append(f"{r}   {cells}")
    return "\n".join(lines)
