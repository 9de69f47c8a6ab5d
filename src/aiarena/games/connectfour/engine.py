"""Connect Four — pieces drop to the lowest empty row of a column.

Defaults to the standard 6 rows x 7 columns, 4 in a row to win. Row 0 is
the top of the board. A full board with no line is a draw.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aiarena.games import grid
from aiarena.games.base import Game, MalformedMove, NoMovePolicy, PlayerSlot, as_int

__all__ = ["ConnectFourGame", "ConnectFourState", "Drop"]


@dataclass(frozen=True, order=True)
class Drop:
    column: int


@dataclass(frozen=True)
class ConnectFourState:
    board: grid.Board
    moves_made: int = 0
    winner_mark: str | None = None
    last_drop: tuple[int, int] | None = None


class ConnectFourGame(Game):
    """Connect Four on a configurable board."""

    kind = "connectfour"

    def __init__(
        self,
        rows: int = 6,
        cols: int = 7,
        win_length: int = 4,
        no_move_policy: NoMovePolicy | str | None = None,
    ) -> None:
        super().__init__(no_move_policy)
        if rows < 1 or cols < 1:
            raise ValueError(f"board must be at least 1x1, got {rows}x{cols}")
        if not 1 <= win_length <= max(rows, cols):
            raise ValueError(f"win_length {win_length} does not fit a {rows}x{cols} board")
        self.rows = rows
        self.cols = cols
        self.win_length = win_length

    # ------------------------------------------------------------------
    # Game ABC
    # ------------------------------------------------------------------

    def initial_state(self) -> ConnectFourState:
        return ConnectFourState(board=grid.empty_board(self.rows, self.cols))

    def legal_moves(self, state: ConnectFourState, player: PlayerSlot) -> frozenset:
        if self.is_terminal(state):
            return frozenset()
        return frozenset(Drop(c) for c in range(self.cols) if state.board[0][c] == "")

    def apply(self, state: ConnectFourState, player: PlayerSlot, move: Drop) -> ConnectFourState:
        row = self._drop_row(state.board, move.column)
        board = grid.place(state.board, row, move.column, player.mark)
        won = grid.line_through(board, row, move.column, self.win_length)
        return ConnectFourState(
            board=board,
            moves_made=state.moves_made + 1,
            winner_mark=player.mark if won else None,
            last_drop=(row, move.column),
        )

    def is_terminal(self, state: ConnectFourState) -> bool:
        return state.winner_mark is not None or grid.is_full(state.board)

    def winner(self, state: ConnectFourState) -> PlayerSlot | None:
        for slot in PlayerSlot:
            if slot.mark == state.winner_mark:
                return slot
        return None

    def view(self, state: ConnectFourState, player: PlayerSlot) -> dict:
        return {
            "board": grid.as_lists(state.board),
            "rows": self.rows,
            "cols": self.cols,
            "win_length": self.win_length,
            "your_mark": player.mark,
            "opponent_mark": player.other.mark,
            "moves_made": state.moves_made,
            "last_drop": list(state.last_drop) if state.last_drop else None,
            "rendered": grid.render(state.board),
        }

    def encode_move(self, move: Drop) -> dict:
        return {"column": move.column}

    def decode_move(self, raw: Any) -> Drop:
        if isinstance(raw, Drop):
            return raw
        if isinstance(raw, dict):
            for key in ("column", "col"):
                if key in raw:
                    return Drop(as_int(raw[key], "column"))
            raise MalformedMove("Missing or invalid 'column' field")
        if isinstance(raw, (int, str)) and not isinstance(raw, bool):
            return Drop(as_int(raw, "column"))
        raise MalformedMove(f"Cannot read a column from {raw!r}")

    @property
    def move_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "column": {
                    "type": "integer",
                    "description": f"Column to drop into, 0 (left) to {self.cols - 1}",
                },
            },
            "required": ["column"],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _drop_row(self, board: grid.Board, col: int) -> int:
        """Find the lowest empty row in a column (gravity)."""
        for r in range(self.rows - 1, -1, -1):
            if board[r][col] == "":
                return r
        raise ValueError(f"Column {col} is full")
