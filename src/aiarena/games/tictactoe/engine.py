"""Tic-Tac-Toe — N x N board, first to k in a row wins.

Defaults to the classic 3 x 3 board with 3 in a row. A full board with no
line is a draw. PLAYER_ONE plays X, PLAYER_TWO plays O, whoever moves
first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aiarena.games import grid
from aiarena.games.base import Game, MalformedMove, NoMovePolicy, PlayerSlot, as_int

__all__ = ["Cell", "TicTacToeGame", "TicTacToeState"]


@dataclass(frozen=True, order=True)
class Cell:
    row: int
    col: int


@dataclass(frozen=True)
class TicTacToeState:
    board: grid.Board
    moves_made: int = 0
    winner_mark: str | None = None


class TicTacToeGame(Game):
    """Tic-tac-toe on a configurable square board."""

    kind = "tictactoe"

    def __init__(
        self,
        board_size: int = 3,
        win_length: int = 3,
        no_move_policy: NoMovePolicy | str | None = None,
    ) -> None:
        super().__init__(no_move_policy)
        if board_size < 1:
            raise ValueError(f"board_size must be positive, got {board_size}")
        if not 1 <= win_length <= board_size:
            raise ValueError(
                f"win_length must be between 1 and {board_size}, got {win_length}"
            )
        self.board_size = board_size
        self.win_length = win_length

    # ------------------------------------------------------------------
    # Game ABC
    # ------------------------------------------------------------------

    def initial_state(self) -> TicTacToeState:
        return TicTacToeState(board=grid.empty_board(self.board_size, self.board_size))

    def legal_moves(self, state: TicTacToeState, player: PlayerSlot) -> frozenset:
        if self.is_terminal(state):
            return frozenset()
        return frozenset(
            Cell(r, c)
            for r in range(self.board_size)
            for c in range(self.board_size)
            if state.board[r][c] == ""
        )

    def apply(self, state: TicTacToeState, player: PlayerSlot, move: Cell) -> TicTacToeState:
        if state.board[move.row][move.col] != "":
            raise ValueError(f"cell ({move.row}, {move.col}) is occupied")
        board = grid.place(state.board, move.row, move.col, player.mark)
        won = grid.line_through(board, move.row, move.col, self.win_length)
        return TicTacToeState(
            board=board,
            moves_made=state.moves_made + 1,
            winner_mark=player.mark if won else None,
        )

    def is_terminal(self, state: TicTacToeState) -> bool:
        return state.winner_mark is not None or grid.is_full(state.board)

    def winner(self, state: TicTacToeState) -> PlayerSlot | None:
        for slot in PlayerSlot:
            if slot.mark == state.winner_mark:
                return slot
        return None

    def view(self, state: TicTacToeState, player: PlayerSlot) -> dict:
        return {
            "board": grid.as_lists(state.board),
            "board_size": self.board_size,
            "win_length": self.win_length,
            "your_mark": player.mark,
            "opponent_mark": player.other.mark,
            "moves_made": state.moves_made,
            "rendered": grid.render(state.board),
        }

    def encode_move(self, move: Cell) -> dict:
        return {"row": move.row, "col": move.col}

    def decode_move(self, raw: Any) -> Cell:
        if isinstance(raw, Cell):
            return raw
        if isinstance(raw, dict):
            if "position" in raw:
                return self.decode_move(raw["position"])
            if "row" not in raw or "col" not in raw:
                raise MalformedMove("Missing or invalid 'row'/'col' field")
            return Cell(as_int(raw["row"], "row"), as_int(raw["col"], "col"))
        if isinstance(raw, (list, tuple)) and len(raw) == 2:
            return Cell(as_int(raw[0], "row"), as_int(raw[1], "col"))
        raise MalformedMove(f"Cannot read a cell from {raw!r}")

    @property
    def move_schema(self) -> dict:
        last = self.board_size - 1
        return {
            "type": "object",
            "properties": {
                "row": {
                    "type": "integer",
                    "description": f"Row index, 0 (top) to {last}",
                },
                "col": {
                    "type": "integer",
                    "description": f"Column index, 0 (left) to {last}",
                },
            },
            "required": ["row", "col"],
        }
