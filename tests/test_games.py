"""Tests for the game registry, the Game base helpers and grid utilities."""

import pytest

from aiarena.config import ConfigurationError
from aiarena.games import GAME_REGISTRY, build_game, normalize_kind
from aiarena.games import grid
from aiarena.games.base import MalformedMove, NoMovePolicy, PlayerSlot, as_int
from aiarena.games.connectfour.engine import ConnectFourGame
from aiarena.games.rockpaperscissors.engine import RockPaperScissorsGame
from aiarena.games.tictactoe.engine import TicTacToeGame


class TestRegistry:
    @pytest.mark.parametrize("name,cls", [
        ("tictactoe", TicTacToeGame),
        ("TicTacToe", TicTacToeGame),
        ("tic_tac_toe", TicTacToeGame),
        ("ConnectFour", ConnectFourGame),
        ("connect-four", ConnectFourGame),
        ("RockPaperScissors", RockPaperScissorsGame),
    ])
    def test_lookup_aliases(self, name, cls):
        assert isinstance(build_game(name), cls)

    def test_registry_keys(self):
        assert set(GAME_REGISTRY) == {"tictactoe", "connectfour", "rockpaperscissors"}

    def test_options_passed(self):
        game = build_game("tictactoe", {"board_size": 5, "win_length": 4})
        assert game.board_size == 5
        assert game.win_length == 4

    def test_unknown_game(self):
        with pytest.raises(ConfigurationError, match="Unknown game"):
            build_game("chess")

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="Invalid options"):
            build_game("connectfour", {"depth": 3})

    def test_bad_option_value(self):
        with pytest.raises(ConfigurationError):
            build_game("rockpaperscissors", {"rounds": 0})

    def test_normalize_kind(self):
        assert normalize_kind(" Rock_Paper-Scissors ") == "rockpaperscissors"

    def test_no_move_policy_option(self):
        game = build_game("tictactoe", {"no_move_policy": "skip_turn"})
        assert game.no_move_policy is NoMovePolicy.SKIP_TURN
        assert build_game("tictactoe").no_move_policy is NoMovePolicy.END_MATCH


class TestPlayerSlot:
    def test_other(self):
        assert PlayerSlot.PLAYER_ONE.other is PlayerSlot.PLAYER_TWO
        assert PlayerSlot.PLAYER_TWO.other is PlayerSlot.PLAYER_ONE

    def test_marks(self):
        assert PlayerSlot.PLAYER_ONE.mark == "X"
        assert PlayerSlot.PLAYER_TWO.mark == "O"

    def test_display_name(self):
        assert TicTacToeGame().display_name == "TicTacToe"


class TestAsInt:
    @pytest.mark.parametrize("value,expected", [(3, 3), (3.0, 3), ("3", 3), (" -2 ", -2)])
    def test_accepts(self, value, expected):
        assert as_int(value, "row") == expected

    @pytest.mark.parametrize("value", [True, 2.5, "two", None, [1]])
    def test_rejects(self, value):
        with pytest.raises(MalformedMove, match="row"):
            as_int(value, "row")


class TestGrid:
    def test_place_is_pure(self):
        board = grid.empty_board(2, 3)
        placed = grid.place(board, 1, 2, "X")
        assert board[1][2] == ""
        assert placed[1][2] == "X"

    def test_line_through_needs_a_piece(self):
        assert grid.line_through(grid.empty_board(3, 3), 0, 0, 1) is False

    def test_anti_diagonal(self):
        board = grid.empty_board(3, 3)
        for r, c in [(2, 0), (1, 1), (0, 2)]:
            board = grid.place(board, r, c, "O")
        assert grid.line_through(board, 1, 1, 3)

    def test_is_full(self):
        board = grid.empty_board(1, 2)
        assert not grid.is_full(board)
        board = grid.place(grid.place(board, 0, 0, "X"), 0, 1, "O")
        assert grid.is_full(board)

    def test_render(self):
        board = grid.place(grid.empty_board(2, 2), 0, 1, "X")
        assert grid.render(board) == "    0   1\n0   . | X\n1   . | ."
