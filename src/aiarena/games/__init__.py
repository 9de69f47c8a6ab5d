"""Game registry.

Games are looked up by kind. Lookups ignore case, underscores and
dashes, so "TicTacToe", "tic_tac_toe" and "tictactoe" all resolve.
"""

from __future__ import annotations

from typing import Any

from aiarena.config import ConfigurationError
from aiarena.games.base import (
    Game,
    GameContractViolation,
    MalformedMove,
    NoMovePolicy,
    PlayerSlot,
)
from aiarena.games.connectfour.engine import ConnectFourGame
from aiarena.games.rockpaperscissors.engine import RockPaperScissorsGame
from aiarena.games.tictactoe.engine import TicTacToeGame

__all__ = [
    "GAME_REGISTRY",
    "Game",
    "GameContractViolation",
    "MalformedMove",
    "NoMovePolicy",
    "PlayerSlot",
    "build_game",
    "normalize_kind",
]

GAME_REGISTRY: dict[str, type[Game]] = {
    TicTacToeGame.kind: TicTacToeGame,
    ConnectFourGame.kind: ConnectFourGame,
    RockPaperScissorsGame.kind: RockPaperScissorsGame,
}


def normalize_kind(name: str) -> str:
    return name.strip().lower().replace("_", "").replace("-", "")


def build_game(kind: str, options: dict[str, Any] | None = None) -> Game:
    """Instantiate a game by kind. Raises ConfigurationError on bad input."""
    cls = GAME_REGISTRY.get(normalize_kind(kind))
    if cls is None:
        raise ConfigurationError(
            f"Unknown game: {kind!r}. Available: {sorted(GAME_REGISTRY)}"
        )
    try:
        return cls(**(options or {}))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid options for {kind!r}: {e}") from e
