"""Game — abstract base class for all arena games.

Each game is a pure, deterministic rule engine. The MatchEngine interacts
with games only through these methods and never inspects a state's
internals: it hands states back to the game and shows agents the game's
own ``view()`` of them.

States are immutable values. ``apply()`` returns a new state and leaves
the old one untouched, so the engine can keep every state for audit and
replay.

Implementations:
    TicTacToeGame, ConnectFourGame — k-in-a-row boards (see grid.py)
    RockPaperScissorsGame — best-of-N with hidden throws
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Hashable


class PlayerSlot(Enum):
    """One of the two seats in a match."""

    PLAYER_ONE = "player_one"
    PLAYER_TWO = "player_two"

    @property
    def other(self) -> PlayerSlot:
        if self is PlayerSlot.PLAYER_ONE:
            return PlayerSlot.PLAYER_TWO
        return PlayerSlot.PLAYER_ONE

    @property
    def mark(self) -> str:
        """Board mark used by grid games."""
        return "X" if self is PlayerSlot.PLAYER_ONE else "O"


class NoMovePolicy(Enum):
    """What the engine does when the player to move has no legal move."""

    END_MATCH = "end_match"
    SKIP_TURN = "skip_turn"


class MalformedMove(ValueError):
    """Raised by decode_move() when a value cannot represent a move at all."""


class GameContractViolation(Exception):
    """A game failed on input the contract says it must accept.

    Raised by the engine, never by agents. Always a bug in the game.
    """

    def __init__(self, game: str, operation: str, details: str = ""):
        self.game = game
        self.operation = operation
        self.details = details
        super().__init__(f"{game}.{operation} failed: {details}")


class Game(ABC):
    """Abstract base for arena games."""

    kind: str = ""
    no_move_policy: NoMovePolicy = NoMovePolicy.END_MATCH

    def __init__(self, no_move_policy: NoMovePolicy | str | None = None) -> None:
        if no_move_policy is not None:
            self.no_move_policy = NoMovePolicy(no_move_policy)

    @property
    def display_name(self) -> str:
        """Human-readable name, the class name without 'Game'."""
        name = type(self).__name__
        return name.removesuffix("Game") or name

    # ------------------------------------------------------------------
    # Abstract: must be implemented by every game
    # ------------------------------------------------------------------

    @abstractmethod
    def initial_state(self) -> Any:
        """Return the starting state."""

    @abstractmethod
    def legal_moves(self, state: Any, player: PlayerSlot) -> frozenset:
        """Return every legal move for player. Empty means no legal move."""

    @abstractmethod
    def apply(self, state: Any, player: PlayerSlot, move: Hashable) -> Any:
        """Return the state after player makes move. Never mutates state."""

    @abstractmethod
    def is_terminal(self, state: Any) -> bool:
        """Return True if the game is over."""

    @abstractmethod
    def winner(self, state: Any) -> PlayerSlot | None:
        """Return the winner of a terminal state, or None for a draw."""

    @abstractmethod
    def view(self, state: Any, player: PlayerSlot) -> dict:
        """Return a JSON-safe projection of state as player may see it."""

    @abstractmethod
    def encode_move(self, move: Hashable) -> Any:
        """Return a JSON-safe encoding of move."""

    @abstractmethod
    def decode_move(self, raw: Any) -> Hashable:
        """Turn an agent's answer into a move. Raise MalformedMove if it can't."""

    @property
    @abstractmethod
    def move_schema(self) -> dict:
        """JSON Schema describing an encoded move."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def visible_history(self, state: Any, player: PlayerSlot, history: list[dict]) -> list[dict]:
        """Return the prior-move log as player may see it.

        Games with hidden information override this. Default: everything
        is public.
        """
        return history

    def encode_moves(self, moves) -> list:
        """Encode a move set in a stable order for prompts and logs."""
        return sorted(
            (self.encode_move(m) for m in moves),
            key=lambda e: repr(e),
        )


def as_int(value: Any, field: str) -> int:
    """Coerce a decoded JSON value to int, rejecting bools and fractions."""
    if isinstance(value, bool):
        raise MalformedMove(f"{field} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise MalformedMove(f"{field} must be an integer, got {value!r}")
