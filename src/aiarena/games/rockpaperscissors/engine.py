"""Rock-Paper-Scissors — best of N rounds, played as alternating turns.

Each round both players throw once. The first thrower's choice is held as
a pending commitment and hidden from the second thrower until the round
completes. Tied rounds use up the round budget. The match ends early
once one player holds a majority of the rounds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from aiarena.games.base import Game, MalformedMove, NoMovePolicy, PlayerSlot

__all__ = ["RockPaperScissorsGame", "RockPaperScissorsState", "Throw"]


class Throw(Enum):
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"

    def beats(self, other: Throw) -> bool:
        return (self, other) in _BEATS


_BEATS = {
    (Throw.ROCK, Throw.SCISSORS),
    (Throw.PAPER, Throw.ROCK),
    (Throw.SCISSORS, Throw.PAPER),
}


@dataclass(frozen=True)
class RoundResult:
    player_one: Throw
    player_two: Throw

    @property
    def winner(self) -> PlayerSlot | None:
        if self.player_one.beats(self.player_two):
            return PlayerSlot.PLAYER_ONE
        if self.player_two.beats(self.player_one):
            return PlayerSlot.PLAYER_TWO
        return None


@dataclass(frozen=True)
class RockPaperScissorsState:
    rounds: tuple[RoundResult, ...] = ()
    pending: tuple[PlayerSlot, Throw] | None = None

    def score(self, player: PlayerSlot) -> int:
        return sum(1 for r in self.rounds if r.winner is player)


class RockPaperScissorsGame(Game):
    """Best-of-N Rock-Paper-Scissors."""

    kind = "rockpaperscissors"

    def __init__(
        self,
        rounds: int = 3,
        no_move_policy: NoMovePolicy | str | None = None,
    ) -> None:
        super().__init__(no_move_policy)
        if rounds < 1:
            raise ValueError(f"rounds must be positive, got {rounds}")
        self.rounds = rounds

    @property
    def rounds_to_win(self) -> int:
        return self.rounds // 2 + 1

    # ------------------------------------------------------------------
    # Game ABC
    # ------------------------------------------------------------------

    def initial_state(self) -> RockPaperScissorsState:
        return RockPaperScissorsState()

    def legal_moves(self, state: RockPaperScissorsState, player: PlayerSlot) -> frozenset:
        if self.is_terminal(state):
            return frozenset()
        if state.pending is not None and state.pending[0] is player:
            return frozenset()
        return frozenset(Throw)

    def apply(
        self, state: RockPaperScissorsState, player: PlayerSlot, move: Throw
    ) -> RockPaperScissorsState:
        if state.pending is None:
            return RockPaperScissorsState(rounds=state.rounds, pending=(player, move))

        first, first_throw = state.pending
        if first is player:
            raise ValueError(f"{player.value} already threw this round")
        throws = {first: first_throw, player: move}
        result = RoundResult(
            player_one=throws[PlayerSlot.PLAYER_ONE],
            player_two=throws[PlayerSlot.PLAYER_TWO],
        )
        return RockPaperScissorsState(rounds=state.rounds + (result,), pending=None)

    def is_terminal(self, state: RockPaperScissorsState) -> bool:
        if state.pending is not None:
            return False
        if len(state.rounds) >= self.rounds:
            return True
        return any(state.score(p) >= self.rounds_to_win for p in PlayerSlot)

    def winner(self, state: RockPaperScissorsState) -> PlayerSlot | None:
        one = state.score(PlayerSlot.PLAYER_ONE)
        two = state.score(PlayerSlot.PLAYER_TWO)
        if one > two:
            return PlayerSlot.PLAYER_ONE
        if two > one:
            return PlayerSlot.PLAYER_TWO
        return None

    def view(self, state: RockPaperScissorsState, player: PlayerSlot) -> dict:
        opponent = player.other
        history = []
        for number, r in enumerate(state.rounds, start=1):
            mine = r.player_one if player is PlayerSlot.PLAYER_ONE else r.player_two
            theirs = r.player_two if player is PlayerSlot.PLAYER_ONE else r.player_one
            outcome = "draw" if r.winner is None else ("win" if r.winner is player else "loss")
            history.append(
                {"round": number, "you": mine.value, "opponent": theirs.value, "result": outcome}
            )
        return {
            "round": len(state.rounds) + 1,
            "total_rounds": self.rounds,
            "rounds_to_win": self.rounds_to_win,
            "your_score": state.score(player),
            "opponent_score": state.score(opponent),
            "opponent_has_thrown": (
                state.pending is not None and state.pending[0] is opponent
            ),
            "history": history,
        }

    def visible_history(
        self, state: RockPaperScissorsState, player: PlayerSlot, history: list[dict]
    ) -> list[dict]:
        if state.pending is None or state.pending[0] is player or not history:
            return history
        hidden = dict(history[-1], move="hidden")
        return history[:-1] + [hidden]

    def encode_move(self, move: Throw) -> dict:
        return {"choice": move.value}

    def decode_move(self, raw: Any) -> Throw:
        if isinstance(raw, Throw):
            return raw
        if isinstance(raw, dict):
            if "choice" not in raw:
                raise MalformedMove("Missing 'choice' field")
            raw = raw["choice"]
        if isinstance(raw, str):
            try:
                return Throw(raw.strip().lower())
            except ValueError:
                raise MalformedMove(
                    f"Unknown choice {raw!r}; use rock, paper or scissors"
                ) from None
        raise MalformedMove(f"Cannot read a choice from {raw!r}")

    @property
    def move_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "choice": {
                    "type": "string",
                    "enum": [t.value for t in Throw],
                },
            },
            "required": ["choice"],
        }
