"""Referee — bounded retry and forfeit rulings for a single match.

One Referee instance per match. Each turn is a small state machine:

    ATTEMPTING(k) --valid--> ACCEPTED
    ATTEMPTING(k) --invalid/timeout/error, k < max--> ATTEMPTING(k+1)
    ATTEMPTING(k) --invalid/timeout/error, k == max--> FORFEITED

A forfeited turn loses the match for the acting player. The referee also
keeps per-player violation counts across the whole match for the
telemetry summary.
"""

from __future__ import annotations

from collections import defaultdict
from enum import Enum

from aiarena.core.stats import AttemptOutcome
from aiarena.core.validator import InvalidReason
from aiarena.games.base import PlayerSlot


class Ruling(Enum):
    ACCEPT = "accept"
    RETRY = "retry"
    FORFEIT_MATCH = "forfeit_match"


class TurnPhase(Enum):
    ATTEMPTING = "attempting"
    ACCEPTED = "accepted"
    FORFEITED = "forfeited"


class Referee:
    """Issues a ruling for every attempt in the current turn."""

    def __init__(self, max_attempts: int = 3) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self._player: PlayerSlot | None = None
        self._attempt = 1
        self._phase = TurnPhase.ATTEMPTING
        self._violations: dict[PlayerSlot, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )

    @property
    def attempt(self) -> int:
        """Number of the attempt awaiting a ruling (k)."""
        return self._attempt

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    def new_turn(self, player: PlayerSlot) -> None:
        self._player = player
        self._attempt = 1
        self._phase = TurnPhase.ATTEMPTING

    def adjudicate(
        self, outcome: AttemptOutcome, reason: InvalidReason | None = None
    ) -> Ruling:
        if self._player is None or self._phase is not TurnPhase.ATTEMPTING:
            raise RuntimeError(f"No turn awaiting a ruling (phase={self._phase.value})")

        if outcome is AttemptOutcome.VALID:
            self._phase = TurnPhase.ACCEPTED
            return Ruling.ACCEPT

        kind = reason.value if reason is not None else outcome.value
        self._violations[self._player][kind] += 1

        if self._attempt < self.max_attempts:
            self._attempt += 1
            return Ruling.RETRY

        self._phase = TurnPhase.FORFEITED
        return Ruling.FORFEIT_MATCH

    def violation_counts(self) -> dict[str, dict[str, int]]:
        """Violations per player value, e.g. {"player_one": {"timeout": 2}}."""
        return {
            player.value: dict(kinds)
            for player, kinds in self._violations.items()
        }
