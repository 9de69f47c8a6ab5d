"""Turn records and per-player statistics.

StatsCollector is an append-only log of TurnRecords. Every aggregate is a
pure reduction over that log (see ``summarize``), so stats can be
recomputed from a saved match at any time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, Iterable

from aiarena.core.validator import InvalidReason
from aiarena.games.base import PlayerSlot


class AttemptOutcome(Enum):
    VALID = "valid"
    INVALID = "invalid"
    TIMEOUT = "timeout"
    AGENT_ERROR = "agent_error"


@dataclass(frozen=True)
class Attempt:
    """One agent response to a single turn request."""

    number: int  # 1-based within the turn
    outcome: AttemptOutcome
    latency_ms: float
    raw: Any = None
    move: Hashable | None = None
    reason: InvalidReason | None = None  # set only for INVALID
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is AttemptOutcome.VALID


@dataclass(frozen=True)
class TurnRecord:
    """Complete log of one resolved turn: accepted move or forfeit."""

    turn_index: int
    player: PlayerSlot
    attempts: tuple[Attempt, ...]
    move: Hashable | None = None
    forfeited: bool = False
    state_before: dict | None = None
    state_after: dict | None = None


@dataclass(frozen=True)
class StatsSummary:
    turns_taken: int = 0
    valid_moves: int = 0
    invalid_attempts: int = 0
    timeouts: int = 0
    agent_errors: int = 0
    attempts: int = 0
    forfeits: int = 0
    total_latency_ms: float = 0.0

    @property
    def average_latency_ms(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.total_latency_ms / self.attempts

    def to_dict(self) -> dict:
        return {
            "turns_taken": self.turns_taken,
            "valid_moves": self.valid_moves,
            "invalid_attempts": self.invalid_attempts,
            "timeouts": self.timeouts,
            "agent_errors": self.agent_errors,
            "attempts": self.attempts,
            "forfeits": self.forfeits,
            "total_latency_ms": round(self.total_latency_ms, 3),
            "average_latency_ms": round(self.average_latency_ms, 3),
        }


def summarize(turns: Iterable[TurnRecord]) -> dict[PlayerSlot, StatsSummary]:
    """Reduce a turn log to one StatsSummary per player."""
    counts: dict[PlayerSlot, dict[str, Any]] = {
        slot: {
            "turns_taken": 0,
            "valid_moves": 0,
            "invalid_attempts": 0,
            "timeouts": 0,
            "agent_errors": 0,
            "attempts": 0,
            "forfeits": 0,
            "total_latency_ms": 0.0,
        }
        for slot in PlayerSlot
    }
    for turn in turns:
        c = counts[turn.player]
        c["turns_taken"] += 1
        if turn.forfeited:
            c["forfeits"] += 1
        for attempt in turn.attempts:
            c["attempts"] += 1
            c["total_latency_ms"] += attempt.latency_ms
            if attempt.outcome is AttemptOutcome.VALID:
                c["valid_moves"] += 1
            elif attempt.outcome is AttemptOutcome.INVALID:
                c["invalid_attempts"] += 1
            elif attempt.outcome is AttemptOutcome.TIMEOUT:
                c["timeouts"] += 1
            elif attempt.outcome is AttemptOutcome.AGENT_ERROR:
                c["agent_errors"] += 1
    return {slot: StatsSummary(**c) for slot, c in counts.items()}


@dataclass
class StatsCollector:
    """Append-only accumulator of TurnRecords for one match."""

    _turns: list[TurnRecord] = field(default_factory=list)

    def record(self, turn: TurnRecord) -> None:
        expected = len(self._turns) + 1
        if turn.turn_index != expected:
            raise ValueError(
                f"turn_index must be {expected}, got {turn.turn_index}"
            )
        self._turns.append(turn)

    @property
    def turns(self) -> tuple[TurnRecord, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def finalize(self) -> tuple[tuple[TurnRecord, ...], dict[PlayerSlot, StatsSummary]]:
        turns = self.turns
        return turns, summarize(turns)
