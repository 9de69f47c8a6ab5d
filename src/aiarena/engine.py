"""MatchEngine — plays one game between two agents.

Runs the turn loop (view -> ask agent -> validate -> adjudicate -> apply),
bounds every agent call by the turn deadline, keeps the per-turn audit
trail, writes telemetry, and produces a single MatchResult.

The engine is generic: it talks to games only through the Game contract
and to agents only through the Agent contract.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Hashable

from aiarena.config import EngineConfig
from aiarena.core.agent import Agent, AgentError, MalformedResponse, StateView
from aiarena.core.deadline import CallTimedOut, Deadline, call_with_deadline
from aiarena.core.referee import Referee, Ruling
from aiarena.core.stats import (
    Attempt,
    AttemptOutcome,
    StatsCollector,
    StatsSummary,
    TurnRecord,
)
from aiarena.core.telemetry import TelemetryEntry, TelemetryLogger
from aiarena.core.validator import InvalidReason, validate
from aiarena.games.base import (
    Game,
    GameContractViolation,
    NoMovePolicy,
    PlayerSlot,
)

logger = logging.getLogger(__name__)


class MatchPhase(Enum):
    NOT_STARTED = "not_started"
    AWAITING_MOVE = "awaiting_move"
    APPLYING = "applying"
    CHECK_TERMINAL = "check_terminal"
    FINISHED = "finished"


class OutcomeKind(Enum):
    WIN = "win"
    DRAW = "draw"
    FORFEIT = "forfeit"


@dataclass(frozen=True)
class MatchOutcome:
    """How a match ended.

    ``player`` is the winner for WIN, the forfeiting player for FORFEIT,
    and None for DRAW.
    """

    kind: OutcomeKind
    player: PlayerSlot | None = None

    @property
    def winner(self) -> PlayerSlot | None:
        if self.kind is OutcomeKind.WIN:
            return self.player
        if self.kind is OutcomeKind.FORFEIT:
            return self.player.other
        return None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "player": self.player.value if self.player else None,
            "winner": self.winner.value if self.winner else None,
        }


@dataclass
class MatchResult:
    """Result of a single match between two agents."""

    match_id: str
    game: str
    outcome: MatchOutcome
    total_turns: int  # accepted moves; forfeited turns are not counted
    duration_ms: float
    turns: tuple[TurnRecord, ...]
    stats: dict[PlayerSlot, StatsSummary]
    player_names: dict[PlayerSlot, str]
    starting_player: PlayerSlot = PlayerSlot.PLAYER_ONE
    telemetry_path: Path | None = None

    @property
    def winner_name(self) -> str | None:
        winner = self.outcome.winner
        return self.player_names[winner] if winner else None

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "game": self.game,
            "outcome": self.outcome.to_dict(),
            "winner_name": self.winner_name,
            "total_turns": self.total_turns,
            "duration_ms": round(self.duration_ms, 3),
            "player_names": {s.value: n for s, n in self.player_names.items()},
            "starting_player": self.starting_player.value,
            "stats": {s.value: summary.to_dict() for s, summary in self.stats.items()},
        }


def replay(game: Game, turns: tuple[TurnRecord, ...] | list[TurnRecord]) -> Any:
    """Re-apply the accepted moves of a turn log from the initial state."""
    state = game.initial_state()
    for turn in turns:
        if turn.forfeited:
            continue
        state = game.apply(state, turn.player, turn.move)
    return state


def new_match_id(game: Game) -> str:
    return f"{game.kind}-{uuid.uuid4().hex[:8]}"


class MatchEngine:
    """Runs exactly one match. Create a fresh engine per match."""

    def __init__(
        self,
        game: Game,
        agents: dict[PlayerSlot, Agent],
        names: dict[PlayerSlot, str] | None = None,
        config: EngineConfig | None = None,
        starting_player: PlayerSlot = PlayerSlot.PLAYER_ONE,
        match_id: str | None = None,
        telemetry_dir: Path | None = None,
    ) -> None:
        missing = [slot.value for slot in PlayerSlot if slot not in agents]
        if missing:
            raise ValueError(f"No agent bound to {missing}")
        self.game = game
        self.agents = dict(agents)
        self.names = {
            slot: (names or {}).get(slot) or self.agents[slot].name
            for slot in PlayerSlot
        }
        self.config = config or EngineConfig()
        self.starting_player = starting_player
        self.match_id = match_id or new_match_id(game)
        self.referee = Referee(self.config.max_attempts)
        self.stats = StatsCollector()
        self.states: list[Any] = []
        self._history: list[dict] = []
        self._phase = MatchPhase.NOT_STARTED
        self._telemetry = (
            TelemetryLogger(telemetry_dir, self.match_id) if telemetry_dir else None
        )

    @property
    def phase(self) -> MatchPhase:
        return self._phase

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> MatchResult:
        """Play the match to completion and return its result."""
        if self._phase is not MatchPhase.NOT_STARTED:
            raise RuntimeError(f"Match {self.match_id} has already been run")
        self._phase = MatchPhase.CHECK_TERMINAL
        start = time.monotonic()
        logger.info(
            "Match %s: %s, %s vs %s",
            self.match_id,
            self.game.kind,
            self.names[PlayerSlot.PLAYER_ONE],
            self.names[PlayerSlot.PLAYER_TWO],
        )

        try:
            outcome = self._play()
        except GameContractViolation:
            self._phase = MatchPhase.FINISHED
            logger.error("Match %s aborted: game contract violated", self.match_id)
            raise

        self._phase = MatchPhase.FINISHED
        turns, stats = self.stats.finalize()
        result = MatchResult(
            match_id=self.match_id,
            game=self.game.kind,
            outcome=outcome,
            total_turns=sum(1 for t in turns if not t.forfeited),
            duration_ms=(time.monotonic() - start) * 1000,
            turns=turns,
            stats=stats,
            player_names=dict(self.names),
            starting_player=self.starting_player,
            telemetry_path=self._telemetry.file_path if self._telemetry else None,
        )
        if self._telemetry:
            summary = result.to_dict()
            summary["violations"] = self.referee.violation_counts()
            self._telemetry.finalize_match(summary)

        logger.info(
            "Match %s finished: %s (%s) after %d turns",
            self.match_id,
            outcome.kind.value,
            result.winner_name or "no winner",
            result.total_turns,
        )
        return result

    # ------------------------------------------------------------------
    # Internal: turn loop
    # ------------------------------------------------------------------

    def _play(self) -> MatchOutcome:
        state = self._call_game("initial_state", self.game.initial_state)
        self.states.append(state)
        player = self.starting_player
        skipped = False

        while True:
            self._phase = MatchPhase.CHECK_TERMINAL
            if self._call_game("is_terminal", self.game.is_terminal, state):
                return self._final_outcome(state)

            legal = self._call_game(
                "legal_moves", lambda: frozenset(self.game.legal_moves(state, player))
            )
            if not legal:
                if self.game.no_move_policy is NoMovePolicy.SKIP_TURN and not skipped:
                    logger.debug(
                        "Match %s: %s has no legal move, passing",
                        self.match_id, player.value,
                    )
                    skipped = True
                    player = player.other
                    continue
                logger.debug(
                    "Match %s: %s has no legal move, ending match",
                    self.match_id, player.value,
                )
                return self._final_outcome(state)
            skipped = False

            self._phase = MatchPhase.AWAITING_MOVE
            turn_index = len(self.stats) + 1
            state_before = self._call_game("view", self.game.view, state, player)
            attempts, move = self._resolve_turn(state, player, legal, turn_index, state_before)

            if move is None:
                record = TurnRecord(
                    turn_index=turn_index,
                    player=player,
                    attempts=tuple(attempts),
                    forfeited=True,
                    state_before=state_before,
                    state_after=state_before,
                )
                self._record(record)
                logger.info(
                    "Match %s: %s forfeits after %d attempts",
                    self.match_id, self.names[player], len(attempts),
                )
                return MatchOutcome(OutcomeKind.FORFEIT, player)

            self._phase = MatchPhase.APPLYING
            state = self._call_game("apply", self.game.apply, state, player, move)
            self.states.append(state)
            record = TurnRecord(
                turn_index=turn_index,
                player=player,
                attempts=tuple(attempts),
                move=move,
                state_before=state_before,
                state_after=self._call_game("view", self.game.view, state, player),
            )
            self._record(record)
            self._history.append({
                "turn": turn_index,
                "player": player.value,
                "move": self._call_game("encode_move", self.game.encode_move, move),
            })
            player = player.other

    def _resolve_turn(
        self,
        state: Any,
        player: PlayerSlot,
        legal: frozenset,
        turn_index: int,
        state_view: dict,
    ) -> tuple[list[Attempt], Hashable | None]:
        """Ask the agent until a move is accepted or the turn is forfeited."""
        self.referee.new_turn(player)
        encoded_legal = self._call_game("encode_move", self.game.encode_moves, legal)
        history = self._call_game(
            "visible_history",
            self.game.visible_history, state, player, list(self._history),
        )
        attempts: list[Attempt] = []
        last_error = None

        while True:
            view = StateView(
                match_id=self.match_id,
                game=self.game.kind,
                player=player,
                turn_index=turn_index,
                attempt=self.referee.attempt,
                state=state_view,
                legal_moves=encoded_legal,
                move_schema=self.game.move_schema,
                history=tuple(history),
                last_error=last_error,
            )
            attempt = self._attempt(self.agents[player], view, legal)
            attempts.append(attempt)
            ruling = self.referee.adjudicate(attempt.outcome, attempt.reason)

            if ruling is Ruling.ACCEPT:
                return attempts, attempt.move
            logger.warning(
                "Match %s turn %d: %s attempt %d %s (%s)",
                self.match_id, turn_index, self.names[player], attempt.number,
                attempt.reason.value if attempt.reason else attempt.outcome.value,
                attempt.detail,
            )
            if ruling is Ruling.FORFEIT_MATCH:
                return attempts, None
            last_error = attempt.detail

    def _attempt(self, agent: Agent, view: StateView, legal: frozenset) -> Attempt:
        """One bounded call to the agent, classified into an Attempt."""
        deadline = Deadline(self.config.turn_timeout_s)
        start = time.monotonic()

        def elapsed() -> float:
            return (time.monotonic() - start) * 1000

        try:
            candidate = call_with_deadline(
                lambda: agent.perform_turn(view, legal, deadline),
                deadline,
                name=f"{self.match_id}-{view.player.value}",
            )
        except CallTimedOut as e:
            return Attempt(view.attempt, AttemptOutcome.TIMEOUT, elapsed(), detail=str(e))
        except MalformedResponse as e:
            return Attempt(
                view.attempt,
                AttemptOutcome.INVALID,
                elapsed(),
                raw=e.raw_text or None,
                reason=InvalidReason.MALFORMED,
                detail=e.details,
            )
        except AgentError as e:
            outcome = (
                AttemptOutcome.TIMEOUT if e.error_type == "timeout"
                else AttemptOutcome.AGENT_ERROR
            )
            return Attempt(view.attempt, outcome, elapsed(), detail=str(e))
        except Exception as e:
            logger.debug("Agent %s raised", agent.name, exc_info=True)
            return Attempt(
                view.attempt,
                AttemptOutcome.AGENT_ERROR,
                elapsed(),
                detail=f"{type(e).__name__}: {e}",
            )

        latency_ms = elapsed()
        result = self._call_game(
            "decode_move", validate, legal, candidate, self.game.decode_move
        )
        logger.debug(
            "Match %s turn %d attempt %d: %r -> %s",
            self.match_id, view.turn_index, view.attempt, candidate,
            "legal" if result.legal else result.reason.value,
        )
        if result.legal:
            return Attempt(
                view.attempt, AttemptOutcome.VALID, latency_ms,
                raw=candidate, move=result.move,
            )
        return Attempt(
            view.attempt, AttemptOutcome.INVALID, latency_ms,
            raw=candidate, move=result.move, reason=result.reason, detail=result.detail,
        )

    def _final_outcome(self, state: Any) -> MatchOutcome:
        winner = self._call_game("winner", self.game.winner, state)
        if winner is None:
            return MatchOutcome(OutcomeKind.DRAW)
        return MatchOutcome(OutcomeKind.WIN, winner)

    def _call_game(self, operation: str, fn: Callable, *args: Any) -> Any:
        """Call into the game; any failure is the game's fault."""
        try:
            return fn(*args)
        except GameContractViolation:
            raise
        except Exception as e:
            raise GameContractViolation(
                self.game.kind, operation, f"{type(e).__name__}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Internal: telemetry
    # ------------------------------------------------------------------

    def _record(self, record: TurnRecord) -> None:
        self.stats.record(record)
        if self._telemetry is None:
            return
        self._telemetry.log_turn(TelemetryEntry(
            turn_index=record.turn_index,
            player_id=record.player.value,
            player_name=self.names[record.player],
            move=self.game.encode_move(record.move) if record.move is not None else None,
            forfeited=record.forfeited,
            attempts=[self._attempt_to_dict(a) for a in record.attempts],
            state_before=record.state_before,
            state_after=record.state_after,
        ))

    def _attempt_to_dict(self, attempt: Attempt) -> dict:
        return {
            "number": attempt.number,
            "outcome": attempt.outcome.value,
            "reason": attempt.reason.value if attempt.reason else None,
            "latency_ms": round(attempt.latency_ms, 3),
            "raw": attempt.raw,
            "move": (
                self.game.encode_move(attempt.move)
                if attempt.move is not None and attempt.ok else None
            ),
            "detail": attempt.detail,
        }

