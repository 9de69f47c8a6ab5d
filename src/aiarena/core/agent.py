"""Agent — the decision-source contract and its implementations.

An agent receives a read-only StateView, the legal move set and a
Deadline, and returns a candidate move. The engine decides what the
candidate means: it may be a game Move, a JSON-like value the game can
decode, or nothing at all.

Implementations:
- LLMAgent: prompts a ModelAdapter and parses its JSON answer
- ScriptedAgent: replays a fixed script or calls a policy function
- RandomAgent: seeded uniform choice among legal moves
"""

from __future__ import annotations

import json
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterable

from aiarena.core.adapter import AdapterError, ModelAdapter
from aiarena.core.deadline import Deadline
from aiarena.core.parser import ActionParser
from aiarena.core.sanitizer import sanitize_text
from aiarena.games.base import PlayerSlot


class AgentError(Exception):
    """Raised by agents when their backend fails."""

    def __init__(self, error_type: str, agent_name: str, details: str = ""):
        self.error_type = error_type  # "timeout", "rate_limit", "api_error", ...
        self.agent_name = agent_name
        self.details = details
        super().__init__(f"{error_type} from {agent_name}: {details}")


class MalformedResponse(AgentError):
    """The agent answered, but the answer can't be read as a move."""

    def __init__(self, agent_name: str, details: str = "", raw_text: str = ""):
        super().__init__("malformed_response", agent_name, details)
        self.raw_text = raw_text


@dataclass(frozen=True)
class StateView:
    """Everything an agent may see when asked for a move."""

    match_id: str
    game: str
    player: PlayerSlot
    turn_index: int  # index the turn will get once resolved
    attempt: int
    state: dict
    legal_moves: list
    move_schema: dict
    history: tuple[dict, ...] = ()
    last_error: str | None = None

    def to_payload(self) -> dict:
        """JSON-safe dict sent to model backends."""
        payload = {
            "game": self.game,
            "game_id": self.match_id,
            "turn_index": self.turn_index,
            "attempt": self.attempt,
            "you_are": self.player.value,
            "state": self.state,
            "legal_moves": self.legal_moves,
            "history": list(self.history),
            "expected_move_schema": self.move_schema,
        }
        if self.last_error:
            payload["previous_attempt_error"] = self.last_error
        return payload


class Agent(ABC):
    """Abstract base for all agents."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def perform_turn(
        self, view: StateView, legal_moves: frozenset, deadline: Deadline
    ) -> Any:
        """Return a candidate move. May raise AgentError or run past deadline."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


# ======================================================================
# LLMAgent
# ======================================================================

SYSTEM_PROMPT = (
    "You are a game-playing AI. Respond ONLY with strict JSON matching the "
    "expected schema. Do not include any text outside JSON."
)


class LLMAgent(Agent):
    """Agent backed by a chat-completion model."""

    def __init__(
        self,
        name: str,
        adapter: ModelAdapter,
        max_output_tokens: int = 256,
        seed: int | None = None,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        super().__init__(name)
        self.adapter = adapter
        self.max_output_tokens = max_output_tokens
        self.seed = seed
        self.system_prompt = system_prompt
        self._parser = ActionParser()

    def build_messages(self, view: StateView) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": json.dumps(view.to_payload())},
        ]

    def perform_turn(
        self, view: StateView, legal_moves: frozenset, deadline: Deadline
    ) -> Any:
        try:
            response = self.adapter.query(
                messages=self.build_messages(view),
                max_tokens=self.max_output_tokens,
                timeout_s=deadline.remaining(),
                context={
                    "seed": self.seed,
                    "turn_index": view.turn_index,
                    "attempt": view.attempt,
                    "legal_moves": view.legal_moves,
                },
            )
        except AdapterError as e:
            raise AgentError(e.error_type, self.name, e.details) from e

        raw_text = sanitize_text(response.raw_text)
        if not raw_text:
            return ""

        parsed = self._parser.parse(raw_text, view.move_schema)
        if not parsed.success:
            raise MalformedResponse(
                self.name, parsed.error or "unknown parse error", raw_text=raw_text
            )
        return parsed.action


# ======================================================================
# ScriptedAgent
# ======================================================================

class _Hang:
    def __repr__(self) -> str:
        return "HANG"


HANG = _Hang()


@dataclass
class ScriptedAgent(Agent):
    """Replays a script of answers, or delegates to a policy callable.

    Script items are returned as-is, except:
    - an Exception instance is raised
    - HANG blocks until the engine abandons the call
    """

    name: str
    script: Iterable[Any] = ()
    policy: Callable[[StateView, frozenset], Any] | None = None
    delay_s: float = 0.0
    calls: list[StateView] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._script = iter(self.script)

    def perform_turn(
        self, view: StateView, legal_moves: frozenset, deadline: Deadline
    ) -> Any:
        self.calls.append(view)
        if self.delay_s and deadline.wait_cancelled(self.delay_s):
            return None

        if self.policy is not None:
            return self.policy(view, legal_moves)

        try:
            item = next(self._script)
        except StopIteration:
            raise AgentError("script_exhausted", self.name, "no scripted answers left") from None

        if item is HANG:
            deadline.wait_cancelled()
            return None
        if isinstance(item, Exception):
            raise item
        return item


# ======================================================================
# RandomAgent
# ======================================================================

class RandomAgent(Agent):
    """Uniformly random legal moves from a seeded RNG."""

    def __init__(self, name: str, seed: int | None = None) -> None:
        super().__init__(name)
        self._rng = random.Random(seed)

    def perform_turn(
        self, view: StateView, legal_moves: frozenset, deadline: Deadline
    ) -> Hashable:
        # Sort for a stable order; frozenset iteration order is not
        ordered = sorted(legal_moves, key=repr)
        return self._rng.choice(ordered)
