"""BatchRunner — runs every repetition of a list of match specs.

Each repetition gets fresh agents, a fresh game and its own MatchEngine.
A repetition that cannot be set up or crashes is recorded as a failed
entry; the batch always runs to the end.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

from aiarena.config import (
    AgentConfig,
    BatchConfig,
    ConfigurationError,
    MatchSpec,
    StartPolicy,
)
from aiarena.core.adapter import MockAdapter
from aiarena.core.agent import Agent, LLMAgent, RandomAgent
from aiarena.core.anthropic_adapter import AnthropicAdapter
from aiarena.core.ollama_adapter import OllamaAdapter
from aiarena.core.openai_adapter import OpenAIAdapter
from aiarena.core.seed import SeedManager
from aiarena.core.strategies import STRATEGY_REGISTRY
from aiarena.engine import MatchEngine, MatchResult, OutcomeKind
from aiarena.games import Game, GameContractViolation, PlayerSlot, build_game
from aiarena.secret_profiles import SecretProfiles

logger = logging.getLogger(__name__)

AgentFactory = Callable[[AgentConfig, int | None], Agent]
GameFactory = Callable[[str, dict], Game]

_DEFAULT_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}
_BASE_URL_ENV = {"ollama": "OLLAMA_BASE_URL"}


@dataclass
class BatchEntry:
    """Outcome of one repetition of one spec: a result or an error."""

    spec_index: int
    spec: MatchSpec
    repetition: int
    result: MatchResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    def to_dict(self) -> dict:
        d = {
            "spec_index": self.spec_index,
            "repetition": self.repetition,
            "game": self.spec.game,
            "description": self.spec.description,
            "agents": [a.display_name for a in self.spec.agents],
        }
        if self.result is not None:
            d["result"] = self.result.to_dict()
        else:
            d["error"] = self.error
        return d


@dataclass
class BatchReport:
    """Entries in spec order, then repetition order."""

    name: str
    entries: list[BatchEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[BatchEntry]:
        return iter(self.entries)

    @property
    def completed(self) -> list[BatchEntry]:
        return [e for e in self.entries if e.ok]

    @property
    def failed(self) -> list[BatchEntry]:
        return [e for e in self.entries if not e.ok]

    def standings(self) -> dict[str, float]:
        """Wins per agent name across completed matches. Draws count 0.5."""
        scores: dict[str, float] = {}
        for entry in self.completed:
            result = entry.result
            for name in result.player_names.values():
                scores.setdefault(name, 0.0)
            if result.outcome.kind is OutcomeKind.DRAW:
                for name in result.player_names.values():
                    scores[name] += 0.5
            else:
                scores[result.winner_name] += 1.0
        return dict(sorted(scores.items(), key=lambda kv: (-kv[1], kv[0])))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "total": len(self.entries),
            "completed": len(self.completed),
            "failed": len(self.failed),
            "standings": self.standings(),
            "entries": [e.to_dict() for e in self.entries],
        }


class BatchRunner:
    """Runs a BatchConfig, sequentially or on a thread pool."""

    def __init__(
        self,
        config: BatchConfig,
        agent_factory: AgentFactory | None = None,
        game_factory: GameFactory | None = None,
        secrets: SecretProfiles | None = None,
    ) -> None:
        self.config = config
        self.secrets = (
            secrets if secrets is not None else SecretProfiles.load(config.secrets_file)
        )
        self.seed_mgr = SeedManager(config.seed)
        self.agent_factory = agent_factory or self.build_agent
        self.game_factory = game_factory or build_game
        self.telemetry_dir = (
            Path(config.output_dir) / "telemetry" if config.output_dir else None
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, specs: list[MatchSpec] | None = None) -> BatchReport:
        """Run every repetition of every spec and return the ordered report."""
        specs = self.config.matches if specs is None else specs
        jobs = [
            (index, spec, rep)
            for index, spec in enumerate(specs)
            for rep in range(spec.repetitions)
        ]
        logger.info(
            "Batch %s: %d specs, %d matches, %d worker(s)",
            self.config.name, len(specs), len(jobs), max(1, self.config.workers),
        )

        if self.config.workers <= 1 or len(jobs) <= 1:
            entries = [self._run_one(*job) for job in jobs]
        else:
            entries = [None] * len(jobs)
            with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
                futures = {
                    pool.submit(self._run_one, *job): position
                    for position, job in enumerate(jobs)
                }
                for future in as_completed(futures):
                    entries[futures[future]] = future.result()

        report = BatchReport(name=self.config.name, entries=list(entries))
        logger.info(
            "Batch %s done: %d completed, %d failed",
            self.config.name, len(report.completed), len(report.failed),
        )
        return report

    def build_agent(self, cfg: AgentConfig, seed: int | None) -> Agent:
        """Map an agent config to a concrete Agent."""
        name = cfg.display_name
        kind = cfg.kind.strip().lower()

        if kind == "random":
            return RandomAgent(name, seed=seed)

        if kind == "mock":
            strategy_fn = STRATEGY_REGISTRY.get(cfg.strategy or "first_legal")
            if strategy_fn is None:
                raise ConfigurationError(
                    f"Unknown mock strategy: {cfg.strategy!r}. "
                    f"Available: {list(STRATEGY_REGISTRY)}"
                )
            adapter = MockAdapter(model_id=cfg.model or name, strategy=strategy_fn)
        elif kind == "openai":
            model = _require_model(cfg)
            api_key, base_url = self._credentials(cfg, kind)
            adapter = OpenAIAdapter(
                model_id=model,
                api_key=api_key,
                base_url=base_url,
                temperature=cfg.temperature,
                seed=seed,
            )
        elif kind == "anthropic":
            model = _require_model(cfg)
            api_key, _ = self._credentials(cfg, kind)
            adapter = AnthropicAdapter(
                model_id=model,
                api_key=api_key,
                temperature=cfg.temperature,
            )
        elif kind == "ollama":
            model = _require_model(cfg)
            # Local servers need no key unless one is configured
            api_key, base_url = self._credentials(
                cfg, kind, key_required=bool(cfg.api_key_env)
            )
            adapter = OllamaAdapter(
                model_id=model,
                base_url=base_url,
                temperature=cfg.temperature,
                seed=seed,
                api_key=api_key,
            )
        else:
            raise ConfigurationError(f"Unsupported agent kind: {cfg.kind!r}")

        return LLMAgent(
            name,
            adapter,
            max_output_tokens=cfg.max_output_tokens or self.config.engine.max_output_tokens,
            seed=seed,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _credentials(
        self, cfg: AgentConfig, provider: str, key_required: bool = True
    ) -> tuple[str | None, str | None]:
        """(api_key, base_url) from the secret profile, env vars and config.

        An explicit ``base_url`` in the agent config wins over the profile.
        """
        env_var = cfg.api_key_env or _DEFAULT_KEY_ENV.get(provider)
        try:
            api_key = self.secrets.api_key(
                provider, cfg.secret_profile, env_var, required=key_required
            )
            base_url = cfg.base_url or self.secrets.base_url(
                provider, cfg.secret_profile, _BASE_URL_ENV.get(provider)
            )
        except ConfigurationError as e:
            raise ConfigurationError(f"Agent {cfg.display_name}: {e}") from None
        return api_key, base_url

    def _run_one(self, spec_index: int, spec: MatchSpec, repetition: int) -> BatchEntry:
        entry = BatchEntry(spec_index=spec_index, spec=spec, repetition=repetition)
        try:
            game = self.game_factory(spec.game, dict(spec.game_options))
            slots = (PlayerSlot.PLAYER_ONE, PlayerSlot.PLAYER_TWO)
            agents = {}
            names = {}
            for slot, agent_cfg in zip(slots, spec.agents):
                seed = self._agent_seed(spec, spec_index, repetition, slot, agent_cfg)
                agents[slot] = self.agent_factory(agent_cfg, seed)
                names[slot] = agent_cfg.display_name
            engine = MatchEngine(
                game,
                agents,
                names=names,
                config=self.config.engine,
                starting_player=self._starting_player(spec, spec_index, repetition),
                telemetry_dir=self.telemetry_dir,
            )
            entry.result = engine.run()
        except (ConfigurationError, GameContractViolation) as e:
            logger.error(
                "Spec %d repetition %d failed: %s", spec_index, repetition, e,
            )
            entry.error = str(e)
        except Exception as e:
            logger.exception(
                "Spec %d repetition %d crashed", spec_index, repetition,
            )
            entry.error = f"{type(e).__name__}: {e}"
        return entry

    def _agent_seed(
        self,
        spec: MatchSpec,
        spec_index: int,
        repetition: int,
        slot: PlayerSlot,
        agent_cfg: AgentConfig,
    ) -> int | None:
        if self.config.vary_seed:
            return self.seed_mgr.get_match_seed(
                spec.game, spec_index, repetition, salt=slot.value
            )
        return agent_cfg.seed

    def _starting_player(
        self, spec: MatchSpec, spec_index: int, repetition: int
    ) -> PlayerSlot:
        policy = spec.starting_player
        if policy is StartPolicy.PLAYER_TWO:
            return PlayerSlot.PLAYER_TWO
        if policy is StartPolicy.ALTERNATE:
            return PlayerSlot.PLAYER_ONE if repetition % 2 == 0 else PlayerSlot.PLAYER_TWO
        if policy is StartPolicy.RANDOM:
            seed = self.seed_mgr.get_match_seed(
                spec.game, spec_index, repetition, salt="starting_player"
            )
            rng = self.seed_mgr.get_rng(seed)
            return rng.choice((PlayerSlot.PLAYER_ONE, PlayerSlot.PLAYER_TWO))
        return PlayerSlot.PLAYER_ONE


def _require_model(cfg: AgentConfig) -> str:
    if not cfg.model:
        raise ConfigurationError(f"Agent {cfg.display_name}: {cfg.kind} requires a model")
    return cfg.model

