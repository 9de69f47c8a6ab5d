"""Batch configuration: dataclasses plus YAML and CSV loaders."""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml


class ConfigurationError(ValueError):
    """A match or batch description can't be resolved into runnable parts."""


def _coerce(value: Any, cast, name: str):
    """Cast a loaded value, turning failures into ConfigurationError."""
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid {name}: {value!r}") from None


class StartPolicy(Enum):
    """Which seat moves first in each repetition of a match spec."""

    PLAYER_ONE = "player_one"
    PLAYER_TWO = "player_two"
    ALTERNATE = "alternate"  # player_one on even repetitions
    RANDOM = "random"  # seeded per repetition


@dataclass
class AgentConfig:
    kind: str  # "openai", "anthropic", "ollama", "mock", "random"
    model: str | None = None
    temperature: float = 0.7
    seed: int | None = None
    api_key_env: str | None = None  # env var name holding the API key
    base_url: str | None = None  # custom API base URL
    strategy: str | None = None  # for mock kind
    secret_profile: str | None = None  # named entry in the secrets file
    name: str | None = None  # display name
    max_output_tokens: int | None = None  # falls back to EngineConfig

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return f"{self.kind}:{self.model or self.strategy or 'default'}"


@dataclass
class EngineConfig:
    max_attempts: int = 3
    turn_timeout_s: float = 30.0
    max_output_tokens: int = 256

    def __post_init__(self) -> None:
        self.max_attempts = _coerce(self.max_attempts, int, "max_attempts")
        self.turn_timeout_s = _coerce(self.turn_timeout_s, float, "turn_timeout_s")
        self.max_output_tokens = _coerce(self.max_output_tokens, int, "max_output_tokens")
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.turn_timeout_s <= 0:
            raise ConfigurationError(f"turn_timeout_s must be positive, got {self.turn_timeout_s}")
        if self.max_output_tokens < 1:
            raise ConfigurationError(
                f"max_output_tokens must be >= 1, got {self.max_output_tokens}"
            )


@dataclass
class MatchSpec:
    game: str
    agents: tuple[AgentConfig, AgentConfig]
    repetitions: int = 1
    starting_player: StartPolicy = StartPolicy.PLAYER_ONE
    game_options: dict[str, Any] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self) -> None:
        if len(self.agents) != 2:
            raise ConfigurationError(
                f"A match needs exactly 2 agents, got {len(self.agents)}"
            )
        self.agents = tuple(self.agents)
        self.repetitions = _coerce(self.repetitions, int, "repetitions")
        if self.repetitions < 0:
            raise ConfigurationError(
                f"repetitions must be >= 0, got {self.repetitions}"
            )
        self.starting_player = _parse_start_policy(self.starting_player)


@dataclass
class BatchConfig:
    name: str = "batch"
    seed: int = 0
    workers: int = 1
    vary_seed: bool = False  # derive a fresh agent seed per repetition
    output_dir: Path | None = None
    secrets_file: Path | None = None  # default: $XDG_CONFIG_HOME/aiarena/secrets.yaml
    engine: EngineConfig = field(default_factory=EngineConfig)
    matches: list[MatchSpec] = field(default_factory=list)


# ----------------------------------------------------------------------
# YAML
# ----------------------------------------------------------------------

def load_config(path: Path) -> BatchConfig:
    """Load a batch config from a YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    b = raw.get("batch", {})
    e = raw.get("engine", {})

    engine = EngineConfig(
        max_attempts=e.get("max_attempts", 3),
        turn_timeout_s=e.get("turn_timeout_s", 30.0),
        max_output_tokens=e.get("max_output_tokens", 256),
    )

    agents = {}
    for name, a in raw.get("agents", {}).items():
        agents[name] = _agent_from_dict(a, default_name=name)

    matches = []
    for i, m in enumerate(raw.get("matches", []), start=1):
        players = m.get("players") or m.get("agents") or []
        resolved = []
        for p in players:
            if isinstance(p, str):
                if p not in agents:
                    raise ConfigurationError(
                        f"Match {i}: unknown agent {p!r}. Defined: {list(agents)}"
                    )
                resolved.append(agents[p])
            else:
                resolved.append(_agent_from_dict(p))
        if "game" not in m:
            raise ConfigurationError(f"Match {i}: missing 'game'")
        matches.append(
            MatchSpec(
                game=m["game"],
                agents=tuple(resolved),
                repetitions=m.get("repetitions", 1),
                starting_player=m.get("starting_player", "player_one"),
                game_options=m.get("options", {}),
                description=m.get("description", ""),
            )
        )

    output_dir = b.get("output_dir")
    secrets_file = b.get("secrets_file")
    return BatchConfig(
        name=b.get("name", Path(path).stem),
        seed=_coerce(b.get("seed", 0), int, "seed"),
        workers=_coerce(b.get("workers", 1), int, "workers"),
        vary_seed=b.get("vary_seed", False),
        output_dir=Path(output_dir) if output_dir else None,
        secrets_file=Path(secrets_file).expanduser() if secrets_file else None,
        engine=engine,
        matches=matches,
    )


def _agent_from_dict(a: dict, default_name: str | None = None) -> AgentConfig:
    if "kind" not in a:
        raise ConfigurationError(f"Agent {default_name or a!r}: missing 'kind'")
    return AgentConfig(
        kind=a["kind"],
        model=a.get("model"),
        temperature=_coerce(a.get("temperature", 0.7), float, "temperature"),
        seed=None if a.get("seed") is None else _coerce(a["seed"], int, "seed"),
        api_key_env=a.get("api_key_env"),
        base_url=a.get("base_url"),
        strategy=a.get("strategy"),
        secret_profile=a.get("secret_profile"),
        name=a.get("name", default_name),
        max_output_tokens=a.get("max_output_tokens"),
    )


def _parse_start_policy(value: StartPolicy | str) -> StartPolicy:
    if isinstance(value, StartPolicy):
        return value
    try:
        return StartPolicy(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown starting_player {value!r}. "
            f"Use one of {[p.value for p in StartPolicy]}"
        ) from None


# ----------------------------------------------------------------------
# CSV
# ----------------------------------------------------------------------

_CSV_AGENT_PREFIXES = ("agent_one", "agent_two")


def load_batch_csv(path: Path) -> list[MatchSpec]:
    """Load match specs from a CSV batch file, one spec per row.

    Required columns: game_name, agent_one_kind, agent_two_kind.
    Optional: agent_*_model (needed by LLM kinds), agent_*_temp (0.7),
    agent_*_seed (0), agent_*_api_key_env, agent_*_base_url,
    agent_*_strategy, agent_*_name, agent_*_secret_profile, repetitions (1),
    starting_player, description.
    Header names are case-insensitive.
    """
    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ConfigurationError(f"{path}: empty CSV file")
        specs = []
        # Row 1 is the header
        for row_num, record in enumerate(reader, start=2):
            row = {
                (k or "").strip().lower(): (v or "").strip()
                for k, v in record.items()
                if k is not None
            }
            try:
                specs.append(_spec_from_csv_row(row))
            except ConfigurationError as e:
                raise ConfigurationError(f"Error parsing row {row_num}: {e}") from e
    return specs


def _spec_from_csv_row(row: dict[str, str]) -> MatchSpec:
    def required(name: str) -> str:
        value = row.get(name, "")
        if not value:
            raise ConfigurationError(f"Missing required field: {name}")
        return value

    def number(name: str, cast, default):
        value = row.get(name, "")
        if not value:
            return default
        return _coerce(value, cast, name)

    agents = []
    for prefix in _CSV_AGENT_PREFIXES:
        agents.append(
            AgentConfig(
                kind=required(f"{prefix}_kind").lower(),
                model=row.get(f"{prefix}_model") or None,
                temperature=number(f"{prefix}_temp", float, 0.7),
                seed=number(f"{prefix}_seed", int, 0),
                api_key_env=row.get(f"{prefix}_api_key_env") or None,
                base_url=row.get(f"{prefix}_base_url") or None,
                strategy=row.get(f"{prefix}_strategy") or None,
                secret_profile=row.get(f"{prefix}_secret_profile") or None,
                name=row.get(f"{prefix}_name") or None,
            )
        )

    return MatchSpec(
        game=required("game_name"),
        agents=tuple(agents),
        repetitions=number("repetitions", int, 1),
        starting_player=row.get("starting_player") or StartPolicy.PLAYER_ONE,
        description=row.get("description", ""),
    )


def load_batch(path: Path) -> BatchConfig:
    """Load a YAML config, or wrap a CSV batch file in a default BatchConfig."""
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return BatchConfig(name=path.stem, matches=load_batch_csv(path))
    return load_config(path)
