"""CLI entry point.

    python -m aiarena <config.yaml | batch.csv>
    python -m aiarena -f batch.csv
    python -m aiarena -g tictactoe --agent-one-kind random --agent-two-kind mock
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from aiarena.batch import BatchRunner
from aiarena.config import (
    AgentConfig,
    BatchConfig,
    ConfigurationError,
    MatchSpec,
    StartPolicy,
    load_batch,
)
from aiarena.display import render_report

_SEATS = ("one", "two")


def _add_agent_flags(group, seat: str) -> None:
    flag = f"--agent-{seat}"
    group.add_argument(
        f"{flag}-kind",
        help=f"Agent {seat}: openai, anthropic, ollama, mock or random",
    )
    group.add_argument(f"{flag}-model", help=f"Agent {seat}: model name for LLM kinds")
    group.add_argument(
        f"{flag}-temp", type=float, default=0.7,
        help="Sampling temperature (default: 0.7)",
    )
    group.add_argument(f"{flag}-seed", type=int, default=0, help="Agent seed (default: 0)")
    group.add_argument(f"{flag}-secret-profile", help="Named profile in the secrets file")
    group.add_argument(f"{flag}-strategy", help="Strategy for the mock kind")
    group.add_argument(f"{flag}-name", help="Display name")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aiarena",
        description="Head-to-head turn-based matches between LLM agents",
    )
    parser.add_argument(
        "config",
        type=Path,
        nargs="?",
        help="Path to a batch YAML config or CSV batch file",
    )
    parser.add_argument(
        "-f", "--test-file",
        type=Path,
        default=None,
        help="Path to a CSV batch file (same as passing it positionally)",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output directory for telemetry and results.json",
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=None,
        help="Matches to run in parallel (overrides config)",
    )
    parser.add_argument(
        "--secrets-file",
        type=Path,
        default=None,
        help="YAML file of named API credentials "
             "(default: $XDG_CONFIG_HOME/aiarena/secrets.yaml)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load API keys from this .env file (default: ./.env)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )

    single = parser.add_argument_group(
        "single match", "Describe one match with flags instead of a batch file"
    )
    single.add_argument("-g", "--game-name", help="Game to play, e.g. tictactoe")
    single.add_argument(
        "-r", "--repetitions", type=int, default=1,
        help="Times to play the match (default: 1)",
    )
    single.add_argument(
        "--starting-player",
        default=StartPolicy.PLAYER_ONE.value,
        choices=[p.value for p in StartPolicy],
        help="Which seat moves first (default: player_one)",
    )
    for seat in _SEATS:
        _add_agent_flags(single, seat)
    return parser


def config_from_flags(args: argparse.Namespace) -> BatchConfig:
    """One-spec batch built from the single-match flags."""
    agents = []
    for seat in _SEATS:
        kind = getattr(args, f"agent_{seat}_kind")
        if not kind:
            raise ConfigurationError(f"--agent-{seat}-kind is required with --game-name")
        agents.append(
            AgentConfig(
                kind=kind.lower(),
                model=getattr(args, f"agent_{seat}_model"),
                temperature=getattr(args, f"agent_{seat}_temp"),
                seed=getattr(args, f"agent_{seat}_seed"),
                secret_profile=getattr(args, f"agent_{seat}_secret_profile"),
                strategy=getattr(args, f"agent_{seat}_strategy"),
                name=getattr(args, f"agent_{seat}_name"),
            )
        )
    spec = MatchSpec(
        game=args.game_name,
        agents=tuple(agents),
        repetitions=args.repetitions,
        starting_player=args.starting_player,
    )
    return BatchConfig(name=f"{args.game_name} (command line)", matches=[spec])


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(args.env_file)

    batch_path = args.test_file or args.config
    if args.test_file and args.config:
        parser.error("give the batch file either positionally or with -f, not both")
    if batch_path and args.game_name:
        parser.error("--game-name describes a single match; drop the batch file")
    if not batch_path and not args.game_name:
        parser.error("give a batch file or --game-name with agent flags")

    if batch_path and not batch_path.exists():
        print(f"Error: config file not found: {batch_path}", file=sys.stderr)
        return 1

    try:
        config = load_batch(batch_path) if batch_path else config_from_flags(args)
        if args.output:
            config.output_dir = args.output
        if args.workers is not None:
            config.workers = args.workers
        if args.secrets_file:
            config.secrets_file = args.secrets_file
        runner = BatchRunner(config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report = runner.run()
    render_report(report)

    if config.output_dir:
        results_path = Path(config.output_dir) / "results.json"
        results_path.parent.mkdir(parents=True, exist_ok=True)
        results_path.write_text(json.dumps(report.to_dict(), indent=2))
        print(f"Results:   {results_path}")
        print(f"Telemetry: {Path(config.output_dir) / 'telemetry'}")

    return 0 if not report.failed else 2


if __name__ == "__main__":
    sys.exit(main())
