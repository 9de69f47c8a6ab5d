"""Rich rendering of match results and batch reports for the CLI."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from aiarena.batch import BatchReport
from aiarena.engine import MatchResult, OutcomeKind
from aiarena.games.base import PlayerSlot

PLAYER_COLORS = {
    PlayerSlot.PLAYER_ONE: "cyan",
    PlayerSlot.PLAYER_TWO: "magenta",
}
MOVE_WIDTH = 30
ERROR_WIDTH = 40


def outcome_text(result: MatchResult) -> Text:
    """One-line description of how a match ended."""
    outcome = result.outcome
    text = Text()
    if outcome.kind is OutcomeKind.DRAW:
        text.append("DRAW", style="bold yellow")
        return text
    winner = outcome.winner
    text.append(result.player_names[winner], style=f"bold {PLAYER_COLORS[winner]}")
    text.append(" WINS", style="bold green")
    if outcome.kind is OutcomeKind.FORFEIT:
        text.append(
            f" ({result.player_names[outcome.player]} forfeited)", style="dim"
        )
    return text


def build_match_table(result: MatchResult) -> Table:
    """Per-player stats for one match."""
    table = Table(title=f"{result.game} {result.match_id}", expand=False)
    table.add_column("Player")
    table.add_column("Turns", justify="right")
    table.add_column("Invalid", justify="right")
    table.add_column("Timeouts", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Avg latency", justify="right")
    for slot in PlayerSlot:
        s = result.stats[slot]
        table.add_row(
            Text(result.player_names[slot], style=PLAYER_COLORS[slot]),
            str(s.turns_taken),
            str(s.invalid_attempts),
            str(s.timeouts),
            str(s.agent_errors),
            f"{s.average_latency_ms:.0f} ms",
        )
    return table


def _clip(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def format_move(raw: Any) -> str:
    """Compact text for what an agent submitted."""
    if raw is None:
        return "-"
    if isinstance(raw, str):
        return " ".join(raw.split())
    try:
        return json.dumps(raw, separators=(",", ":"), sort_keys=True, default=str)
    except (TypeError, ValueError):
        return repr(raw)


def build_turn_table(result: MatchResult) -> Table:
    """One row per attempt: the submitted move, its latency and the verdict."""
    table = Table(title="Turns", expand=False)
    table.add_column("Turn", justify="right")
    table.add_column("Player")
    table.add_column("Try", justify="right")
    table.add_column("Move")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Valid")
    table.add_column("Error")
    for turn in result.turns:
        player = Text(result.player_names[turn.player], style=PLAYER_COLORS[turn.player])
        for i, attempt in enumerate(turn.attempts):
            if attempt.ok:
                verdict = Text("✓", style="green")
            else:
                label = attempt.reason.value if attempt.reason else attempt.outcome.value
                verdict = Text(f"✗ {label}", style="red")
            table.add_row(
                str(turn.turn_index) if i == 0 else "",
                player if i == 0 else "",
                str(attempt.number),
                Text(_clip(format_move(attempt.raw), MOVE_WIDTH)),
                f"{attempt.latency_ms:.0f}",
                verdict,
                Text(_clip(attempt.detail or "", ERROR_WIDTH), style="dim"),
            )
        if turn.forfeited:
            table.add_row("", "", "", Text("forfeit", style="bold red"), "", "", "")
    return table


def build_match_panel(result: MatchResult) -> Panel:
    body = Group(
        outcome_text(result),
        Text(f"{result.total_turns} turns in {result.duration_ms / 1000:.1f}s", style="dim"),
        build_match_table(result),
        build_turn_table(result),
    )
    return Panel(body, title="[bold]Match result[/bold]", border_style="green")


def build_batch_table(report: BatchReport) -> Table:
    """One row per repetition in report order."""
    table = Table(title=f"Batch: {report.name}")
    table.add_column("#", justify="right")
    table.add_column("Game")
    table.add_column("Players")
    table.add_column("Result")
    table.add_column("Turns", justify="right")
    for i, entry in enumerate(report, 1):
        players = " vs ".join(a.display_name for a in entry.spec.agents)
        if entry.result is None:
            table.add_row(
                str(i), entry.spec.game, players,
                Text(f"ERROR: {entry.error}", style="red"), "-",
            )
            continue
        table.add_row(
            str(i), entry.result.game, players,
            outcome_text(entry.result), str(entry.result.total_turns),
        )
    return table


def build_standings_table(report: BatchReport) -> Table:
    table = Table(title="Standings")
    table.add_column("Rank", justify="right")
    table.add_column("Agent")
    table.add_column("Score", justify="right")
    for rank, (name, score) in enumerate(report.standings().items(), 1):
        table.add_row(str(rank), name, f"{score:g}")
    return table


def render_report(report: BatchReport, console: Console | None = None) -> None:
    console = console or Console()
    if len(report) == 1 and report.entries[0].result is not None:
        console.print(build_match_panel(report.entries[0].result))
    else:
        console.print(build_batch_table(report))
    if report.completed:
        console.print(build_standings_table(report))
    if report.failed:
        console.print(
            f"[bold red]{len(report.failed)} of {len(report)} matches failed[/bold red]"
        )
