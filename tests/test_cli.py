"""Tests for the command-line entry point and rich report rendering."""

import io
import json

import pytest
from rich.console import Console

from aiarena.__main__ import main
from aiarena.batch import BatchRunner
from aiarena.config import AgentConfig, BatchConfig, MatchSpec
from aiarena.display import build_turn_table, format_move, render_report

CSV_HEADER = "game_name,agent_one_kind,agent_one_name,agent_two_kind,agent_two_name,repetitions\n"


def _render(report) -> str:
    buf = io.StringIO()
    render_report(report, console=Console(file=buf, width=120))
    return buf.getvalue()


def _report(*games, repetitions=1):
    specs = [
        MatchSpec(
            game=game,
            agents=(
                AgentConfig(kind="random", seed=1, name="alice"),
                AgentConfig(kind="random", seed=2, name="bob"),
            ),
            repetitions=repetitions,
        )
        for game in games
    ]
    return BatchRunner(BatchConfig(name="render", matches=specs)).run()


class TestMain:
    def test_csv_batch_writes_results(self, tmp_path):
        batch = tmp_path / "batch.csv"
        batch.write_text(
            CSV_HEADER
            + "tictactoe,random,alice,random,bob,2\n"
            + "connectfour,mock,firsty,random,bob,1\n"
        )
        out = tmp_path / "out"

        assert main([str(batch), "-o", str(out), "-w", "2"]) == 0

        results = json.loads((out / "results.json").read_text())
        assert results["total"] == 3
        assert results["failed"] == 0
        assert len(list((out / "telemetry").glob("*.jsonl"))) == 3

    def test_failed_match_exit_code(self, tmp_path):
        batch = tmp_path / "batch.csv"
        batch.write_text(CSV_HEADER + "chess,random,a,random,b,1\n")
        assert main([str(batch), "-o", str(tmp_path / "out")]) == 2

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.yaml")]) == 1
        assert "config file not found" in capsys.readouterr().err

    def test_bad_config(self, tmp_path, capsys):
        batch = tmp_path / "batch.csv"
        batch.write_text(CSV_HEADER + "tictactoe,,a,random,b,1\n")
        assert main([str(batch)]) == 1
        assert "Error parsing row 2" in capsys.readouterr().err

    def test_yaml_config(self, tmp_path):
        config = tmp_path / "arena.yaml"
        config.write_text(
            "agents:\n"
            "  one: {kind: random, seed: 1}\n"
            "  two: {kind: mock, strategy: random}\n"
            "matches:\n"
            "  - game: rockpaperscissors\n"
            "    players: [one, two]\n"
            "    options: {rounds: 3}\n"
        )
        assert main([str(config)]) == 0

    def test_test_file_flag(self, tmp_path):
        batch = tmp_path / "batch.csv"
        batch.write_text(CSV_HEADER + "tictactoe,random,alice,random,bob,1\n")
        out = tmp_path / "out"
        assert main(["-f", str(batch), "-o", str(out)]) == 0
        assert json.loads((out / "results.json").read_text())["total"] == 1

    def test_yaml_with_bad_repetitions(self, tmp_path, capsys):
        config = tmp_path / "arena.yaml"
        config.write_text(
            "agents:\n"
            "  one: {kind: random}\n"
            "matches:\n"
            "  - game: tictactoe\n"
            "    players: [one, one]\n"
            "    repetitions: two\n"
        )
        assert main([str(config)]) == 1
        assert "Invalid repetitions" in capsys.readouterr().err

    def test_yaml_with_zero_attempts(self, tmp_path, capsys):
        config = tmp_path / "arena.yaml"
        config.write_text("engine:\n  max_attempts: 0\n")
        assert main([str(config)]) == 1
        assert "max_attempts" in capsys.readouterr().err

    def test_missing_secrets_file(self, tmp_path, capsys):
        batch = tmp_path / "batch.csv"
        batch.write_text(CSV_HEADER + "tictactoe,random,alice,random,bob,1\n")
        assert main([str(batch), "--secrets-file", str(tmp_path / "keys.yaml")]) == 1
        assert "Secrets file not found" in capsys.readouterr().err


class TestSingleMatchFlags:
    def test_flags_build_one_spec(self, tmp_path):
        out = tmp_path / "out"
        code = main([
            "-g", "tictactoe",
            "-r", "2",
            "--agent-one-kind", "random", "--agent-one-seed", "5",
            "--agent-two-kind", "mock", "--agent-two-strategy", "first_legal",
            "--agent-two-name", "firsty",
            "--starting-player", "alternate",
            "-o", str(out),
        ])
        assert code == 0

        results = json.loads((out / "results.json").read_text())
        assert results["total"] == 2
        assert results["failed"] == 0
        first = results["entries"][0]
        assert first["game"] == "tictactoe"
        assert first["agents"] == ["random:default", "firsty"]

    def test_secret_profile_flag_reaches_agent(self, tmp_path, capsys):
        out = tmp_path / "out"
        code = main([
            "-g", "tictactoe",
            "--agent-one-kind", "openai", "--agent-one-model", "gpt-4o",
            "--agent-one-secret-profile", "nope",
            "--agent-two-kind", "random",
            "-o", str(out),
        ])
        assert code == 2
        (entry,) = json.loads((out / "results.json").read_text())["entries"]
        assert "secret profile 'nope' not found" in entry["error"]

    def test_missing_agent_kind(self, capsys):
        assert main(["-g", "tictactoe", "--agent-one-kind", "random"]) == 1
        assert "--agent-two-kind is required" in capsys.readouterr().err

    def test_bad_repetitions_rejected(self, capsys):
        args = ["-g", "tictactoe", "--agent-one-kind", "random", "--agent-two-kind", "random"]
        assert main(args + ["-r", "-1"]) == 1
        assert "repetitions" in capsys.readouterr().err

    def test_needs_batch_file_or_game(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2

    def test_batch_file_and_game_conflict(self, tmp_path):
        batch = tmp_path / "batch.csv"
        batch.write_text(CSV_HEADER)
        with pytest.raises(SystemExit):
            main([str(batch), "-g", "tictactoe"])


class TestRender:
    def test_single_match_panel(self):
        text = _render(_report("tictactoe"))
        assert "Match result" in text
        assert "alice" in text and "bob" in text
        assert "Turns" in text
        assert "Standings" in text

    def test_batch_table(self):
        text = _render(_report("tictactoe", "connectfour"))
        assert "Batch: render" in text
        assert "connectfour" in text

    def test_failures_reported(self):
        text = _render(_report("tictactoe", "chess"))
        assert "ERROR" in text
        assert "1 of 2 matches failed" in text


class TestTurnTable:
    def _result(self, strategy="first_legal"):
        spec = MatchSpec(
            game="tictactoe",
            agents=(
                AgentConfig(kind="random", seed=1, name="alice"),
                AgentConfig(kind="mock", strategy=strategy, name="bob"),
            ),
        )
        (entry,) = BatchRunner(BatchConfig(name="turns", matches=[spec])).run()
        return entry.result

    def _print(self, renderable) -> str:
        buf = io.StringIO()
        Console(file=buf, width=200).print(renderable)
        return buf.getvalue()

    def test_one_row_per_attempt(self):
        result = self._result()
        table = build_turn_table(result)
        assert table.row_count == sum(len(t.attempts) for t in result.turns)
        assert [c.header for c in table.columns] == [
            "Turn", "Player", "Try", "Move", "Time (ms)", "Valid", "Error",
        ]

    def test_valid_moves_show_submitted_json(self):
        result = self._result()
        text = self._print(build_turn_table(result))
        assert "✓" in text
        assert format_move(result.turns[0].attempts[0].raw) in text

    def test_invalid_attempts_show_reason_and_forfeit(self):
        result = self._result("garbage")
        text = self._print(build_turn_table(result))
        assert "✗ malformed" in text
        assert "THIS IS NOT JSON" in text
        assert "No JSON object found" in text
        assert "forfeit" in text

    def test_format_move(self):
        assert format_move(None) == "-"
        assert format_move({"row": 1, "col": 2}) == '{"col":2,"row":1}'
        assert format_move("line one\n  line two") == "line one line two"
