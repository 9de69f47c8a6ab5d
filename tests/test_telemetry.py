"""Tests for TelemetryLogger — JSONL match logging."""

import json

import pytest

import aiarena
from aiarena.core.telemetry import TelemetryEntry, TelemetryLogger, read_match_log


@pytest.fixture
def logger(tmp_path):
    return TelemetryLogger(output_dir=tmp_path, match_id="tictactoe-0001abcd")


def _make_entry(turn_index=1, forfeited=False):
    return TelemetryEntry(
        turn_index=turn_index,
        player_id="player_one",
        player_name="gpt",
        move=None if forfeited else {"row": 1, "col": 1},
        forfeited=forfeited,
        attempts=[{"number": 1, "outcome": "valid", "latency_ms": 12.0}],
        state_before={"moves_made": 0},
        state_after={"moves_made": 1},
    )


class TestTelemetryLogger:
    def test_log_turn_creates_file(self, logger, tmp_path):
        logger.log_turn(_make_entry())
        assert (tmp_path / "tictactoe-0001abcd.jsonl").exists()
        assert logger.file_path == tmp_path / "tictactoe-0001abcd.jsonl"

    def test_creates_missing_output_dir(self, tmp_path):
        TelemetryLogger(tmp_path / "a" / "b", "m")
        assert (tmp_path / "a" / "b").is_dir()

    def test_log_turn_writes_valid_jsonl(self, logger):
        logger.log_turn(_make_entry(1))
        logger.log_turn(_make_entry(2))
        lines = logger.file_path.read_text().strip().split("\n")
        assert len(lines) == 2
        for line in lines:
            parsed = json.loads(line)
            assert "turn_index" in parsed
            assert "schema_version" in parsed

    def test_log_turn_contains_all_fields(self, logger):
        logger.log_turn(_make_entry())
        parsed = json.loads(logger.file_path.read_text().strip())
        required_fields = [
            "schema_version", "match_id", "turn_index", "player_id",
            "player_name", "move", "forfeited", "attempts",
            "state_before", "state_after", "timestamp", "engine_version",
        ]
        for field in required_fields:
            assert field in parsed, f"Missing field: {field}"
        assert parsed["match_id"] == "tictactoe-0001abcd"
        assert parsed["engine_version"] == aiarena.__version__

    def test_finalize_match_appends_summary(self, logger):
        logger.log_turn(_make_entry())
        logger.finalize_match({"outcome": {"kind": "win", "winner": "player_one"}})
        lines = logger.file_path.read_text().strip().split("\n")
        assert len(lines) == 2
        summary = json.loads(lines[-1])
        assert summary["record_type"] == "match_summary"
        assert summary["match_id"] == "tictactoe-0001abcd"
        assert summary["outcome"]["winner"] == "player_one"

    def test_non_json_values_stringified(self, logger):
        entry = _make_entry()
        entry.attempts = [{"raw": object()}]
        logger.log_turn(entry)
        parsed = json.loads(logger.file_path.read_text())
        assert isinstance(parsed["attempts"][0]["raw"], str)


class TestReadMatchLog:
    def test_splits_turns_and_summary(self, logger):
        logger.log_turn(_make_entry(1))
        logger.log_turn(_make_entry(2, forfeited=True))
        logger.finalize_match({"total_turns": 1})

        turns, summary = read_match_log(logger.file_path)
        assert [t["turn_index"] for t in turns] == [1, 2]
        assert turns[1]["forfeited"] is True
        assert summary["total_turns"] == 1

    def test_no_summary(self, logger):
        logger.log_turn(_make_entry(1))
        turns, summary = read_match_log(logger.file_path)
        assert len(turns) == 1
        assert summary is None
