"""Tests for ActionParser — JSON extraction and schema validation."""

import pytest

from aiarena.core.parser import ActionParser, iter_json_objects
from aiarena.games.rockpaperscissors.engine import RockPaperScissorsGame
from aiarena.games.tictactoe.engine import TicTacToeGame


@pytest.fixture
def cell_schema():
    return TicTacToeGame().move_schema


@pytest.fixture
def choice_schema():
    return RockPaperScissorsGame().move_schema


@pytest.fixture
def parser():
    return ActionParser()


class TestActionParser:
    def test_clean_json(self, parser, cell_schema):
        result = parser.parse('{"row": 1, "col": 2}', cell_schema)
        assert result.success is True
        assert result.action == {"row": 1, "col": 2}

    def test_json_embedded_in_prose(self, parser, cell_schema):
        raw = 'The center is open. {"row": 1, "col": 1} That is my move.'
        result = parser.parse(raw, cell_schema)
        assert result.success is True
        assert result.action == {"row": 1, "col": 1}

    def test_missing_required_field_fails(self, parser, cell_schema):
        result = parser.parse('{"row": 1}', cell_schema)
        assert result.success is False
        assert "Schema validation" in result.error

    def test_wrong_type_fails(self, parser, cell_schema):
        result = parser.parse('{"row": "one", "col": 2}', cell_schema)
        assert result.success is False

    def test_invalid_enum(self, parser, choice_schema):
        result = parser.parse('{"choice": "lizard"}', choice_schema)
        assert result.success is False

    def test_malformed_json(self, parser, cell_schema):
        result = parser.parse('{"row": one}', cell_schema)
        assert result.success is False
        assert result.error is not None

    def test_empty_string(self, parser, cell_schema):
        result = parser.parse("", cell_schema)
        assert result.success is False
        assert result.error == "No JSON object found in output"

    def test_no_json_in_text(self, parser, cell_schema):
        result = parser.parse("I take the middle square", cell_schema)
        assert result.success is False

    def test_multiple_json_takes_last_valid(self, parser, choice_schema):
        """Last-wins: model self-correction mid-output uses final JSON."""
        raw = '{"choice": "rock"} {"choice": "paper"}'
        result = parser.parse(raw, choice_schema)
        assert result.success is True
        assert result.action["choice"] == "paper"

    def test_self_correction_pattern(self, parser, cell_schema):
        raw = (
            '{"row": 0, "col": 0}\n\n'
            "Wait, let me reconsider. The opponent threatens the diagonal.\n\n"
            '{"row": 2, "col": 2}'
        )
        result = parser.parse(raw, cell_schema)
        assert result.success is True
        assert result.action == {"row": 2, "col": 2}

    def test_invalid_last_falls_back_to_earlier_valid(self, parser, choice_schema):
        raw = '{"choice": "rock"} {"choice": "spock"}'
        result = parser.parse(raw, choice_schema)
        assert result.success is True
        assert result.action["choice"] == "rock"

    def test_no_schema_accepts_any_object(self, parser):
        result = parser.parse('{"anything": [1, 2]}')
        assert result.success is True
        assert result.action == {"anything": [1, 2]}

    def test_result_has_raw_json(self, parser, choice_schema):
        result = parser.parse('{"choice": "scissors"}', choice_schema)
        assert result.raw_json == '{"choice": "scissors"}'

    def test_nested_object(self, parser):
        result = parser.parse('{"move": {"row": 0, "col": 1}}')
        assert result.success is True
        assert result.action["move"] == {"row": 0, "col": 1}

    def test_braces_inside_strings(self, parser, cell_schema):
        raw = '{"note": "I like {corners}", "row": 0, "col": 2}'
        result = parser.parse(raw, cell_schema)
        assert result.success is True
        assert result.action["col"] == 2

    def test_deeply_nested_object(self, parser):
        result = parser.parse('{"a": {"b": {"c": {"row": 1}}}}')
        assert result.success is True
        assert result.action["a"]["b"]["c"] == {"row": 1}

    def test_valid_object_inside_broken_one(self, parser, cell_schema):
        raw = 'Answer: {"move": {"row": 2, "col": 0} oops'
        result = parser.parse(raw, cell_schema)
        assert result.success is True
        assert result.action == {"row": 2, "col": 0}

    def test_parse_error_reported(self, parser, cell_schema):
        result = parser.parse('{"row": one}', cell_schema)
        assert result.error.startswith("JSON parse error")

    def test_failed_result_keeps_last_json(self, parser, choice_schema):
        result = parser.parse('{"choice": "lizard"}', choice_schema)
        assert result.raw_json == '{"choice": "lizard"}'


class TestIterJsonObjects:
    def test_yields_each_top_level_object(self):
        found = [source for _, source, _ in iter_json_objects('x {"a": 1} y {"b": {"c": 2}}')]
        assert found == ['{"a": 1}', '{"b": {"c": 2}}']

    def test_error_entries_for_broken_objects(self):
        entries = list(iter_json_objects("{nope}"))
        assert len(entries) == 1
        value, _, error = entries[0]
        assert value is None
        assert "JSON parse error" in error
