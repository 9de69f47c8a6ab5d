"""ActionParser — extract and validate a JSON move from raw model output.

Scans the text for JSON objects with ``json.JSONDecoder.raw_decode``
(so nesting depth and braces inside strings don't matter) and validates
each one against the game's move schema.

Last-wins: a model that self-corrects mid-output ("Wait, let me
reconsider...") gets its final answer used, not its first draft.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterator

import jsonschema

_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class ParseResult:
    success: bool
    action: dict | None
    raw_json: str | None
    error: str | None


def iter_json_objects(text: str) -> Iterator[tuple[dict | None, str, str | None]]:
    """Yield (object, source, error) for every '{' that starts a JSON value.

    A decoded object is skipped over as a whole; on a decode error the scan
    resumes at the next '{', so a valid object nested inside a broken one
    is still found.
    """
    pos = text.find("{")
    while pos != -1:
        try:
            value, end = _DECODER.raw_decode(text, pos)
        except json.JSONDecodeError as e:
            yield None, text[pos:pos + 40], f"JSON parse error: {e.msg} at char {e.pos}"
            pos = text.find("{", pos + 1)
            continue
        yield value, text[pos:end], None
        pos = text.find("{", end)


class ActionParser:
    """Pick the last schema-valid JSON object out of model text."""

    def parse(self, raw_text: str, schema: dict | None = None) -> ParseResult:
        best: tuple[dict, str] | None = None
        last_source = None
        last_error = None

        for value, source, error in iter_json_objects(raw_text):
            if error is not None:
                last_error = error
                continue
            last_source = source
            if schema is not None:
                try:
                    jsonschema.validate(value, schema)
                except jsonschema.ValidationError as e:
                    last_error = f"Schema validation: {e.message}"
                    continue
            best = (value, source)

        if best is not None:
            return ParseResult(success=True, action=best[0], raw_json=best[1], error=None)

        return ParseResult(
            success=False,
            action=None,
            raw_json=last_source,
            error=last_error or "No JSON object found in output",
        )
