"""Mock agent strategies for offline runs and tests.

Each strategy matches the MockAdapter signature:
    (messages: list[dict], context: dict) -> str

The context carries the encoded legal moves, so strategies work for any
game without parsing the prompt.

Strategies:
- first_legal_strategy: Always plays the first legal move.
- random_strategy: Seeded random legal move.
- garbage_strategy: Returns non-JSON garbage (adversarial testing).
- silent_strategy: Returns an empty answer.
- illegal_strategy: Well-formed grid move that is never on the board.
"""

from __future__ import annotations

import json
import random
from typing import Any


def first_legal_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    legal = context.get("legal_moves") or []
    if not legal:
        return "{}"
    return json.dumps(legal[0])


def random_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """Pick a legal move at random.

    Seeded from context seed, turn index and attempt number so that
    replaying a match with the same seed reproduces every answer.
    """
    legal = context.get("legal_moves") or []
    if not legal:
        return "{}"
    rng = random.Random(
        f"{context.get('seed')}:{context.get('turn_index')}:{context.get('attempt')}"
    )
    return json.dumps(rng.choice(legal))


def garbage_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """Return non-JSON garbage text for adversarial testing."""
    return "THIS IS NOT JSON AT ALL !!!"


def silent_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    return ""


def illegal_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """Off-board coordinates. Fails schema validation for non-grid games."""
    return json.dumps({"row": -1, "col": -1, "column": -1})


STRATEGY_REGISTRY = {
    "first_legal": first_legal_strategy,
    "random": random_strategy,
    "garbage": garbage_strategy,
    "silent": silent_strategy,
    "illegal": illegal_strategy,
}
