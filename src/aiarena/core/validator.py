"""Move validation — classify an agent's answer against the legal move set.

Pure: no game state, no side effects. The engine hands in the legal set
and the game's decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Hashable


class InvalidReason(Enum):
    NOT_LEGAL = "not_legal"
    MALFORMED = "malformed"
    EMPTY_RESPONSE = "empty_response"


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a candidate move."""

    legal: bool
    move: Hashable | None = None
    reason: InvalidReason | None = None
    detail: str | None = None


def _is_empty(candidate: Any) -> bool:
    if candidate is None:
        return True
    if isinstance(candidate, str):
        return not candidate.strip()
    if isinstance(candidate, (dict, list, tuple)):
        return len(candidate) == 0
    return False


def validate(
    legal_moves: frozenset | set,
    candidate: Any,
    decode: Callable[[Any], Hashable] | None = None,
) -> ValidationResult:
    """Check candidate against legal_moves.

    Order of checks: empty answer, undecodable answer, move outside the
    legal set.
    """
    if _is_empty(candidate):
        return ValidationResult(
            legal=False,
            reason=InvalidReason.EMPTY_RESPONSE,
            detail="Agent returned an empty response",
        )

    move = candidate
    if decode is not None:
        try:
            move = decode(candidate)
        except (ValueError, TypeError, KeyError) as e:
            return ValidationResult(
                legal=False,
                reason=InvalidReason.MALFORMED,
                detail=str(e) or f"Could not decode {candidate!r}",
            )

    try:
        in_set = move in legal_moves
    except TypeError:
        return ValidationResult(
            legal=False,
            reason=InvalidReason.MALFORMED,
            detail=f"Unhashable candidate {candidate!r}",
        )
    if not in_set:
        return ValidationResult(
            legal=False,
            move=move,
            reason=InvalidReason.NOT_LEGAL,
            detail=f"{move!r} is not a legal move",
        )

    return ValidationResult(legal=True, move=move)
