"""ModelAdapter — uniform interface to chat-completion backends.

A backend turns a list of chat messages into an AdapterResponse within
``timeout_s`` seconds, or raises AdapterError. Raw SDK exceptions never
leave an adapter.

Backends: MockAdapter (below, offline), OpenAIAdapter, OllamaAdapter,
AnthropicAdapter (one module each).
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

Messages = list[dict[str, str]]
Strategy = Callable[[Messages, dict[str, Any]], str]

# Rough ratio for backends without a tokenizer
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    if not text:
        return 0
    return max(1, len(text) // CHARS_PER_TOKEN)


class AdapterError(Exception):
    """A backend call failed.

    ``error_type`` is one of "timeout", "rate_limit", "api_error" or
    "empty_response". LLMAgent reports "timeout" as a timed-out attempt
    and everything else as an agent error.
    """

    def __init__(self, error_type: str, model_id: str, details: str = ""):
        self.error_type = error_type
        self.model_id = model_id
        self.details = details
        super().__init__(f"{error_type} from {model_id}: {details}")


@dataclass(frozen=True)
class AdapterResponse:
    raw_text: str
    reasoning_text: str | None
    input_tokens: int
    output_tokens: int
    latency_ms: float
    model_id: str
    model_version: str


class ModelAdapter(ABC):
    """Abstract base for all model adapters.

    Implementations pass ``timeout_s`` down to the HTTP request, so a call
    the engine has given up on releases its connection at the same time.
    """

    model_id: str = ""

    @abstractmethod
    def query(
        self,
        messages: Messages,
        max_tokens: int,
        timeout_s: float,
        context: dict[str, Any] | None = None,
    ) -> AdapterResponse:
        """Send messages to the model and return its response."""


class MockAdapter(ModelAdapter):
    """Offline backend driven by a strategy callable.

    The strategy gets (messages, context) and returns the model's text;
    LLMAgent puts the seed, turn index, attempt and encoded legal moves in
    the context. ``latency_s`` simulates a slow model: if it reaches the
    call's timeout the adapter waits out the timeout and raises a
    "timeout" AdapterError, like a real HTTP client would.
    """

    def __init__(
        self,
        model_id: str,
        strategy: Strategy,
        latency_s: float = 0.0,
    ):
        self.model_id = model_id
        self._strategy = strategy
        self.latency_s = latency_s

    def query(
        self,
        messages: Messages,
        max_tokens: int,
        timeout_s: float,
        context: dict[str, Any] | None = None,
    ) -> AdapterResponse:
        start = time.monotonic()
        if self.latency_s >= timeout_s > 0:
            time.sleep(timeout_s)
            raise AdapterError(
                "timeout", self.model_id, f"no response within {timeout_s:.2f}s"
            )
        if self.latency_s:
            time.sleep(self.latency_s)

        # Token cap by character approximation
        raw = self._strategy(messages, context or {})[: max_tokens * CHARS_PER_TOKEN]

        return AdapterResponse(
            raw_text=raw,
            reasoning_text=None,
            input_tokens=sum(estimate_tokens(m.get("content", "")) for m in messages),
            output_tokens=estimate_tokens(raw),
            latency_ms=(time.monotonic() - start) * 1000,
            model_id=self.model_id,
            model_version=self.model_id,
        )
