"""Anthropic API adapter for Claude models.

System messages are lifted out of the message list into the ``system``
parameter. Extended thinking blocks become reasoning_text; the last text
block becomes raw_text.
"""

import time
from typing import Any

from aiarena.core.adapter import AdapterError, AdapterResponse, ModelAdapter

try:
    from anthropic import Anthropic
    import anthropic as _anthropic_module
except ImportError:
    Anthropic = None
    _anthropic_module = None

_RATE_LIMIT_BACKOFF_S = 5.0


class AnthropicAdapter(ModelAdapter):
    """Adapter for the Anthropic Messages API."""

    def __init__(
        self,
        model_id: str,
        api_key: str,
        temperature: float = 0.7,
    ):
        if Anthropic is None:
            raise ImportError("anthropic package required: pip install anthropic")
        self.model_id = model_id
        self._temperature = temperature
        self._client = Anthropic(api_key=api_key, max_retries=0)

    def query(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        timeout_s: float,
        context: dict[str, Any] | None = None,
    ) -> AdapterResponse:
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        chat = [m for m in messages if m["role"] != "system"]

        start = time.monotonic()
        msg = self._call_api(system, chat, max_tokens, timeout_s)
        elapsed_ms = (time.monotonic() - start) * 1000

        raw_text = ""
        reasoning_text = None
        for block in msg.content:
            if block.type == "thinking":
                reasoning_text = block.thinking
            elif block.type == "text":
                raw_text = block.text

        return AdapterResponse(
            raw_text=raw_text,
            reasoning_text=reasoning_text,
            input_tokens=msg.usage.input_tokens,
            output_tokens=msg.usage.output_tokens,
            latency_ms=elapsed_ms,
            model_id=self.model_id,
            model_version=msg.model,
        )

    def _call_api(self, system, messages, max_tokens, timeout_s):
        """Call the API with one rate-limit retry."""
        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": self._temperature,
            "timeout": timeout_s,
        }
        if system:
            kwargs["system"] = system

        deadline = time.monotonic() + timeout_s
        for attempt in range(2):
            try:
                return self._client.messages.create(**kwargs)
            except _anthropic_module.APITimeoutError as e:
                raise AdapterError("timeout", self.model_id, str(e)) from e
            except _anthropic_module.RateLimitError as e:
                remaining = deadline - time.monotonic() - _RATE_LIMIT_BACKOFF_S
                if attempt == 0 and remaining > 0:
                    time.sleep(_RATE_LIMIT_BACKOFF_S)
                    kwargs["timeout"] = remaining
                    continue
                raise AdapterError("rate_limit", self.model_id, str(e)) from e
            except _anthropic_module.APIError as e:
                raise AdapterError("api_error", self.model_id, str(e)) from e
            except Exception as e:
                raise AdapterError("api_error", self.model_id, str(e)) from e
        raise AdapterError("api_error", self.model_id, "max retries exceeded")
