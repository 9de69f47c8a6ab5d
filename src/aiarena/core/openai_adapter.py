"""OpenAI-compatible adapter.

Works with the OpenAI API and any OpenAI-compatible endpoint (Ollama,
vLLM, local gateways) via base_url override. Requests JSON mode so the
model answers with a bare JSON object.
"""

import time
from typing import Any

from aiarena.core.adapter import AdapterError, AdapterResponse, ModelAdapter

try:
    from openai import OpenAI
    import openai as _openai_module
except ImportError:
    OpenAI = None
    _openai_module = None

_RATE_LIMIT_BACKOFF_S = 5.0

# Reasoning models reject temperature and use max_completion_tokens
_REASONING_PREFIXES = ("gpt-5", "o1", "o3", "o4")


class OpenAIAdapter(ModelAdapter):
    """Adapter for OpenAI-compatible chat completions."""

    def __init__(
        self,
        model_id: str,
        api_key: str,
        base_url: str | None = None,
        temperature: float = 0.7,
        seed: int | None = None,
        json_mode: bool = True,
    ):
        if OpenAI is None:
            raise ImportError("openai package required: pip install openai")
        self.model_id = model_id
        self._temperature = temperature
        self._seed = seed
        self._json_mode = json_mode

        client_kwargs: dict[str, Any] = {"api_key": api_key, "max_retries": 0}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = OpenAI(**client_kwargs)

    def query(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        timeout_s: float,
        context: dict[str, Any] | None = None,
    ) -> AdapterResponse:
        start = time.monotonic()
        completion = self._call_api(messages, max_tokens, timeout_s)
        elapsed_ms = (time.monotonic() - start) * 1000

        if not completion.choices:
            raise AdapterError(
                "empty_response", self.model_id,
                "API returned no choices",
            )

        choice = completion.choices[0]
        raw_text = choice.message.content or ""
        reasoning_text = getattr(choice.message, "reasoning_content", None)

        usage = completion.usage
        return AdapterResponse(
            raw_text=raw_text,
            reasoning_text=reasoning_text,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            latency_ms=elapsed_ms,
            model_id=self.model_id,
            model_version=completion.model or self.model_id,
        )

    def _call_api(self, messages, max_tokens, timeout_s):
        """Call the API with one rate-limit retry."""
        reasoning_model = self.model_id.startswith(_REASONING_PREFIXES)
        token_param = "max_completion_tokens" if reasoning_model else "max_tokens"
        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "messages": messages,
            token_param: max_tokens,
            "timeout": timeout_s,
        }
        if not reasoning_model:
            kwargs["temperature"] = self._temperature
        if self._seed is not None:
            kwargs["seed"] = self._seed
        if self._json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        deadline = time.monotonic() + timeout_s
        for attempt in range(2):
            try:
                return self._client.chat.completions.create(**kwargs)
            except _openai_module.APITimeoutError as e:
                raise AdapterError("timeout", self.model_id, str(e)) from e
            except _openai_module.RateLimitError as e:
                remaining = deadline - time.monotonic() - _RATE_LIMIT_BACKOFF_S
                if attempt == 0 and remaining > 0:
                    time.sleep(_RATE_LIMIT_BACKOFF_S)
                    kwargs["timeout"] = remaining
                    continue
                raise AdapterError("rate_limit", self.model_id, str(e)) from e
            except _openai_module.APIError as e:
                raise AdapterError("api_error", self.model_id, str(e)) from e
            except Exception as e:
                raise AdapterError("api_error", self.model_id, str(e)) from e
        raise AdapterError("api_error", self.model_id, "max retries exceeded")
