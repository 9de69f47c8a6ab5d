"""Ollama adapter -- thin subclass of OpenAIAdapter.

Ollama serves an OpenAI-compatible API under /v1. No real key is needed,
but the SDK insists on a non-empty one.
"""

from aiarena.core.openai_adapter import OpenAIAdapter

OLLAMA_DEFAULT_BASE_URL = "http://localhost:11434/v1"


class OllamaAdapter(OpenAIAdapter):
    """Adapter for a local or remote Ollama server."""

    def __init__(
        self,
        model_id: str,
        base_url: str | None = None,
        temperature: float = 0.7,
        seed: int | None = None,
        api_key: str | None = None,
    ):
        url = (base_url or OLLAMA_DEFAULT_BASE_URL).rstrip("/")
        if not url.endswith("/v1"):
            url += "/v1"
        super().__init__(
            model_id=model_id,
            api_key=api_key or "ollama",
            base_url=url,
            temperature=temperature,
            seed=seed,
        )
