"""Tests for AnthropicAdapter -- uses mocked SDK, no live API calls."""

from unittest.mock import MagicMock, patch

import pytest

from aiarena.core.adapter import AdapterError, AdapterResponse
from aiarena.core.anthropic_adapter import AnthropicAdapter


def _mock_message(
    text="",
    model="claude-sonnet-4-20250514",
    input_tokens=10,
    output_tokens=5,
    thinking_text=None,
):
    """Build a mock Anthropic Message response."""
    content_blocks = []
    if thinking_text:
        thinking_block = MagicMock()
        thinking_block.type = "thinking"
        thinking_block.thinking = thinking_text
        content_blocks.append(thinking_block)

    text_block = MagicMock()
    text_block.type = "text"
    text_block.text = text
    content_blocks.append(text_block)

    usage = MagicMock()
    usage.input_tokens = input_tokens
    usage.output_tokens = output_tokens

    msg = MagicMock()
    msg.content = content_blocks
    msg.model = model
    msg.usage = usage
    return msg


class TestAnthropicAdapterSuccess:
    @patch("aiarena.core.anthropic_adapter.Anthropic")
    def test_basic_query(self, MockAnthropic):
        client = MockAnthropic.return_value
        client.messages.create.return_value = _mock_message(
            text='{"column": 3}', input_tokens=50, output_tokens=8,
        )

        adapter = AnthropicAdapter(model_id="claude-sonnet-4-20250514", api_key="test-key")
        resp = adapter.query(
            messages=[{"role": "user", "content": "Your turn"}],
            max_tokens=256,
            timeout_s=30.0,
        )

        assert isinstance(resp, AdapterResponse)
        assert resp.raw_text == '{"column": 3}'
        assert resp.model_id == "claude-sonnet-4-20250514"
        assert resp.model_version == "claude-sonnet-4-20250514"
        assert resp.input_tokens == 50
        assert resp.output_tokens == 8
        assert resp.reasoning_text is None

    @patch("aiarena.core.anthropic_adapter.Anthropic")
    def test_system_message_lifted(self, MockAnthropic):
        client = MockAnthropic.return_value
        client.messages.create.return_value = _mock_message(text="{}")

        adapter = AnthropicAdapter(model_id="claude-haiku", api_key="k", temperature=0.2)
        adapter.query(
            messages=[
                {"role": "system", "content": "Respond with JSON"},
                {"role": "user", "content": "Your turn"},
            ],
            max_tokens=100,
            timeout_s=9.0,
        )

        kwargs = client.messages.create.call_args[1]
        assert kwargs["system"] == "Respond with JSON"
        assert kwargs["messages"] == [{"role": "user", "content": "Your turn"}]
        assert kwargs["temperature"] == 0.2
        assert kwargs["timeout"] == 9.0
        assert kwargs["max_tokens"] == 100

    @patch("aiarena.core.anthropic_adapter.Anthropic")
    def test_no_system_kwarg_without_system_message(self, MockAnthropic):
        client = MockAnthropic.return_value
        client.messages.create.return_value = _mock_message(text="{}")

        adapter = AnthropicAdapter(model_id="claude-haiku", api_key="k")
        adapter.query(
            messages=[{"role": "user", "content": "go"}], max_tokens=10, timeout_s=5.0,
        )
        assert "system" not in client.messages.create.call_args[1]

    @patch("aiarena.core.anthropic_adapter.Anthropic")
    def test_thinking_block_extracted(self, MockAnthropic):
        client = MockAnthropic.return_value
        client.messages.create.return_value = _mock_message(
            text='{"choice": "paper"}', thinking_text="Opponent likes rock.",
        )

        adapter = AnthropicAdapter(model_id="claude-sonnet-4-20250514", api_key="k")
        resp = adapter.query(
            messages=[{"role": "user", "content": "go"}], max_tokens=256, timeout_s=30.0,
        )
        assert resp.reasoning_text == "Opponent likes rock."
        assert resp.raw_text == '{"choice": "paper"}'


class TestAnthropicAdapterErrors:
    @patch("aiarena.core.anthropic_adapter.Anthropic")
    def test_timeout_raises_adapter_error(self, MockAnthropic):
        import anthropic

        client = MockAnthropic.return_value
        client.messages.create.side_effect = anthropic.APITimeoutError(request=MagicMock())

        adapter = AnthropicAdapter(model_id="claude-haiku", api_key="k")
        with pytest.raises(AdapterError) as exc_info:
            adapter.query(
                messages=[{"role": "user", "content": "go"}], max_tokens=10, timeout_s=5.0,
            )
        assert exc_info.value.error_type == "timeout"

    @patch("aiarena.core.anthropic_adapter.time.sleep")
    @patch("aiarena.core.anthropic_adapter.Anthropic")
    def test_rate_limit_retries_then_raises(self, MockAnthropic, mock_sleep):
        import anthropic

        resp_mock = MagicMock()
        resp_mock.status_code = 429
        resp_mock.headers = {}
        client = MockAnthropic.return_value
        client.messages.create.side_effect = anthropic.RateLimitError(
            message="rate limited", response=resp_mock, body=None,
        )

        adapter = AnthropicAdapter(model_id="claude-haiku", api_key="k")
        with pytest.raises(AdapterError) as exc_info:
            adapter.query(
                messages=[{"role": "user", "content": "go"}], max_tokens=10, timeout_s=30.0,
            )
        assert exc_info.value.error_type == "rate_limit"
        assert client.messages.create.call_count == 2

    @patch("aiarena.core.anthropic_adapter.Anthropic")
    def test_no_raw_sdk_exception_propagates(self, MockAnthropic):
        client = MockAnthropic.return_value
        client.messages.create.side_effect = ConnectionError("network down")

        adapter = AnthropicAdapter(model_id="claude-haiku", api_key="k")
        with pytest.raises(AdapterError) as exc_info:
            adapter.query(
                messages=[{"role": "user", "content": "go"}], max_tokens=10, timeout_s=30.0,
            )
        assert exc_info.value.error_type == "api_error"
