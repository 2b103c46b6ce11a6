"""
Tests for backend/autotrader/oracle/api_providers/

The SDKs are imported inside each call function, so they are patched at
their source packages. No real API calls.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import google.generativeai  # noqa: F401 -- imported so patch("google.generativeai...") works

from autotrader.oracle.api_providers import PROVIDERS, call_claude, call_gemini, call_openai


class TestProviderRegistry:
    def test_all_providers_registered(self):
        assert set(PROVIDERS) == {"gemini", "claude", "openai"}


class TestCallClaude:
    @pytest.mark.asyncio
    async def test_returns_text(self):
        response = MagicMock()
        response.content = [MagicMock(text='{"action": "HOLD"}')]
        response.usage.input_tokens = 10
        response.usage.output_tokens = 5

        with patch("anthropic.AsyncAnthropic") as MockAnthropic:
            MockAnthropic.return_value.messages.create = AsyncMock(return_value=response)
            text = await call_claude("prompt", "sk-ant")

        assert text == '{"action": "HOLD"}'
        MockAnthropic.assert_called_once_with(api_key="sk-ant")
        kwargs = MockAnthropic.return_value.messages.create.await_args.kwargs
        assert kwargs["temperature"] == 0
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            await call_claude("prompt", "")


class TestCallOpenAI:
    @pytest.mark.asyncio
    async def test_requests_json_object(self):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = '{"action": "BUY"}'
        response.usage = None

        with patch("openai.AsyncOpenAI") as MockOpenAI:
            MockOpenAI.return_value.chat.completions.create = AsyncMock(return_value=response)
            text = await call_openai("prompt", "sk-openai")

        assert text == '{"action": "BUY"}'
        kwargs = MockOpenAI.return_value.chat.completions.create.await_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            await call_openai("prompt", "")


class TestCallGemini:
    @pytest.mark.asyncio
    async def test_runs_blocking_sdk_call(self):
        response = MagicMock()
        response.text = '{"action": "SELL"}'
        response.usage_metadata = None

        with patch("google.generativeai.configure") as mock_configure, \
             patch("google.generativeai.GenerativeModel") as MockModel, \
             patch("google.generativeai.GenerationConfig") as MockConfig:
            MockModel.return_value.generate_content.return_value = response
            text = await call_gemini("prompt", "gemini-key")

        assert text == '{"action": "SELL"}'
        mock_configure.assert_called_once_with(api_key="gemini-key")
        MockModel.return_value.generate_content.assert_called_once()
        assert MockConfig.call_args.kwargs["temperature"] == 0

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            await call_gemini("prompt", "")
