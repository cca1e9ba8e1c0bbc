"""
Unit tests for the LLM module.
Tests LLMMessage, LLMResponse, providers, and factory.
"""

import pytest
from unittest.mock import AsyncMock, patch, MagicMock

import httpx

from ai_onboarding.config.settings import Settings
from ai_onboarding.core.exceptions import ProviderError
from ai_onboarding.llm.base import LLMMessage, LLMResponse
from ai_onboarding.llm.openai_provider import OpenAIProvider, OllamaProvider
from ai_onboarding.llm.anthropic_provider import AnthropicProvider
from ai_onboarding.llm.gemini_provider import GeminiProvider
from ai_onboarding.llm.factory import create_llm_provider


def mock_http_client(mock_client, json_data=None, post_side_effect=None):
    """Wire a patched httpx.AsyncClient to return json_data from post()."""
    mock_response = MagicMock()
    mock_response.json.return_value = json_data
    mock_response.raise_for_status = MagicMock()

    mock_instance = AsyncMock()
    if post_side_effect is not None:
        mock_instance.post.side_effect = post_side_effect
    else:
        mock_instance.post.return_value = mock_response
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = mock_instance
    return mock_instance


class TestLLMMessage:
    """Tests for LLMMessage dataclass."""

    def test_text_message(self):
        msg = LLMMessage.text("user", "Hello")
        assert msg.role == "user"
        assert msg.content == "Hello"


class TestLLMResponse:
    """Tests for LLMResponse dataclass."""

    def test_basic_response(self):
        resp = LLMResponse(content="Hello!", model="gpt-4o")
        assert resp.content == "Hello!"
        assert resp.model == "gpt-4o"
        assert resp.usage == {}
        assert resp.raw is None


class TestOpenAIProvider:
    """Tests for OpenAI-compatible provider."""

    def test_init_defaults(self):
        provider = OpenAIProvider(api_key="test-key")
        assert provider.api_key == "test-key"
        assert provider.model == "gpt-4o"
        assert provider.base_url == "https://api.openai.com/v1"

    def test_init_strips_trailing_slash(self):
        provider = OpenAIProvider(api_key="key", base_url="https://custom.api.com/v1/")
        assert provider.base_url == "https://custom.api.com/v1"

    def test_headers(self):
        provider = OpenAIProvider(api_key="sk-test123")
        headers = provider._get_headers()
        assert headers["Authorization"] == "Bearer sk-test123"
        assert headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_chat_completion_success(self):
        provider = OpenAIProvider(api_key="test-key")
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = mock_http_client(mock_client, {
                "choices": [{"message": {"content": "What is your name?"}}],
                "model": "gpt-4o",
                "usage": {"prompt_tokens": 10, "completion_tokens": 5}
            })

            result = await provider.chat_completion([LLMMessage.text("user", "Hello")])

            assert result.content == "What is your name?"
            assert result.model == "gpt-4o"
            url = mock_instance.post.call_args.args[0]
            assert url == "https://api.openai.com/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_generate_sends_system_and_user(self):
        provider = OpenAIProvider(api_key="test-key")
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = mock_http_client(mock_client, {
                "choices": [{"message": {"content": "true"}}],
                "model": "gpt-4o",
            })

            result = await provider.generate("validate", "Question: ...", temperature=0.0)

            assert result == "true"
            payload = mock_instance.post.call_args.kwargs["json"]
            assert payload["messages"] == [
                {"role": "system", "content": "validate"},
                {"role": "user", "content": "Question: ..."},
            ]
            assert payload["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_generate_wraps_transport_errors(self):
        provider = OpenAIProvider(api_key="test-key")
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, post_side_effect=httpx.ConnectError("refused"))

            with pytest.raises(ProviderError) as exc_info:
                await provider.generate("system", "user")

            assert exc_info.value.provider == "openai"
            assert "refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_generate_wraps_malformed_response(self):
        provider = OpenAIProvider(api_key="test-key")
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, {"error": "nope"})

            with pytest.raises(ProviderError):
                await provider.generate("system", "user")


class TestOllamaProvider:
    """Tests for the local Ollama provider."""

    def test_init_defaults(self):
        provider = OllamaProvider()
        assert provider.model == "llama3"
        assert provider.base_url == "http://localhost:11434/v1"
        assert "Authorization" not in provider._get_headers()


class TestAnthropicProvider:
    """Tests for the Anthropic Messages provider."""

    def test_headers(self):
        provider = AnthropicProvider(api_key="sk-ant")
        headers = provider._get_headers()
        assert headers["x-api-key"] == "sk-ant"
        assert headers["anthropic-version"] == "2023-06-01"

    @pytest.mark.asyncio
    async def test_system_prompt_is_top_level(self):
        provider = AnthropicProvider(api_key="sk-ant")
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = mock_http_client(mock_client, {
                "content": [
                    {"type": "text", "text": "Hello! "},
                    {"type": "text", "text": "What is your name?"},
                ],
                "model": "claude-3-5-sonnet-latest",
                "usage": {"input_tokens": 12, "output_tokens": 6},
            })

            result = await provider.generate("be friendly", "ask the first question")

            assert result == "Hello! What is your name?"
            url = mock_instance.post.call_args.args[0]
            payload = mock_instance.post.call_args.kwargs["json"]
            assert url == "https://api.anthropic.com/v1/messages"
            assert payload["system"] == "be friendly"
            assert payload["messages"] == [{"role": "user", "content": "ask the first question"}]


class TestGeminiProvider:
    """Tests for the Gemini generateContent provider."""

    def test_init_defaults(self):
        provider = GeminiProvider(api_key="g-key")
        assert provider.model == "gemini-2.0-flash"
        assert provider.base_url == "https://generativelanguage.googleapis.com/v1beta"
        assert provider._get_headers()["x-goog-api-key"] == "g-key"

    def test_format_messages_maps_assistant_role(self):
        provider = GeminiProvider(api_key="g-key")
        formatted = provider._format_messages([
            LLMMessage.text("user", "hi"),
            LLMMessage.text("assistant", "What is your name?"),
        ])
        assert formatted == [
            {"role": "user", "parts": [{"text": "hi"}]},
            {"role": "model", "parts": [{"text": "What is your name?"}]},
        ]

    @pytest.mark.asyncio
    async def test_system_instruction_and_generation_config(self):
        provider = GeminiProvider(api_key="g-key")
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = mock_http_client(mock_client, {
                "candidates": [{"content": {"role": "model", "parts": [
                    {"text": "Hi there! "},
                    {"text": "What is your name?"},
                ]}}],
                "usageMetadata": {"promptTokenCount": 20, "candidatesTokenCount": 7, "totalTokenCount": 27},
                "modelVersion": "gemini-2.0-flash",
            })

            result = await provider.generate("be friendly", "ask the first question", temperature=0.0)

            assert result == "Hi there! What is your name?"
            url = mock_instance.post.call_args.args[0]
            payload = mock_instance.post.call_args.kwargs["json"]
            assert url == (
                "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
            )
            assert payload["systemInstruction"] == {"parts": [{"text": "be friendly"}]}
            assert payload["contents"] == [
                {"role": "user", "parts": [{"text": "ask the first question"}]}
            ]
            assert payload["generationConfig"]["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_blocked_response_raises_provider_error(self):
        provider = GeminiProvider(api_key="g-key")
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, {"promptFeedback": {"blockReason": "SAFETY"}})

            with pytest.raises(ProviderError) as exc_info:
                await provider.generate("system", "user")
            assert exc_info.value.provider == "gemini"


class TestLLMFactory:
    """Tests for LLM provider factory."""

    def test_create_openai_provider(self):
        provider = create_llm_provider(provider="openai", api_key="test-key", model="gpt-4o-mini")
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o-mini"

    def test_create_anthropic_provider(self):
        provider = create_llm_provider(provider="anthropic", api_key="test-key")
        assert isinstance(provider, AnthropicProvider)

    def test_create_ollama_without_key(self):
        provider = create_llm_provider(provider="ollama")
        assert isinstance(provider, OllamaProvider)

    def test_no_api_key_returns_none(self):
        assert create_llm_provider(provider="openai", api_key="") is None

    def test_unsupported_provider_raises(self):
        with pytest.raises(ValueError, match="Unsupported"):
            create_llm_provider(provider="unsupported", api_key="key")

    def test_custom_base_url_and_timeout(self):
        provider = create_llm_provider(
            provider="openai",
            api_key="key",
            base_url="https://custom.api.com/v1",
            timeout=5.0,
        )
        assert provider.base_url == "https://custom.api.com/v1"
        assert provider.timeout == 5.0

    def test_create_gemini_provider(self):
        provider = create_llm_provider(provider="gemini", api_key="g-key", model="gemini-1.5-pro")
        assert isinstance(provider, GeminiProvider)
        assert provider.model == "gemini-1.5-pro"

    def test_gemini_without_key_returns_none(self):
        assert create_llm_provider(provider="gemini", api_key="") is None


class TestProviderSettings:
    """Tests for API key resolution in Settings."""

    def test_generic_key_wins(self):
        config = Settings(llm_provider="gemini", llm_api_key="generic", gemini_api_key="g-key")
        assert config.resolved_llm_api_key == "generic"

    @pytest.mark.parametrize("provider,field", [
        ("openai", "openai_api_key"),
        ("anthropic", "anthropic_api_key"),
        ("gemini", "gemini_api_key"),
    ])
    def test_per_vendor_fallback(self, provider, field):
        config = Settings(llm_provider=provider, llm_api_key=None, **{field: "vendor-key"})
        assert config.resolved_llm_api_key == "vendor-key"
