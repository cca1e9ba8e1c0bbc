"""LLM module - provides unified interface for LLM API providers."""

from .base import LLMProvider, LLMMessage, LLMResponse
from .openai_provider import OpenAIProvider, OllamaProvider
from .anthropic_provider import AnthropicProvider
from .gemini_provider import GeminiProvider
from .factory import create_llm_provider

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'OpenAIProvider',
    'OllamaProvider',
    'AnthropicProvider',
    'GeminiProvider',
    'create_llm_provider',
]
