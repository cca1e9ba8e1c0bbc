"""
LLM Provider Factory - Creates the configured LLM provider instance.
"""

import logging
from typing import Optional

from ..core.logging_config import filter_sensitive_data
from .base import LLMProvider
from .anthropic_provider import AnthropicProvider
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider, OllamaProvider

logger = logging.getLogger(__name__)

PROVIDERS = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "ollama": OllamaProvider,
    "gemini": GeminiProvider,
}

# Providers that can run without an API key
KEYLESS_PROVIDERS = {"ollama"}


def create_llm_provider(
    provider: str = "openai",
    api_key: str = "",
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    **kwargs
) -> Optional[LLMProvider]:
    """
    Create an LLM provider instance based on configuration.

    Args:
        provider: Provider name ("openai", "anthropic", "gemini" or "ollama")
        api_key: API key for the provider
        model: Model name (uses provider default if not specified)
        base_url: Custom base URL (uses provider default if not specified)
        **kwargs: Additional provider-specific parameters

    Returns:
        LLMProvider instance, or None if a keyed provider has no api_key
    """
    provider_class = PROVIDERS.get(provider)
    if provider_class is None:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    if not api_key and provider not in KEYLESS_PROVIDERS:
        return None

    params = {"api_key": api_key or ""}
    if model:
        params["model"] = model
    if base_url:
        params["base_url"] = base_url
    params.update(kwargs)

    logger.debug(f"Creating LLM provider {provider}: {filter_sensitive_data(params)}")
    return provider_class(**params)
