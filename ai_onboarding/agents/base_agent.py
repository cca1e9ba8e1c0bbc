"""
Base Agent Class - Shared LLM plumbing for all AI agents.
"""

import logging
from typing import Optional
from datetime import datetime

from ..core.exceptions import ProviderError
from ..core.logging_config import truncate_large_data
from ..llm.base import LLMProvider

logger = logging.getLogger(__name__)


class BaseAgent:
    """
    Base class for agents that talk to an LLM provider.
    Provider failures are logged and re-raised as ProviderError, never swallowed.
    """

    def __init__(self, name: str, system_prompt: str, llm_provider: Optional[LLMProvider] = None):
        """
        Initialize base agent.

        Args:
            name: Agent name
            system_prompt: Default system prompt for the agent
            llm_provider: Optional LLM provider; can also be set later
        """
        self.name = name
        self.system_prompt = system_prompt
        self.created_at = datetime.now()
        self._llm_provider: Optional[LLMProvider] = llm_provider

    def set_llm_provider(self, provider: LLMProvider) -> None:
        """
        Set the LLM provider for this agent.

        Args:
            provider: LLM provider instance
        """
        self._llm_provider = provider

    @property
    def llm_provider(self) -> Optional[LLMProvider]:
        return self._llm_provider

    async def call_llm(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Call the LLM provider with a system instruction and one user prompt.

        Args:
            user_prompt: Prompt text
            system_prompt: System instruction (defaults to the agent's own)
            temperature: Temperature for generation

        Returns:
            LLM response text

        Raises:
            ProviderError: if no provider is configured or the call fails
        """
        if self._llm_provider is None:
            raise ProviderError(
                f"LLM not configured for {self.name}. "
                f"Set LLM_API_KEY and LLM_PROVIDER in environment to enable AI responses."
            )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Agent {self.name} calling LLM: temperature={temperature}, "
                f"prompt={truncate_large_data(user_prompt, max_length=500)}"
            )

        try:
            response = await self._llm_provider.generate(
                system_prompt if system_prompt is not None else self.system_prompt,
                user_prompt,
                temperature=temperature,
            )
        except ProviderError as e:
            logger.error(
                f"Agent {self.name} LLM call failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {"agent": self.name, "error": str(e)}}
            )
            raise

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Agent {self.name} received LLM response: length={len(response)} chars")

        return response
