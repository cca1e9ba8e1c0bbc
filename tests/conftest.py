"""
Shared test fixtures and configuration.
"""

import pytest
import os
from unittest.mock import AsyncMock

# Set test environment variables before importing app modules
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("STORAGE_TYPE", "memory")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/ai_onboarding_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LLM_PROVIDER", "openai")

from ai_onboarding.agents.validation_agent import VALIDATION_SYSTEM_PROMPT
from ai_onboarding.agents.onboarding_agent import OnboardingAgent
from ai_onboarding.core.session_manager import SessionManager
from ai_onboarding.llm.base import LLMProvider
from ai_onboarding.storage import MemorySessionStore


def make_provider(verdicts=None, extraction=None):
    """
    Scripted provider.

    Validation calls pop the next verdict ("true" once the list runs out),
    extraction calls return `extraction`, every other call returns a question
    echoing the start of the prompt.
    """
    verdicts = list(verdicts or [])
    provider = AsyncMock(spec=LLMProvider)

    async def generate(system_prompt, user_prompt, temperature=None, max_tokens=None):
        if system_prompt == VALIDATION_SYSTEM_PROMPT:
            return verdicts.pop(0) if verdicts else "true"
        if extraction is not None and user_prompt.startswith("Please extract"):
            return extraction
        return f"Question for: {user_prompt[:40]}"

    provider.generate.side_effect = generate
    return provider


def validation_calls(provider):
    return [c for c in provider.generate.call_args_list if c.args[0] == VALIDATION_SYSTEM_PROMPT]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def session_manager(store):
    return SessionManager(store)


@pytest.fixture
def provider():
    return make_provider()


@pytest.fixture
def agent(session_manager, provider):
    return OnboardingAgent(session_manager, llm_provider=provider)
