"""AI Onboarding Agent - collects user fields through an LLM-driven conversation."""

from .agents import OnboardingAgent
from .core.exceptions import (
    OnboardingError, ConfigError, ConfigurationMissing, NoActiveSession, ProviderError
)
from .core.session_manager import SessionManager
from .storage import MemorySessionStore, LocalSessionStore

__version__ = "1.0.0"

__all__ = [
    'OnboardingAgent', 'SessionManager', 'MemorySessionStore', 'LocalSessionStore',
    'OnboardingError', 'ConfigError', 'ConfigurationMissing', 'NoActiveSession', 'ProviderError',
]
