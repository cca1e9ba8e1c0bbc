"""Core module - errors, logging, session persistence and field handling."""

from .exceptions import (
    OnboardingError, ConfigError, ConfigurationMissing, NoActiveSession, ProviderError
)

__all__ = [
    'OnboardingError', 'ConfigError', 'ConfigurationMissing', 'NoActiveSession', 'ProviderError'
]
