"""Agents module - AI agents for the onboarding conversation."""

from .base_agent import BaseAgent
from .validation_agent import ValidationAgent
from .onboarding_agent import OnboardingAgent

__all__ = [
    'BaseAgent',
    'ValidationAgent',
    'OnboardingAgent'
]
