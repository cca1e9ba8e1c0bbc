"""Models module."""

from .field import FieldSpec
from .validation import ValidationOutcome
from .session import (
    MessageRole, ChatMessage, Session, SessionStart,
    OnboardingProgress, ConversationSummary, OnboardingResult
)

__all__ = [
    'FieldSpec', 'ValidationOutcome',
    'MessageRole', 'ChatMessage', 'Session', 'SessionStart',
    'OnboardingProgress', 'ConversationSummary', 'OnboardingResult'
]
