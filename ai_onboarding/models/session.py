"""
Session Models - Defines structures for onboarding sessions and their results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field

from .field import FieldSpec


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A single message of an onboarding conversation. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: Optional[str] = None

    @property
    def is_user(self) -> bool:
        return self.role == MessageRole.USER

    @property
    def is_assistant(self) -> bool:
        return self.role == MessageRole.ASSISTANT


class Session(BaseModel):
    """Everything known about one onboarding conversation."""
    session_id: str
    fields: List[FieldSpec]
    current_index: int = Field(0, ge=0)
    current_field: Optional[str] = None
    history: List[ChatMessage] = Field(default_factory=list)
    extracted: Dict[str, str] = Field(default_factory=dict)
    completed: bool = False

    def field_named(self, name: Optional[str]) -> Optional[FieldSpec]:
        for field in self.fields:
            if field.name == name:
                return field
        return None


class SessionStart(BaseModel):
    """Result of beginning a conversation."""
    success: bool = True
    session_id: str
    first_message: str


class OnboardingProgress(BaseModel):
    """Read-only view of how far a session has come."""
    current_field: Optional[str] = None
    current_index: int
    total_fields: int
    progress_percentage: float
    is_complete: bool

    @property
    def remaining_fields(self) -> int:
        return self.total_fields - self.current_index

    @property
    def is_first_field(self) -> bool:
        return self.current_index == 0

    @property
    def is_last_field(self) -> bool:
        return self.current_index == self.total_fields - 1


class ConversationSummary(BaseModel):
    """Timestamps and per-role counts over a conversation history."""
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    user_messages: int = 0
    assistant_messages: int = 0
    total_messages: int = 0


class OnboardingResult(BaseModel):
    """Collected values of a session plus a summary of its conversation."""
    session_id: str
    fields: Dict[str, str]
    summary: ConversationSummary

    def get_field(self, name: str) -> Optional[str]:
        return self.fields.get(name)

    def has_field(self, name: str) -> bool:
        return name in self.fields
