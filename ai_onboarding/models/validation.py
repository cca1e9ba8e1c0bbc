"""
Validation Models - Outcome of validating one answer against one field.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class ValidationOutcome(BaseModel):
    """
    Verdict of the dual validator.
    A failing outcome carries either a semantic message or structural errors, never both.
    """
    valid: bool
    semantic_message: Optional[str] = None
    structural_errors: List[str] = Field(default_factory=list)

    @classmethod
    def success(cls) -> "ValidationOutcome":
        return cls(valid=True)

    @classmethod
    def semantic_failure(cls, message: str) -> "ValidationOutcome":
        return cls(valid=False, semantic_message=message)

    @classmethod
    def structural_failure(cls, errors: List[str]) -> "ValidationOutcome":
        return cls(valid=False, structural_errors=list(errors))

    @property
    def error_message(self) -> Optional[str]:
        """Human-readable failure reason, or None for a valid outcome."""
        if self.semantic_message:
            return self.semantic_message
        if self.structural_errors:
            return "Validation failed: " + ", ".join(self.structural_errors)
        return None
