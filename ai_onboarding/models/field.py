"""
Field Models - Defines the canonical specification of a field to collect.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class FieldSpec(BaseModel):
    """A named value to collect from the user, with optional structural rules."""
    name: str = Field(..., min_length=1)
    label: Optional[str] = None
    description: Optional[str] = None
    rules: List[str] = Field(default_factory=list)  # e.g. ["required", "email"]

    @property
    def display_name(self) -> str:
        return self.label or self.name

    @property
    def has_rules(self) -> bool:
        return bool(self.rules)
