"""
Dual Validator - Semantic (LLM) gate followed by the structural rule gate.
"""

import logging
from typing import Optional, TYPE_CHECKING

from ..models.field import FieldSpec
from ..models.validation import ValidationOutcome
from .rules import RuleEngine

if TYPE_CHECKING:
    from ..agents.validation_agent import ValidationAgent

logger = logging.getLogger(__name__)

SEMANTIC_FAILURE_MESSAGE = "The response doesn't appear to answer the question."


class DualValidator:
    """
    Validates one answer for one field.

    The semantic gate always runs first; a semantic failure skips the
    structural gate. The structural gate runs only for fields with rules.
    """

    def __init__(self, validation_agent: "ValidationAgent", rule_engine: Optional[RuleEngine] = None):
        self.validation_agent = validation_agent
        self.rule_engine = rule_engine or RuleEngine()

    async def validate(self, field: FieldSpec, raw_answer: str) -> ValidationOutcome:
        """
        Validate a raw answer.

        Args:
            field: Field the answer is meant for
            raw_answer: The user's message, unmodified

        Returns:
            ValidationOutcome

        Raises:
            ProviderError: if the semantic gate's LLM call fails
        """
        if not await self.validation_agent.is_plausible_answer(field, raw_answer):
            logger.info(f"Answer for field {field.name} rejected by semantic validation")
            return ValidationOutcome.semantic_failure(SEMANTIC_FAILURE_MESSAGE)

        if field.has_rules:
            result = self.rule_engine.check(field.name, raw_answer, field.rules)
            if not result.valid:
                logger.info(
                    f"Answer for field {field.name} rejected by rule validation",
                    extra={"extra_fields": {"field": field.name, "errors": result.errors}}
                )
                return ValidationOutcome.structural_failure(result.errors)

        return ValidationOutcome.success()
