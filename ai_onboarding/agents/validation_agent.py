"""
Validation Agent - Asks the LLM whether an answer plausibly answers a question.
"""

import logging
from typing import Optional

from .base_agent import BaseAgent
from ..llm.base import LLMProvider
from ..models.field import FieldSpec

logger = logging.getLogger(__name__)

VALIDATION_SYSTEM_PROMPT = """You are a validation AI agent. Your ONLY job is to determine if a user's response is a valid answer to a specific question.

RULES:
1. You will be given a question and a user's response
2. You must respond with ONLY the word "true" or "false" - nothing else
3. Return "true" if the user provided a reasonable answer to the question
4. Return "false" if the user did not provide a valid answer (e.g., said "no", "I don't know", "skip", etc.)
5. Be strict - only accept actual answers, not refusals or non-answers

Examples:
- Question: "What is your name?" Response: "John" -> "true"
- Question: "What is your name?" Response: "no" -> "false"
- Question: "What is your email?" Response: "john@example.com" -> "true"
- Question: "What is your email?" Response: "I don't want to provide it" -> "false"
"""

# Checked in order; the first substring found in the field name wins
QUESTION_TEMPLATES = [
    ("name", "What is your name?"),
    ("email", "What is your email address?"),
    ("phone", "What is your phone number?"),
    ("age", "What is your age?"),
    ("address", "What is your address?"),
]

TRUE_TOKENS = {"true", "1", "yes", "on"}


def question_for_field(field: FieldSpec) -> str:
    """Build a natural-language question for a field."""
    field_lower = field.name.lower()
    question = None
    for needle, template in QUESTION_TEMPLATES:
        if needle in field_lower:
            question = template
            break

    if question is None:
        question = f"What is your {field.display_name.lower().replace('_', ' ')}?"

    if field.description:
        question = f"{question} ({field.description})"
    return question


def parse_verdict(text: Optional[str]) -> bool:
    """Parse a true/false token. Anything unrecognised counts as false."""
    if not text:
        return False
    token = text.strip().lower().strip("\"'`").rstrip(".!")
    return token in TRUE_TOKENS


class ValidationAgent(BaseAgent):
    """
    Semantic gate: judges whether an answer is a genuine answer to the field's question.
    Uses a low temperature since only a single boolean token is expected.
    """

    def __init__(self, llm_provider: Optional[LLMProvider] = None, temperature: float = 0.0):
        super().__init__("ValidationAgent", VALIDATION_SYSTEM_PROMPT, llm_provider)
        self.temperature = temperature

    async def is_plausible_answer(self, field: FieldSpec, answer: str) -> bool:
        """
        Ask the LLM whether the answer answers the field's question.

        Raises:
            ProviderError: if the LLM call fails
        """
        question = question_for_field(field)
        prompt = f"Question: {question}\nUser Response: {answer}"

        verdict_text = await self.call_llm(prompt, temperature=self.temperature)
        verdict = parse_verdict(verdict_text)

        logger.debug(
            f"Semantic validation for field {field.name}: raw={verdict_text!r}, verdict={verdict}"
        )
        return verdict
