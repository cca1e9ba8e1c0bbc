"""
Extraction Assembler - Builds the final result of an onboarding session.
"""

import json
import logging
import re
from typing import Dict, List

from ..models.session import (
    ConversationSummary, MessageRole, OnboardingResult, Session
)

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def summarize(session: Session) -> ConversationSummary:
    """Summarize a session's history: first/last timestamps and per-role counts."""
    if not session.history:
        return ConversationSummary()

    user_messages = sum(1 for m in session.history if m.role == MessageRole.USER)
    assistant_messages = sum(1 for m in session.history if m.role == MessageRole.ASSISTANT)
    return ConversationSummary(
        started_at=session.history[0].timestamp,
        ended_at=session.history[-1].timestamp,
        user_messages=user_messages,
        assistant_messages=assistant_messages,
        total_messages=len(session.history),
    )


def assemble(session: Session) -> OnboardingResult:
    """
    Assemble the collected values of a session.
    Values are the literal accepted answers, never transformed.
    """
    return OnboardingResult(
        session_id=session.session_id,
        fields=dict(session.extracted),
        summary=summarize(session),
    )


def format_transcript(session: Session) -> str:
    """Render the history as "role: content" lines."""
    return "\n".join(f"{m.role.value}: {m.content}" for m in session.history)


def overlay_reextracted(
    extracted: Dict[str, str],
    llm_output: str,
    field_names: List[str]
) -> Dict[str, str]:
    """
    Overlay values re-derived from the whole transcript onto the incremental map.

    Only configured field names with non-empty string values are taken. If the
    output holds no parsable JSON object the incremental map is returned as is.

    Args:
        extracted: Incrementally collected values
        llm_output: Provider text expected to contain a JSON object
        field_names: Configured field names

    Returns:
        A new dict; the input map is not modified
    """
    merged = dict(extracted)
    match = _JSON_OBJECT_RE.search(llm_output or "")
    if not match:
        logger.warning("Re-extraction returned no JSON object, keeping collected values")
        return merged

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse re-extraction output: {str(e)}, keeping collected values")
        return merged

    if not isinstance(payload, dict):
        return merged

    for name in field_names:
        value = payload.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str) and value.strip():
            merged[name] = value.strip()

    return merged
