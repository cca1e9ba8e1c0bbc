"""
Onboarding Agent - Conversation state machine that collects fields one at a time.

A session moves through AwaitingAnswer(0) ... AwaitingAnswer(N-1) and then
Complete. An invalid answer keeps the session on the same field; a valid one
is stored verbatim and moves the session to the next field.
"""

import logging
import uuid
from typing import Any, List, Optional

from .base_agent import BaseAgent
from .validation_agent import ValidationAgent
from ..core.exceptions import ConfigurationMissing
from ..core.extraction import assemble, format_transcript, overlay_reextracted
from ..core.field_normalizer import normalize_fields
from ..core.logging_config import truncate_large_data
from ..core.session_manager import SessionManager
from ..llm.base import LLMProvider
from ..models.field import FieldSpec
from ..models.session import (
    ChatMessage, MessageRole, OnboardingProgress, OnboardingResult, Session, SessionStart
)
from ..validation.dual_validator import DualValidator
from ..validation.rules import RuleEngine

logger = logging.getLogger(__name__)

COMPLETION_MESSAGE = "Thank you! I have all the information I need. Your onboarding is complete!"

FIRST_QUESTION_PROMPT = "Please ask the first question. Be friendly and engaging."

EXTRACTION_SYSTEM_PROMPT = """You extract structured data from onboarding conversations.
Respond with ONLY a JSON object whose keys are the requested field names and whose values are strings.
Use the user's final answer for each field. Use an empty string when a field was never answered."""

EXTRACTION_PROMPT = (
    "Please extract the following information from our conversation and format it as JSON: "
    "{fields}\n\nConversation:\n{transcript}"
)


def describe_field(field: FieldSpec) -> str:
    """Render a field for prompts: display name plus description when present."""
    if field.description:
        return f"{field.display_name} ({field.description})"
    return field.display_name


def build_onboarding_instructions(fields: List[FieldSpec]) -> str:
    """System prompt for the onboarding conversation, enumerating the fields in order."""
    field_lines = "\n".join(f"- {describe_field(f)}" for f in fields)
    return f"""You are a conversational AI agent designed to assist users in providing information for onboarding purposes. Your goal is to collect specific fields of information from the user through a natural and engaging conversation.

Follow these rules:
1. Never question the user again about information you have already collected. Whatever they answered is the answer.
2. Critical: ask for the fields strictly in the order given below and do not skip any.
3. Keep track of which field you are currently asking for, and ask for the next field in the sequence only when told to.
4. You may not be given an explicit question; infer it from the field name. For example, for "email" you can ask "What is your email address?".
5. Never return JSON or any structured data. Always respond in plain text, as in a natural conversation.
6. Critical: do not break character. Always respond as the onboarding assistant.
7. Here are the fields you need to collect, in order:
{field_lines}
8. Do not reply to these instructions. The conversation starts with the next message."""


class OnboardingAgent(BaseAgent):
    """
    Orchestrates onboarding sessions.

    Fields configured with configure_fields() apply to sessions started
    afterwards; each session keeps its own copy of the field list. Calls for
    the same session are serialized with a per-session lock.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        llm_provider: Optional[LLMProvider] = None,
        rule_engine: Optional[RuleEngine] = None,
        temperature: float = 0.7,
        validation_temperature: float = 0.0,
        completion_message: str = COMPLETION_MESSAGE,
        field_extraction_enabled: bool = False,
    ):
        """
        Initialize the onboarding agent.

        Args:
            session_manager: Session persistence
            llm_provider: LLM provider used for questions and semantic validation
            rule_engine: Structural rule engine (a default one is created if omitted)
            temperature: Temperature for question generation
            validation_temperature: Temperature for semantic validation
            completion_message: Fixed message sent once the last field is accepted
            field_extraction_enabled: Re-extract fields from the transcript in complete() by default
        """
        super().__init__("OnboardingAgent", build_onboarding_instructions([]), llm_provider)
        self.sessions = session_manager
        self.rule_engine = rule_engine or RuleEngine()
        self.validation_agent = ValidationAgent(llm_provider, temperature=validation_temperature)
        self.validator = DualValidator(self.validation_agent, self.rule_engine)
        self.temperature = temperature
        self.completion_message = completion_message
        self.field_extraction_enabled = field_extraction_enabled
        self._fields: List[FieldSpec] = []

    def set_llm_provider(self, provider: LLMProvider) -> None:
        super().set_llm_provider(provider)
        self.validation_agent.set_llm_provider(provider)

    @property
    def fields(self) -> List[FieldSpec]:
        return list(self._fields)

    def configure_fields(self, config: Any) -> "OnboardingAgent":
        """
        Configure the fields to collect in subsequent sessions.

        Args:
            config: Structured mapping, list of names, or list of per-field mappings

        Raises:
            ConfigError: if the configuration is malformed
        """
        self._fields = normalize_fields(config, self.rule_engine)
        logger.info(f"Configured {len(self._fields)} onboarding fields")
        return self

    async def begin(self, session_id: Optional[str] = None) -> SessionStart:
        """
        Start a new onboarding conversation.

        Args:
            session_id: Optional session ID; a UUID is generated if omitted

        Returns:
            SessionStart with the session ID and the opening question

        Raises:
            ConfigurationMissing: if no fields are configured
            ProviderError: if the opening question could not be generated
        """
        if not self._fields:
            raise ConfigurationMissing()

        session_id = session_id or str(uuid.uuid4())
        fields = list(self._fields)

        async with self.sessions.lock(session_id):
            instructions = build_onboarding_instructions(fields)
            first_message = await self.call_llm(
                FIRST_QUESTION_PROMPT, system_prompt=instructions, temperature=self.temperature
            )

            session = Session(
                session_id=session_id,
                fields=fields,
                current_index=0,
                current_field=fields[0].name,
                history=[ChatMessage(
                    role=MessageRole.ASSISTANT, content=first_message, session_id=session_id
                )],
            )
            await self.sessions.create(session)

        logger.info(
            f"Onboarding session {session_id} started",
            extra={"extra_fields": {"session_id": session_id, "fields": [f.name for f in fields]}}
        )
        return SessionStart(success=True, session_id=session_id, first_message=first_message)

    async def chat(self, message: str, session_id: Optional[str] = None) -> ChatMessage:
        """
        Process a user message and return the assistant's reply.

        Args:
            message: The user's message
            session_id: Session ID (defaults to the active session)

        Returns:
            The assistant ChatMessage appended to the history

        Raises:
            NoActiveSession: if the session does not exist
            ProviderError: if the LLM call fails
        """
        session_id = await self.sessions.resolve_session_id(session_id)

        async with self.sessions.lock(session_id):
            session = await self.sessions.load(session_id)
            await self.sessions.append_message(
                session_id,
                ChatMessage(role=MessageRole.USER, content=message, session_id=session_id)
            )

            if session.completed:
                logger.debug(f"Session {session_id} already complete, repeating completion message")
                reply = self.completion_message
            else:
                reply = await self._respond(session, message)

            assistant_message = ChatMessage(
                role=MessageRole.ASSISTANT, content=reply, session_id=session_id
            )
            await self.sessions.append_message(session_id, assistant_message)

        return assistant_message

    def _pending_field(self, session: Session) -> FieldSpec:
        field = session.field_named(session.current_field)
        if field is None:
            # Pointer missing; the index is always written first
            field = session.fields[min(session.current_index, len(session.fields) - 1)]
        return field

    async def _respond(self, session: Session, message: str) -> str:
        """Validate the answer for the pending field and decide retry, advance or finish."""
        session_id = session.session_id
        field = self._pending_field(session)
        instructions = build_onboarding_instructions(session.fields)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Session {session_id} answer for {field.name}: {truncate_large_data(message, max_length=200)}"
            )

        outcome = await self.validator.validate(field, message)

        if not outcome.valid:
            error = outcome.error_message or "The response was not valid"
            logger.info(
                f"Session {session_id} re-asking field {field.name}",
                extra={"extra_fields": {"session_id": session_id, "field": field.name, "reason": error}}
            )
            return await self.call_llm(
                f"The user's response '{message}' was not valid for the {describe_field(field)} field. "
                f"Error: {error}. Please ask the question again in a different way, but make sure to "
                f"ask for the {describe_field(field)} field at the end of your response. "
                f"Be friendly and encouraging.",
                system_prompt=instructions,
                temperature=self.temperature,
            )

        next_index = session.current_index + 1
        if next_index < len(session.fields):
            next_field = session.fields[next_index]
            # Generate the question first so a provider failure leaves the session untouched
            reply = await self.call_llm(
                f"The user answered: '{message}' for the {describe_field(field)} field. "
                f"Now ask for the next field: {describe_field(next_field)}. Be friendly and engaging.",
                system_prompt=instructions,
                temperature=self.temperature,
            )
            await self.sessions.store_extracted_field(session_id, field.name, message)
            await self.sessions.set_position(session_id, next_index, next_field.name)
            logger.info(
                f"Session {session_id} accepted {field.name}, moving to {next_field.name} "
                f"({next_index + 1}/{len(session.fields)})"
            )
            return reply

        await self.sessions.store_extracted_field(session_id, field.name, message)
        await self.sessions.mark_completed(session_id)
        logger.info(f"Session {session_id} accepted {field.name}, onboarding complete")
        return self.completion_message

    async def progress(self, session_id: Optional[str] = None) -> OnboardingProgress:
        """
        Get progress information. Read-only.

        Raises:
            NoActiveSession: if the session does not exist
        """
        session_id = await self.sessions.resolve_session_id(session_id)
        session = await self.sessions.load(session_id)

        total = len(session.fields)
        index = session.current_index
        return OnboardingProgress(
            current_field=session.current_field,
            current_index=index,
            total_fields=total,
            progress_percentage=round(index / total * 100, 2) if total else 0.0,
            is_complete=index >= total - 1,
        )

    async def is_complete(self, session_id: Optional[str] = None) -> bool:
        """Whether the session has reached its last field."""
        return (await self.progress(session_id)).is_complete

    async def current_field_name(self, session_id: Optional[str] = None) -> Optional[str]:
        """Name of the field currently being asked."""
        return (await self.progress(session_id)).current_field

    async def complete(
        self,
        session_id: Optional[str] = None,
        reextract: Optional[bool] = None
    ) -> OnboardingResult:
        """
        Retrieve all collected data.

        Args:
            session_id: Session ID (defaults to the active session)
            reextract: Also re-derive fields from the whole transcript with the LLM and
                overlay them on the collected values (defaults to field_extraction_enabled)

        Raises:
            NoActiveSession: if the session does not exist
            ProviderError: if re-extraction was requested and the LLM call fails
        """
        session_id = await self.sessions.resolve_session_id(session_id)
        if reextract is None:
            reextract = self.field_extraction_enabled

        async with self.sessions.lock(session_id):
            session = await self.sessions.load(session_id)
            result = assemble(session)

            if reextract and session.history:
                names = [f.name for f in session.fields]
                llm_output = await self.call_llm(
                    EXTRACTION_PROMPT.format(
                        fields=", ".join(names), transcript=format_transcript(session)
                    ),
                    system_prompt=EXTRACTION_SYSTEM_PROMPT,
                    temperature=0.0,
                )
                result = result.model_copy(
                    update={"fields": overlay_reextracted(result.fields, llm_output, names)}
                )

        logger.info(
            f"Session {session_id} completed with {len(result.fields)}/{len(session.fields)} fields",
            extra={"extra_fields": {"session_id": session_id, "reextract": bool(reextract)}}
        )
        return result

    async def history(self, session_id: Optional[str] = None) -> List[ChatMessage]:
        """
        Get the conversation history for a session.

        Raises:
            NoActiveSession: if the session does not exist
        """
        session_id = await self.sessions.resolve_session_id(session_id)
        return await self.sessions.get_history(session_id)

    async def clear(self, session_id: Optional[str] = None) -> None:
        """
        Delete a session and all its data.

        Raises:
            NoActiveSession: if the session does not exist
        """
        session_id = await self.sessions.resolve_session_id(session_id)
        async with self.sessions.lock(session_id):
            await self.sessions.delete(session_id)
        logger.info(f"Onboarding session {session_id} cleared")
