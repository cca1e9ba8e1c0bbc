"""
Onboarding API endpoints - Drive field-collection conversations over HTTP.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..agents.onboarding_agent import OnboardingAgent
from ..config import settings
from ..core.exceptions import (
    ConfigError, ConfigurationMissing, NoActiveSession, OnboardingError, ProviderError
)
from ..core.session_manager import SessionManager
from ..llm.base import LLMProvider
from ..llm.factory import create_llm_provider
from ..models import ChatMessage, OnboardingProgress, OnboardingResult, SessionStart
from ..storage import create_session_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.route_prefix, tags=["onboarding"])

_session_manager: Optional[SessionManager] = None


class BeginRequest(BaseModel):
    """Field configuration for a new session."""
    config: Union[Dict[str, Any], List[Any]]
    session_id: Optional[str] = None


class MessageRequest(BaseModel):
    """A user message."""
    content: str = Field(..., max_length=10000)


def get_session_manager() -> SessionManager:
    """Shared session manager built from settings on first use."""
    global _session_manager
    if _session_manager is None:
        store = create_session_store(settings.storage_type, settings.local_storage_path)
        _session_manager = SessionManager(store)
        logger.info(f"Session store initialized: {settings.storage_type}")
    return _session_manager


def get_llm_provider() -> Optional[LLMProvider]:
    """Get configured LLM provider or None."""
    return create_llm_provider(
        provider=settings.llm_provider,
        api_key=settings.resolved_llm_api_key or "",
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout=settings.llm_timeout,
    )


def get_onboarding_agent(
    session_manager: SessionManager = Depends(get_session_manager),
    llm_provider: Optional[LLMProvider] = Depends(get_llm_provider),
) -> OnboardingAgent:
    return OnboardingAgent(
        session_manager,
        llm_provider=llm_provider,
        temperature=settings.llm_temperature,
        validation_temperature=settings.validation_temperature,
        completion_message=settings.completion_message,
        field_extraction_enabled=settings.field_extraction_enabled,
    )


def _to_http_exception(error: OnboardingError) -> HTTPException:
    if isinstance(error, (ConfigError, ConfigurationMissing)):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(error, NoActiveSession):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ProviderError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(error))


@router.post("/sessions", response_model=SessionStart, status_code=status.HTTP_201_CREATED)
async def begin_session(
    request: BeginRequest,
    agent: OnboardingAgent = Depends(get_onboarding_agent)
):
    """
    Configure fields and start a new onboarding conversation.

    Returns:
        SessionStart with the session ID and the opening question
    """
    try:
        agent.configure_fields(request.config)
        return await agent.begin(request.session_id)
    except OnboardingError as e:
        raise _to_http_exception(e)


@router.post("/sessions/{session_id}/messages", response_model=ChatMessage)
async def send_message(
    session_id: str,
    request: MessageRequest,
    agent: OnboardingAgent = Depends(get_onboarding_agent)
):
    """Send the user's answer and get the assistant's reply."""
    try:
        return await agent.chat(request.content, session_id)
    except OnboardingError as e:
        raise _to_http_exception(e)


@router.get("/sessions/{session_id}/progress", response_model=OnboardingProgress)
async def get_progress(
    session_id: str,
    agent: OnboardingAgent = Depends(get_onboarding_agent)
):
    try:
        return await agent.progress(session_id)
    except OnboardingError as e:
        raise _to_http_exception(e)


@router.get("/sessions/{session_id}/history", response_model=List[ChatMessage])
async def get_history(
    session_id: str,
    agent: OnboardingAgent = Depends(get_onboarding_agent)
):
    try:
        return await agent.history(session_id)
    except OnboardingError as e:
        raise _to_http_exception(e)


@router.post("/sessions/{session_id}/complete", response_model=OnboardingResult)
async def complete_session(
    session_id: str,
    reextract: Optional[bool] = Query(None, description="Re-derive fields from the whole transcript"),
    agent: OnboardingAgent = Depends(get_onboarding_agent)
):
    """Return the collected fields and a conversation summary."""
    try:
        return await agent.complete(session_id, reextract=reextract)
    except OnboardingError as e:
        raise _to_http_exception(e)


@router.delete("/sessions/{session_id}")
async def clear_session(
    session_id: str,
    agent: OnboardingAgent = Depends(get_onboarding_agent)
):
    try:
        await agent.clear(session_id)
    except OnboardingError as e:
        raise _to_http_exception(e)
    return {"session_id": session_id, "cleared": True}
