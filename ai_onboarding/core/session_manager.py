"""
Session Manager - Maps onboarding sessions onto scoped key/value slots.

Each session is spread over independent slots named "<slot>_<session_id>".
This is the only module that knows the slot layout; everything else works
with the Session aggregate.
"""

import logging
from enum import Enum
from typing import Any, AsyncContextManager, Dict, List, Optional

from ..models.field import FieldSpec
from ..models.session import ChatMessage, Session
from ..storage import KeyedLocks, SessionStore
from .exceptions import NoActiveSession

logger = logging.getLogger(__name__)


class SessionKeys(str, Enum):
    CURRENT_SESSION_ID = "onboarding_current_session_id"
    FIELDS = "onboarding_fields_"
    CONVERSATION = "onboarding_conversation_"
    EXTRACTED_FIELDS = "onboarding_extracted_fields_"
    CURRENT_FIELD = "onboarding_current_field_"
    LAST_QUESTION = "onboarding_last_question_"
    COMPLETED = "onboarding_completed_"

    def with_session_id(self, session_id: str) -> str:
        """Get the slot key with the session ID appended."""
        return f"{self.value}{session_id}"


SESSION_SLOTS = [
    SessionKeys.FIELDS,
    SessionKeys.CONVERSATION,
    SessionKeys.EXTRACTED_FIELDS,
    SessionKeys.CURRENT_FIELD,
    SessionKeys.LAST_QUESTION,
    SessionKeys.COMPLETED,
]


class SessionManager:
    """
    Reads and writes onboarding sessions through a SessionStore.
    Writes are ordered so that the question index is always stored before
    the current-field pointer that belongs to it.
    """

    def __init__(self, store: SessionStore):
        """
        Initialize session manager.

        Args:
            store: Store implementation to use
        """
        self.store = store
        self._locks = KeyedLocks()

    def lock(self, session_id: str) -> AsyncContextManager[None]:
        """
        Per-session lock; holders have exclusive use of the session.
        The registry entry is dropped once no caller holds or awaits it.
        """
        return self._locks.hold(session_id)

    # Active session pointer

    async def get_active_session_id(self) -> Optional[str]:
        return await self.store.get(SessionKeys.CURRENT_SESSION_ID.value)

    async def set_active_session_id(self, session_id: str) -> None:
        await self.store.put(SessionKeys.CURRENT_SESSION_ID.value, session_id)

    async def exists(self, session_id: str) -> bool:
        return await self.store.has(SessionKeys.FIELDS.with_session_id(session_id))

    async def resolve_session_id(self, session_id: Optional[str] = None) -> str:
        """
        Resolve an explicit session ID, or fall back to the active session.

        Raises:
            NoActiveSession: if no ID is given and none is active, or the session does not exist
        """
        if not session_id:
            session_id = await self.get_active_session_id()

        if not session_id:
            raise NoActiveSession()

        if not await self.exists(session_id):
            raise NoActiveSession(f"No onboarding session found with id '{session_id}'.")

        return session_id

    # Whole-session operations

    async def create(self, session: Session) -> None:
        """Persist a freshly started session and make it the active one."""
        sid = session.session_id
        await self.store.put(
            SessionKeys.FIELDS.with_session_id(sid),
            [f.model_dump() for f in session.fields]
        )
        await self.store.put(
            SessionKeys.CONVERSATION.with_session_id(sid),
            [m.model_dump(mode="json") for m in session.history]
        )
        await self.store.put(SessionKeys.EXTRACTED_FIELDS.with_session_id(sid), dict(session.extracted))
        await self.store.put(SessionKeys.COMPLETED.with_session_id(sid), session.completed)
        await self.set_position(sid, session.current_index, session.current_field)
        await self.set_active_session_id(sid)
        logger.debug(f"Session {sid} persisted with {len(session.fields)} fields")

    async def load(self, session_id: str) -> Session:
        """Load every slot of a session into a Session aggregate."""
        raw_fields = await self.store.get(SessionKeys.FIELDS.with_session_id(session_id))
        if raw_fields is None:
            raise NoActiveSession(f"No onboarding session found with id '{session_id}'.")

        return Session(
            session_id=session_id,
            fields=[FieldSpec.model_validate(f) for f in raw_fields],
            current_index=await self.store.get(SessionKeys.LAST_QUESTION.with_session_id(session_id), 0),
            current_field=await self.store.get(SessionKeys.CURRENT_FIELD.with_session_id(session_id)),
            history=await self.get_history(session_id),
            extracted=await self.get_extracted(session_id),
            completed=bool(await self.store.get(SessionKeys.COMPLETED.with_session_id(session_id), False)),
        )

    async def delete(self, session_id: str) -> None:
        """Delete every slot of a session; clear the active pointer if it points here."""
        for slot in SESSION_SLOTS:
            await self.store.delete(slot.with_session_id(session_id))

        if await self.get_active_session_id() == session_id:
            await self.store.delete(SessionKeys.CURRENT_SESSION_ID.value)

        logger.debug(f"Session {session_id} deleted")

    # Individual slots

    async def set_position(self, session_id: str, index: int, field_name: Optional[str]) -> None:
        """Move the session to a question. The index is written first."""
        await self.store.put(SessionKeys.LAST_QUESTION.with_session_id(session_id), index)
        await self.store.put(SessionKeys.CURRENT_FIELD.with_session_id(session_id), field_name)

    async def mark_completed(self, session_id: str) -> None:
        await self.store.put(SessionKeys.COMPLETED.with_session_id(session_id), True)

    async def append_message(self, session_id: str, message: ChatMessage) -> None:
        """Append a message to the conversation history."""
        key = SessionKeys.CONVERSATION.with_session_id(session_id)
        conversation: List[Dict[str, Any]] = await self.store.get(key, [])
        conversation.append(message.model_dump(mode="json"))
        await self.store.put(key, conversation)

    async def get_history(self, session_id: str) -> List[ChatMessage]:
        raw = await self.store.get(SessionKeys.CONVERSATION.with_session_id(session_id), [])
        return [ChatMessage.model_validate(m) for m in raw]

    async def store_extracted_field(self, session_id: str, field_name: str, value: str) -> None:
        """Store an accepted answer under its field name."""
        key = SessionKeys.EXTRACTED_FIELDS.with_session_id(session_id)
        extracted: Dict[str, str] = await self.store.get(key, {})
        extracted[field_name] = value
        await self.store.put(key, extracted)

    async def get_extracted(self, session_id: str) -> Dict[str, str]:
        return await self.store.get(SessionKeys.EXTRACTED_FIELDS.with_session_id(session_id), {})
