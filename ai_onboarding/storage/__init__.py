"""Storage module - provides interface and implementations for session persistence."""

from .interface import SessionStore
from .memory_storage import MemorySessionStore
from .local_storage import LocalSessionStore
from .factory import create_session_store
from .locks import KeyedLocks

__all__ = ['SessionStore', 'MemorySessionStore', 'LocalSessionStore', 'create_session_store', 'KeyedLocks']
