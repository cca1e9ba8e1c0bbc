"""
Session Store Factory - Creates the configured session store instance.
"""

from .interface import SessionStore
from .local_storage import LocalSessionStore
from .memory_storage import MemorySessionStore


def create_session_store(storage_type: str = "memory", local_storage_path: str = "./data/sessions") -> SessionStore:
    """
    Create a session store based on configuration.

    Args:
        storage_type: "memory" or "local"
        local_storage_path: Base directory for the local store

    Returns:
        SessionStore instance
    """
    if storage_type == "memory":
        return MemorySessionStore()
    elif storage_type == "local":
        return LocalSessionStore(local_storage_path)
    else:
        raise ValueError(f"Unsupported storage type: {storage_type}")
