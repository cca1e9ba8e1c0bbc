"""
Session Store Interface - Abstract key/value storage for onboarding sessions.
This interface enables seamless switching between in-memory, local files, Redis, etc.
"""

from abc import ABC, abstractmethod
from typing import Any


class SessionStore(ABC):
    """
    Abstract key/value store. Values are opaque, JSON-compatible objects.
    Implementations must be safe for concurrent access to distinct keys.
    """

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """
        Read the value stored under a key.

        Args:
            key: Scoped key (e.g., "onboarding_fields_<session_id>")
            default: Value returned when the key is absent

        Returns:
            The stored value, or default
        """
        pass

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: Scoped key
            value: JSON-compatible value
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete the value stored under a key.

        Args:
            key: Scoped key

        Returns:
            bool: True if a value was deleted, False if the key was absent
        """
        pass

    async def has(self, key: str) -> bool:
        """Check whether a value is stored under a key."""
        sentinel = object()
        return await self.get(key, sentinel) is not sentinel
