"""
In-Memory Session Store.
Keeps all values in a process-local dict. Suitable for tests and single-process deployments.
"""

import asyncio
import copy
from typing import Any, Dict

from .interface import SessionStore


class MemorySessionStore(SessionStore):
    """Dict-backed store. Values are deep-copied in and out so callers never share state."""

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    async def put(self, key: str, value: Any) -> None:
        async with self._lock:
            self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            return True

    def __len__(self) -> int:
        return len(self._data)

    def keys(self):
        return list(self._data.keys())
