"""
Local Filesystem Session Store.
Stores each key as a small JSON file under a base directory on the server.
Keys are percent-encoded into file names, so distinct keys never share a file.
"""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

import aiofiles

from .interface import SessionStore
from .locks import KeyedLocks

logger = logging.getLogger(__name__)

# Longest encoded key used verbatim as a file name; longer keys are hashed
MAX_NAME_LENGTH = 200


class LocalSessionStore(SessionStore):
    """
    Local filesystem store implementation.
    One JSON file per key; per-key locks serialize writers of the same key.
    """

    def __init__(self, base_dir: str = "./data/sessions"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored files
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._locks = KeyedLocks()

    def _get_full_path(self, key: str) -> Path:
        """Convert a key to a file path within the base directory."""
        if not key:
            raise ValueError("Storage key must not be empty")
        name = quote(key, safe='')
        if len(name) > MAX_NAME_LENGTH:
            # "%%" never occurs in quote() output
            name = "%%" + hashlib.sha256(key.encode('utf-8')).hexdigest()
        full_path = (self.base_dir / f"{name}.json").resolve()

        # Security check: ensure path is within base_dir
        if full_path.parent != self.base_dir:
            raise ValueError(f"Invalid key: {key} - path traversal detected")

        return full_path

    async def get(self, key: str, default: Any = None) -> Any:
        """Load a value from its JSON file."""
        full_path = self._get_full_path(key)
        async with self._locks.hold(key):
            if not full_path.exists():
                return default
            async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
                content = await f.read()
        return json.loads(content)

    async def put(self, key: str, value: Any) -> None:
        """Write a value to its JSON file, replacing the previous one atomically."""
        full_path = self._get_full_path(key)
        tmp_path = full_path.with_suffix('.json.tmp')
        payload = json.dumps(value, ensure_ascii=False, default=str)
        async with self._locks.hold(key):
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(payload)
            tmp_path.replace(full_path)
        logger.debug(f"Stored key {key} ({len(payload)} bytes)")

    async def delete(self, key: str) -> bool:
        """Delete a key's JSON file."""
        full_path = self._get_full_path(key)
        async with self._locks.hold(key):
            if not full_path.exists():
                return False
            full_path.unlink()
        return True
