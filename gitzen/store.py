"""
Key-value store interface.

The production backend lives outside this package; everything here talks
to storage only through these four operations. An in-memory implementation
for tests and local development is in gitzen.testing.
"""

import json
from abc import ABC, abstractmethod
from typing import Any


class KVStore(ABC):
    """Async string key-value store with optional per-key TTL."""

    @abstractmethod
    async def get_text(self, key: str) -> str | None:
        """Return the stored value, or None if missing or expired."""

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store a value, optionally expiring after `ttl_seconds`."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a key. Deleting a missing key is not an error."""

    async def get_json(self, key: str) -> Any:
        """Return the stored value parsed as JSON, or None if missing."""
        text = await self.get_text(key)
        if text is None:
            return None
        return json.loads(text)

    async def put_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        await self.put(key, json.dumps(value), ttl_seconds)
