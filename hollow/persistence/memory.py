"""In-process persistence. Records are kept as JSON text so round-trips match disk."""

from __future__ import annotations
import asyncio

from .adapter import PersistenceAdapter, SaveRecord


class InMemoryPersistence(PersistenceAdapter):
    """
    Dict-backed adapter.

    `delay` adds an artificial pause to every call, which makes
    in-flight saves observable in tests.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self._records: dict[str, str] = {}
        self.save_count = 0

    async def save(self, session_key: str, record: SaveRecord) -> bool:
        payload = record.to_json()
        if self.delay:
            await asyncio.sleep(self.delay)
        self._records[session_key] = payload
        self.save_count += 1
        return True

    async def load(self, session_key: str) -> SaveRecord | None:
        if self.delay:
            await asyncio.sleep(self.delay)
        payload = self._records.get(session_key)
        if payload is None:
            return None
        return SaveRecord.from_json(payload)

    async def delete(self, session_key: str) -> bool:
        return self._records.pop(session_key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._records)
