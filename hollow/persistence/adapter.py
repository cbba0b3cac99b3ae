"""
Persistence Adapter - The save/load contract the controller depends on.

The controller never knows where a game is stored. It hands a SaveRecord
to an adapter and asks for one back. Implementations may be slow (both
methods are coroutines) and may fail; the controller treats every failure
as non-fatal.
"""

from __future__ import annotations
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..engine_core.state import PlayerState, SessionPhase

FORMAT_VERSION = 1


class RecordFormatError(ValueError):
    """Raised when stored data cannot be decoded into a SaveRecord."""


@dataclass(frozen=True)
class SaveRecord:
    """
    Everything needed to resume a session.

    The story is referenced by id; the story itself is never stored.
    """
    session_key: str
    state: PlayerState
    phase: SessionPhase = SessionPhase.ACTIVE
    saved_at: float = field(default_factory=time.time)
    format_version: int = FORMAT_VERSION

    @property
    def story_id(self) -> str:
        return self.state.story_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "format_version": self.format_version,
            "session_key": self.session_key,
            "story_id": self.story_id,
            "phase": self.phase.value,
            "saved_at": self.saved_at,
            "state": self.state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SaveRecord:
        try:
            version = int(data.get("format_version", FORMAT_VERSION))
            if version > FORMAT_VERSION:
                raise RecordFormatError(f"Unsupported save format version {version}")
            return cls(
                session_key=data["session_key"],
                state=PlayerState.from_dict(data["state"]),
                phase=SessionPhase(data.get("phase", SessionPhase.ACTIVE.value)),
                saved_at=float(data.get("saved_at", 0.0)),
                format_version=version,
            )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, RecordFormatError):
                raise
            raise RecordFormatError(f"Malformed save record: {e}") from e

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> SaveRecord:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RecordFormatError(f"Save record is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise RecordFormatError("Save record must be a JSON object")
        return cls.from_dict(data)


class PersistenceAdapter(ABC):
    """
    Abstract base class for save storage.

    Implementations can range from an in-process dict to a remote API.
    """

    @abstractmethod
    async def save(self, session_key: str, record: SaveRecord) -> bool:
        """
        Store a record under a session key.

        Returns True on success. May return False or raise on failure;
        callers handle both.
        """

    @abstractmethod
    async def load(self, session_key: str) -> SaveRecord | None:
        """Return the stored record, or None if there is none."""

    async def delete(self, session_key: str) -> bool:
        """Remove a stored record. Returns True if one was removed."""
        return False
