"""
File Store - Saves sessions as JSON files on local disk.

The store:
- Uses a hash of the session key as the file name
- Writes through a temp file and rename, so a crash never leaves half a save
- Treats unreadable files as absent (logged, then removed)
- Runs file IO in a worker thread so the event loop is never blocked
"""

from __future__ import annotations
import asyncio
import hashlib
import logging
import os
from pathlib import Path

from .adapter import PersistenceAdapter, RecordFormatError, SaveRecord

logger = logging.getLogger(__name__)


class JsonFilePersistence(PersistenceAdapter):
    """
    File-based save storage.

    Usage:
        store = JsonFilePersistence(save_dir="~/.hollow/saves")
        await store.save("reader-1", record)
        record = await store.load("reader-1")
    """

    def __init__(self, save_dir: str | Path | None = None):
        if save_dir is None:
            save_dir = Path.home() / ".hollow" / "saves"
        self.save_dir = Path(save_dir).expanduser()
        self.save_dir.mkdir(parents=True, exist_ok=True)

    async def save(self, session_key: str, record: SaveRecord) -> bool:
        path = self._get_save_path(session_key)
        await asyncio.to_thread(self._write, path, record.to_json())
        logger.debug("Saved session %s to %s", session_key, path)
        return True

    async def load(self, session_key: str) -> SaveRecord | None:
        path = self._get_save_path(session_key)
        text = await asyncio.to_thread(self._read, path)
        if text is None:
            return None
        try:
            return SaveRecord.from_json(text)
        except RecordFormatError:
            logger.warning("Discarding unreadable save file %s", path, exc_info=True)
            path.unlink(missing_ok=True)
            return None

    async def delete(self, session_key: str) -> bool:
        path = self._get_save_path(session_key)
        if not path.exists():
            return False
        path.unlink(missing_ok=True)
        return True

    def list_saves(self) -> list[str]:
        """List the hashed names of stored saves."""
        return sorted(f.stem for f in self.save_dir.glob("*.json"))

    def _get_save_path(self, session_key: str) -> Path:
        """
        Get file path for a session key.

        Uses SHA-256 truncated to 16 chars so any key is a safe file name.
        """
        digest = hashlib.sha256(session_key.encode("utf-8")).hexdigest()[:16]
        return self.save_dir / f"{digest}.json"

    @staticmethod
    def _write(path: Path, payload: str):
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)

    @staticmethod
    def _read(path: Path) -> str | None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
