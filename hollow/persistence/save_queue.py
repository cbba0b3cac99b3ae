"""
Save Queue - Ordered, fire-and-forget save pipeline.

The controller commits a transition in memory first, then submits a record
here. The queue:
- Saves records one at a time, in submission order, so an older snapshot
  can never overwrite a newer one
- Drains in a background task when an event loop is running
- Holds records until flush() when there is no running loop
- Keeps a record queued until its save call returns, so a cancelled drain
  loses nothing
- Logs and reports failures without stopping later saves
"""

from __future__ import annotations
import asyncio
import logging
from collections import deque
from typing import Callable

from .adapter import PersistenceAdapter, SaveRecord

logger = logging.getLogger(__name__)

FailureCallback = Callable[[str, str], None]


class SaveQueue:
    """Sequential save pipeline in front of a PersistenceAdapter."""

    def __init__(self, adapter: PersistenceAdapter, on_failure: FailureCallback | None = None):
        self.adapter = adapter
        self.on_failure = on_failure
        self._pending: deque[SaveRecord] = deque()
        self._task: asyncio.Task | None = None
        self.failures = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, record: SaveRecord):
        """Queue a record. Never blocks and never raises."""
        self._pending.append(record)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if not self.in_flight or self._task.get_loop() is not loop:
            self._task = loop.create_task(self._drain())

    async def flush(self) -> bool:
        """
        Wait until every queued record has been attempted.

        Returns True if all attempted saves succeeded.
        """
        loop = asyncio.get_running_loop()
        failures_before = self.failures
        while self._pending or self.in_flight:
            if not self.in_flight or self._task.get_loop() is not loop:
                self._task = loop.create_task(self._drain())
            await self._task
        return self.failures == failures_before

    async def _drain(self) -> bool:
        all_ok = True
        while self._pending:
            record = self._pending[0]
            if not await self._save_one(record):
                all_ok = False
            self._pending.popleft()
        return all_ok

    async def _save_one(self, record: SaveRecord) -> bool:
        key = record.session_key
        try:
            ok = await self.adapter.save(key, record)
        except Exception as e:
            logger.exception("Save of session %s raised", key)
            self._report(key, f"{type(e).__name__}: {e}")
            return False
        if not ok:
            logger.warning("Save of session %s was rejected by the adapter", key)
            self._report(key, "adapter reported failure")
            return False
        return True

    def _report(self, key: str, error: str):
        self.failures += 1
        if self.on_failure is None:
            return
        try:
            self.on_failure(key, error)
        except Exception:
            logger.exception("Save failure callback raised")
