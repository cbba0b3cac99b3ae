"""
Persistence - Pluggable save/load behind a small async contract.

The engine depends only on PersistenceAdapter. Concrete storage
(in-process, local files) lives here; anything else (a remote API,
browser storage behind an HTTP bridge) implements the same two methods.
"""

from .adapter import PersistenceAdapter, SaveRecord, RecordFormatError, FORMAT_VERSION
from .memory import InMemoryPersistence
from .file_store import JsonFilePersistence
from .save_queue import SaveQueue

__all__ = [
    "PersistenceAdapter",
    "SaveRecord",
    "RecordFormatError",
    "FORMAT_VERSION",
    "InMemoryPersistence",
    "JsonFilePersistence",
    "SaveQueue",
]
