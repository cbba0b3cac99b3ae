"""
Stories - The playable story collection.

- repository.py: validated story registry (code-authored or JSON files)
- builtin.py: the Eden's Hollow anthology
"""

from .builtin import (
    LIGHTHOUSE_ID,
    MANOR_ID,
    create_abandoned_manor,
    create_default_repository,
    create_forgotten_lighthouse,
)
from .repository import StoryRepository

__all__ = [
    "StoryRepository",
    "create_default_repository",
    "create_abandoned_manor",
    "create_forgotten_lighthouse",
    "MANOR_ID",
    "LIGHTHOUSE_ID",
]
