"""
Session Module - Manages concurrent narrative sessions.

A session represents one reader's play-through:
- Created when the reader starts a story
- Owns one NarrativeController
- Checkpoints under its own id when persistence is configured
- Ended explicitly or swept when idle
"""

from .manager import Session, SessionManager

__all__ = [
    "Session",
    "SessionManager",
]
