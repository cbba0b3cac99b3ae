"""
Session Manager - Creates and tracks narrative sessions.

LIFECYCLE:
1. Reader picks a story -> a session is created with its own controller
2. During play every request is routed to that session's controller
3. The reader leaves -> session ended, controller reset
4. Idle sessions are swept by cleanup_stale_sessions

Each session's id doubles as its persistence key, so a restored session
resumes exactly the record its own checkpoints wrote. There is no global
controller; every session owns one.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import time
import uuid

from ..engine_core import NarrativeController, TransitionResult
from ..persistence import PersistenceAdapter
from ..stories import StoryRepository

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One reader's play-through."""
    session_id: str
    controller: NarrativeController
    created_at: float = field(default_factory=time.time)
    last_active: float = field(default_factory=time.time)

    def touch(self):
        self.last_active = time.time()

    def is_active(self) -> bool:
        return self.controller.is_active


class SessionManager:
    """
    Manages narrative sessions.

    Responsibilities:
    - Create sessions (one controller each)
    - Route lookups by session id
    - Clean up ended and idle sessions
    """

    def __init__(
        self,
        repository: StoryRepository,
        persistence: PersistenceAdapter | None = None,
    ):
        self.repository = repository
        self.persistence = persistence
        self._sessions: dict[str, Session] = {}

    def create_session(self, story_id: str | None = None) -> tuple[str | None, TransitionResult]:
        """
        Create a session and start a new game in it.

        Returns (session_id, result). When the game cannot start the
        session is discarded and the id is None.
        """
        session_id = str(uuid.uuid4())
        controller = self.new_controller(session_id)
        result = controller.start_new_game(story_id)
        if not result.success:
            return None, result

        self._sessions[session_id] = Session(session_id=session_id, controller=controller)
        logger.info("Created session %s for story %s", session_id, controller.story.story_id)
        return session_id, result

    def new_controller(self, session_key: str) -> NarrativeController:
        return NarrativeController(
            self.repository,
            persistence=self.persistence,
            session_key=session_key,
        )

    def adopt(self, session_id: str, controller: NarrativeController) -> Session:
        """Track an existing controller (e.g. one resumed from a save)."""
        session = Session(session_id=session_id, controller=controller)
        self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    def end_session(self, session_id: str) -> bool:
        """Remove a session and reset its controller."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.controller.reset_game()
        logger.info("Ended session %s", session_id)
        return True

    def list_active_sessions(self) -> list[str]:
        """IDs of sessions whose game is still in progress."""
        return [sid for sid, session in self._sessions.items() if session.is_active()]

    def list_sessions(self) -> list[str]:
        return list(self._sessions)

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """
        End sessions idle for longer than max_age_seconds.

        Returns the number of sessions removed.
        """
        now = time.time()
        stale = [
            sid for sid, session in self._sessions.items()
            if now - session.last_active > max_age_seconds
        ]
        for session_id in stale:
            self.end_session(session_id)
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)
