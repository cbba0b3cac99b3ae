"""
API Service - Business logic layer between the API and the engine.

The service:
1. Translates API requests to controller calls
2. Manages sessions through the SessionManager
3. Converts TransitionResults into response models

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.).
Every operation returns either its response model or an ErrorResponse.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from .. import __version__
from ..engine_core import NarrativeController, TransitionResult
from ..engine_core.results import SessionSnapshot
from ..persistence import PersistenceAdapter
from ..session import SessionManager
from ..stories import StoryRepository, create_default_repository
from .schemas import (
    ChoiceInfo,
    ChoiceRequest,
    CreateSessionRequest,
    EndSessionResponse,
    ErrorCode,
    ErrorResponse,
    HealthResponse,
    PassageInfo,
    PlayerInfo,
    SaveResponse,
    SessionResponse,
    SessionStatus,
    SettingRequest,
    StoryInfo,
    StoryListResponse,
)

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()
        response = service.create_session(CreateSessionRequest())
        response = service.make_choice(response.session_id, ChoiceRequest(choice_id="front-door"))
    """
    repository: StoryRepository = field(default_factory=create_default_repository)
    persistence: PersistenceAdapter | None = None
    session_manager: SessionManager | None = None

    def __post_init__(self):
        if self.session_manager is None:
            self.session_manager = SessionManager(self.repository, self.persistence)

    # =========================================================================
    # Stories
    # =========================================================================

    def list_stories(self) -> StoryListResponse:
        stories = [
            StoryInfo(
                story_id=story.story_id,
                title=story.title,
                author=story.author,
                description=story.description,
                passage_count=len(story.passages),
            )
            for story in self.repository.list_stories()
        ]
        return StoryListResponse(stories=stories, count=len(stories))

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(self, request: CreateSessionRequest) -> SessionResponse | ErrorResponse:
        session_id, result = self.session_manager.create_session(request.story_id)
        if session_id is None:
            return _error_from_result(result)
        return _session_response(session_id, self.session_manager.get(session_id).controller, result)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get(session_id)
        if session is None:
            return _session_not_found(session_id)
        return _session_response(session_id, session.controller)

    def make_choice(self, session_id: str, request: ChoiceRequest) -> SessionResponse | ErrorResponse:
        return self._run(session_id, lambda c: c.make_choice(request.choice_id, request.confirmed))

    def go_back(self, session_id: str) -> SessionResponse | ErrorResponse:
        return self._run(session_id, lambda c: c.go_back())

    def reset_game(self, session_id: str) -> SessionResponse | ErrorResponse:
        return self._run(session_id, lambda c: c.reset_game())

    def update_setting(self, session_id: str, request: SettingRequest) -> SessionResponse | ErrorResponse:
        return self._run(session_id, lambda c: c.update_setting(request.key, request.value))

    async def save_game(self, session_id: str) -> SaveResponse | ErrorResponse:
        """Queue a save and wait for the queue to drain."""
        session = self.session_manager.get(session_id)
        if session is None:
            return _session_not_found(session_id)
        result = session.controller.save_game()
        if not result.success:
            return _error_from_result(result)
        ok = await session.controller.flush()
        if not ok:
            return ErrorResponse(
                error=f"Saving session {session_id} failed",
                error_code=ErrorCode.PERSISTENCE_FAILURE,
            )
        return SaveResponse(
            session_id=session_id,
            success=True,
            pending_saves=session.controller.pending_saves,
        )

    async def restore_game(self, session_id: str) -> SessionResponse | ErrorResponse:
        """
        Resume a session from its last save.

        Works for sessions this process no longer tracks (e.g. after a
        restart): a fresh controller is created and adopted on success.
        """
        session = self.session_manager.get(session_id)
        if session is not None:
            controller = session.controller
        else:
            controller = self.session_manager.new_controller(session_id)

        result = await controller.restore(session_id)
        if not result.success:
            return _error_from_result(result)
        if session is None:
            self.session_manager.adopt(session_id, controller)
        return _session_response(session_id, controller, result)

    def end_session(self, session_id: str) -> EndSessionResponse:
        success = self.session_manager.end_session(session_id)
        return EndSessionResponse(success=success, session_id=session_id)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_sessions()

    def health(self) -> HealthResponse:
        return HealthResponse(
            version=__version__,
            stories=len(self.repository),
            sessions=len(self.session_manager),
        )

    def _run(self, session_id: str, operation) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get(session_id)
        if session is None:
            return _session_not_found(session_id)
        result: TransitionResult = operation(session.controller)
        if not result.success:
            return _error_from_result(result)
        return _session_response(session_id, session.controller, result)


# =============================================================================
# Conversion Helpers
# =============================================================================

def _session_not_found(session_id: str) -> ErrorResponse:
    return ErrorResponse(
        error=f"Session {session_id} not found",
        error_code=ErrorCode.SESSION_NOT_FOUND,
    )


def _error_from_result(result: TransitionResult) -> ErrorResponse:
    details = None
    if result.block_reason is not None:
        details = {
            "block_reason": result.block_reason.value,
            "missing_items": sorted(result.missing_items),
        }
    return ErrorResponse(
        error=result.error or "Operation failed",
        error_code=ErrorCode(result.error_code.value),
        details=details,
    )


def _session_response(
    session_id: str,
    controller: NarrativeController,
    result: TransitionResult | None = None,
) -> SessionResponse:
    snapshot = controller.snapshot()
    response = SessionResponse(
        session_id=session_id,
        status=SessionStatus(controller.phase.value),
        settings=controller.settings.to_dict(),
    )
    if snapshot is not None:
        response.story_id = snapshot.story_id
        response.story_title = snapshot.story_title
        response.passage = _passage_info(snapshot)
        response.player = _player_info(snapshot)
        response.can_go_back = snapshot.can_go_back
    if result is not None:
        response.sound_cues = list(result.sound_cues)
        response.state_changes = list(result.state_changes)
        response.events = [type(event).__name__ for event in result.events]
    return response


def _passage_info(snapshot: SessionSnapshot) -> PassageInfo:
    return PassageInfo(
        passage_id=snapshot.passage_id,
        title=snapshot.passage_title,
        phase=snapshot.passage_phase.value if snapshot.passage_phase else None,
        paragraphs=list(snapshot.paragraphs),
        background=snapshot.background,
        music=snapshot.music,
        choices=[
            ChoiceInfo(
                choice_id=view.choice_id,
                text=view.text,
                critical=view.critical,
                selectable=view.selectable,
                block_reason=view.block_reason.value if view.block_reason else None,
                lock_label=view.lock_label,
                missing_items=sorted(view.missing_items),
                sanity_delta=view.sanity_delta,
            )
            for view in snapshot.choices
        ],
    )


def _player_info(snapshot: SessionSnapshot) -> PlayerInfo:
    state = snapshot.state
    return PlayerInfo(
        sanity=state.sanity,
        sanity_status=snapshot.sanity_status,
        is_low_sanity=snapshot.is_low_sanity,
        inventory=sorted(state.inventory),
        flags=dict(state.flags),
        variables=dict(state.variables),
        history_length=len(state.history),
    )
