"""
FastAPI Application - REST API for reader front-ends.

Endpoints:
    GET    /api/v1/health                       Health check
    GET    /api/v1/stories                      List playable stories
    POST   /api/v1/sessions                     Start a story in a new session
    GET    /api/v1/sessions                     List session ids
    GET    /api/v1/sessions/{id}                Current snapshot
    POST   /api/v1/sessions/{id}/choices        Take a choice
    POST   /api/v1/sessions/{id}/back           Go back one passage
    POST   /api/v1/sessions/{id}/reset          Reset the session
    PATCH  /api/v1/sessions/{id}/settings       Change one reader setting
    POST   /api/v1/sessions/{id}/save           Save now
    POST   /api/v1/sessions/{id}/restore        Resume from the last save
    DELETE /api/v1/sessions/{id}                End the session

Critical Choice Flow:
    1. POST /choices with confirmed=false
    2. 409 CONFIRMATION_REQUIRED -> ask the reader
    3. POST /choices again with confirmed=true

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Union
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import HollowConfig
from ..persistence import InMemoryPersistence, JsonFilePersistence
from ..stories import create_default_repository
from .service import APIService
from .schemas import (
    ChoiceRequest,
    CreateSessionRequest,
    EndSessionResponse,
    ErrorCode,
    ErrorResponse,
    HealthResponse,
    SaveResponse,
    SessionResponse,
    SettingRequest,
    StoryListResponse,
)

logger = logging.getLogger(__name__)

# HTTP status per error code; anything unlisted is a 400
ERROR_STATUS = {
    ErrorCode.SESSION_NOT_FOUND: 404,
    ErrorCode.STORY_NOT_FOUND: 404,
    ErrorCode.NO_SAVED_GAME: 404,
    ErrorCode.CHOICE_LOCKED: 409,
    ErrorCode.CONFIRMATION_REQUIRED: 409,
    ErrorCode.SESSION_NOT_ACTIVE: 409,
    ErrorCode.CHOICE_NOT_FOUND: 422,
    ErrorCode.STORY_INVALID: 422,
    ErrorCode.PERSISTENCE_FAILURE: 503,
    ErrorCode.INTERNAL_ERROR: 500,
}


def create_service(config: HollowConfig) -> APIService:
    """Build the default service from configuration."""
    repository = create_default_repository()
    if config.story_dir:
        loaded = repository.load_directory(config.story_dir, strict=False)
        logger.info("Loaded %d stories from %s", len(loaded), config.story_dir)

    if config.save_dir:
        persistence = JsonFilePersistence(config.save_dir)
    else:
        persistence = InMemoryPersistence()
    return APIService(repository=repository, persistence=persistence)


def create_app(service=None, config: HollowConfig | None = None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (built from config if not provided)
        config: Optional HollowConfig (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    config = config or HollowConfig.from_env()

    app = FastAPI(
        title="Hollow Engine API",
        description="""
Branching horror narrative engine.

## Error Codes

| Code | Status | Description |
|------|--------|-------------|
| `SESSION_NOT_FOUND` | 404 | Session does not exist |
| `STORY_NOT_FOUND` | 404 | Story id is unknown |
| `NO_SAVED_GAME` | 404 | Nothing saved for this session |
| `CHOICE_LOCKED` | 409 | Choice gate not satisfied |
| `CONFIRMATION_REQUIRED` | 409 | Critical choice needs `confirmed=true` |
| `SESSION_NOT_ACTIVE` | 409 | Session not started or already ended |
| `CHOICE_NOT_FOUND` | 422 | Choice is not on the current passage |
| `STORY_INVALID` | 422 | Story failed validation |
| `PERSISTENCE_FAILURE` | 503 | Save storage unavailable |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or create_service(config)
    app.state.service = api_service

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=ERROR_STATUS.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    def respond(response):
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    error_responses = {
        404: {"model": ErrorResponse, "description": "Session or story not found"},
        409: {"model": ErrorResponse, "description": "Operation not allowed now"},
        422: {"model": ErrorResponse, "description": "Invalid choice or story"},
    }

    # =========================================================================
    # Story Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/stories",
        response_model=StoryListResponse,
        tags=["Stories"],
        summary="List playable stories",
    )
    async def list_stories() -> StoryListResponse:
        return api_service.list_stories()

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        status_code=201,
        responses=error_responses,
        tags=["Sessions"],
        summary="Start a story in a new session",
    )
    async def create_session(
        body: CreateSessionRequest | None = None,
    ) -> Union[SessionResponse, JSONResponse]:
        """
        Start a new game.

        Omit `story_id` to play the default story.
        """
        return respond(api_service.create_session(body or CreateSessionRequest()))

    @app.get(
        "/api/v1/sessions",
        tags=["Sessions"],
        summary="List session ids",
    )
    async def list_sessions() -> dict:
        sessions = api_service.list_sessions()
        return {"sessions": sessions, "count": len(sessions)}

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Sessions"],
        summary="Get the current snapshot",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.get_session(session_id))

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a session",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        """End a session and release its controller."""
        return api_service.end_session(session_id)

    # =========================================================================
    # Narrative Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/choices",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Narrative"],
        summary="Take a choice on the current passage",
    )
    async def make_choice(
        session_id: str,
        body: ChoiceRequest,
    ) -> Union[SessionResponse, JSONResponse]:
        """
        Take a choice.

        **Request Body:**
        ```json
        {"choice_id": "front-door", "confirmed": false}
        ```

        Locked choices fail with `CHOICE_LOCKED`; `details` carries the
        block reason and any missing items.
        """
        return respond(api_service.make_choice(session_id, body))

    @app.post(
        "/api/v1/sessions/{session_id}/back",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Narrative"],
        summary="Return to the previous passage",
    )
    async def go_back(session_id: str) -> Union[SessionResponse, JSONResponse]:
        """Navigation only. Effects of the undone choice are kept."""
        return respond(api_service.go_back(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/reset",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Narrative"],
        summary="Reset the session",
    )
    async def reset_game(session_id: str) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.reset_game(session_id))

    @app.patch(
        "/api/v1/sessions/{session_id}/settings",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Narrative"],
        summary="Change one reader setting",
    )
    async def update_setting(
        session_id: str,
        body: SettingRequest,
    ) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.update_setting(session_id, body))

    # =========================================================================
    # Save / Restore Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/save",
        response_model=SaveResponse,
        responses={**error_responses, 503: {"model": ErrorResponse}},
        tags=["Persistence"],
        summary="Save the session now",
    )
    async def save_game(session_id: str) -> Union[SaveResponse, JSONResponse]:
        return respond(await api_service.save_game(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/restore",
        response_model=SessionResponse,
        responses={**error_responses, 503: {"model": ErrorResponse}},
        tags=["Persistence"],
        summary="Resume the session from its last save",
    )
    async def restore_game(session_id: str) -> Union[SessionResponse, JSONResponse]:
        return respond(await api_service.restore_game(session_id))

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return api_service.health()

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Hollow Engine API",
            "version": __version__,
            "env": config.env,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app
