"""
API Module - Reader front-end interface.

Exposes the engine via REST API. A front-end:
1. Lists stories
2. Starts a session
3. Renders each snapshot and posts the reader's choices
4. Confirms critical choices when asked
5. Saves and restores sessions

Each session is served by its own controller.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    ChoiceRequest,
    SettingRequest,
    # Responses
    SessionResponse,
    StoryListResponse,
    SaveResponse,
    EndSessionResponse,
    HealthResponse,
    ErrorResponse,
    # Shared
    StoryInfo,
    PassageInfo,
    ChoiceInfo,
    PlayerInfo,
    ErrorCode,
    SessionStatus,
)
from .service import APIService
from .app import create_app, create_service, ERROR_STATUS

__all__ = [
    # Requests
    "CreateSessionRequest",
    "ChoiceRequest",
    "SettingRequest",
    # Responses
    "SessionResponse",
    "StoryListResponse",
    "SaveResponse",
    "EndSessionResponse",
    "HealthResponse",
    "ErrorResponse",
    # Shared
    "StoryInfo",
    "PassageInfo",
    "ChoiceInfo",
    "PlayerInfo",
    "ErrorCode",
    "SessionStatus",
    # Service
    "APIService",
    "create_app",
    "create_service",
    "ERROR_STATUS",
]
