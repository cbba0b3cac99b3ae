"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a presentation layer (web or
mobile reader) and the engine.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has been ended
- STORY_NOT_FOUND: Story id is not in the repository
- STORY_INVALID: Story failed load-time validation
- CHOICE_NOT_FOUND: Choice is not on the current passage
- CHOICE_LOCKED: Choice gate is not satisfied
- CONFIRMATION_REQUIRED: Critical choice submitted without confirmation
- SESSION_NOT_ACTIVE: Session has not started or has ended
- NO_SAVED_GAME: Nothing stored for this session
- PERSISTENCE_FAILURE: No storage configured or storage failed
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session phase values."""
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    ENDED = "ended"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    STORY_NOT_FOUND = "STORY_NOT_FOUND"
    STORY_INVALID = "STORY_INVALID"
    CHOICE_NOT_FOUND = "CHOICE_NOT_FOUND"
    CHOICE_LOCKED = "CHOICE_LOCKED"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    SESSION_NOT_ACTIVE = "SESSION_NOT_ACTIVE"
    NO_SAVED_GAME = "NO_SAVED_GAME"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class StoryInfo(BaseModel):
    """Story listing entry."""
    story_id: str
    title: str
    author: str = ""
    description: str = ""
    passage_count: int = 0


class ChoiceInfo(BaseModel):
    """A choice on the current passage, with its lock state."""
    choice_id: str
    text: str
    critical: bool = False
    selectable: bool = True
    block_reason: Optional[str] = Field(None, description="SANITY_TOO_LOW, SANITY_TOO_HIGH, MISSING_ITEMS, CONDITIONS_NOT_MET")
    lock_label: str = ""
    missing_items: list[str] = Field(default_factory=list)
    sanity_delta: int = 0


class PlayerInfo(BaseModel):
    """Player state as the reader sees it."""
    sanity: int
    sanity_status: str
    is_low_sanity: bool = False
    inventory: list[str] = Field(default_factory=list)
    flags: dict[str, bool] = Field(default_factory=dict)
    variables: dict[str, Any] = Field(default_factory=dict)
    history_length: int = 0


class PassageInfo(BaseModel):
    """The passage being read."""
    passage_id: str
    title: Optional[str] = None
    phase: Optional[str] = None
    paragraphs: list[str] = Field(default_factory=list)
    background: Optional[str] = None
    music: Optional[str] = None
    choices: list[ChoiceInfo] = Field(default_factory=list)


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to start a story. Omit story_id for the default story."""
    story_id: Optional[str] = None


class ChoiceRequest(BaseModel):
    """Request to take a choice."""
    choice_id: str = Field(..., min_length=1)
    confirmed: bool = Field(False, description="Required for critical choices")


class SettingRequest(BaseModel):
    """Request to change one reader setting."""
    key: str = Field(..., min_length=1)
    value: Any = None


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class SessionResponse(BaseModel):
    """Session snapshot after an operation."""
    session_id: str
    status: SessionStatus
    story_id: Optional[str] = None
    story_title: Optional[str] = None
    passage: Optional[PassageInfo] = None
    player: Optional[PlayerInfo] = None
    can_go_back: bool = False
    sound_cues: list[str] = Field(default_factory=list)
    state_changes: list[str] = Field(default_factory=list)
    events: list[str] = Field(default_factory=list, description="Event type names, in emission order")
    settings: dict[str, Any] = Field(default_factory=dict)
    api_version: str = "v1"


class StoryListResponse(BaseModel):
    stories: list[StoryInfo] = Field(default_factory=list)
    count: int = 0


class SaveResponse(BaseModel):
    session_id: str
    success: bool
    pending_saves: int = 0


class EndSessionResponse(BaseModel):
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    service: str = "hollow-engine"
    version: str
    stories: int = 0
    sessions: int = 0
