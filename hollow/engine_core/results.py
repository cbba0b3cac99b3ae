"""
Results - Typed outcomes of controller operations, and session snapshots.

Every controller operation returns a TransitionResult. Failures are values
with a FailureCode, never exceptions, so callers handle each case and the
presentation layer can show a specific reason.

Snapshots are what the presentation layer renders. They are copies; no
snapshot ever aliases the controller's live state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..story_schema.story import Story, StoryPhase, split_paragraphs
from .gating import BlockReason, evaluate
from .state import PlayerState, SessionPhase


class FailureCode(Enum):
    """Why an operation did not apply."""
    STORY_NOT_FOUND = "STORY_NOT_FOUND"
    STORY_INVALID = "STORY_INVALID"
    CHOICE_NOT_FOUND = "CHOICE_NOT_FOUND"
    CHOICE_LOCKED = "CHOICE_LOCKED"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    SESSION_NOT_ACTIVE = "SESSION_NOT_ACTIVE"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    NO_SAVED_GAME = "NO_SAVED_GAME"


@dataclass(frozen=True)
class ChoiceView:
    """A choice as the reader sees it: label plus lock state."""
    choice_id: str
    text: str
    critical: bool
    selectable: bool
    block_reason: BlockReason | None = None
    missing_items: frozenset[str] = frozenset()
    lock_label: str = ""
    sanity_delta: int = 0


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Read-only view of a session after a transition.

    `state` is a deep copy of the player state at commit time.
    """
    phase: SessionPhase
    state: PlayerState
    story_id: str
    story_title: str
    passage_id: str
    text: str
    paragraphs: tuple[str, ...] = ()
    passage_title: str | None = None
    passage_phase: StoryPhase | None = None
    background: str | None = None
    music: str | None = None
    choices: tuple[ChoiceView, ...] = ()
    sanity_status: str = ""
    is_low_sanity: bool = False
    can_go_back: bool = False

    @property
    def sanity(self) -> int:
        return self.state.sanity

    def get_choice(self, choice_id: str) -> ChoiceView | None:
        for view in self.choices:
            if view.choice_id == choice_id:
                return view
        return None


def build_snapshot(story: Story, state: PlayerState, phase: SessionPhase) -> SessionSnapshot:
    """Build a snapshot of the given state against its story."""
    passage = story.get_passage(state.current_passage_id)
    text = passage.text_for(state) if passage else ""
    views = []
    if passage and phase == SessionPhase.ACTIVE:
        for choice in passage.choices:
            gate = evaluate(choice, state)
            views.append(ChoiceView(
                choice_id=choice.choice_id,
                text=choice.text,
                critical=choice.critical,
                selectable=gate.selectable,
                block_reason=gate.block_reason,
                missing_items=gate.missing_items,
                lock_label=gate.label,
                sanity_delta=choice.sanity_delta,
            ))

    return SessionSnapshot(
        phase=phase,
        state=state.clone(),
        story_id=story.story_id,
        story_title=story.title,
        passage_id=state.current_passage_id,
        text=text,
        paragraphs=tuple(split_paragraphs(text)),
        passage_title=passage.title if passage else None,
        passage_phase=passage.phase if passage else None,
        background=passage.background if passage else None,
        music=passage.music if passage else None,
        choices=tuple(views),
        sanity_status=state.sanity_status,
        is_low_sanity=state.is_low_sanity,
        can_go_back=phase == SessionPhase.ACTIVE and bool(state.history),
    )


@dataclass
class TransitionResult:
    """
    Result of a controller operation.

    Contains:
    - Whether the operation applied
    - Failure code and message (if it did not)
    - The snapshot after the operation (if it did)
    - Side channels: sound cues, human-readable changes, emitted events
    """
    success: bool
    error: str | None = None
    error_code: FailureCode | None = None

    # CHOICE_LOCKED details
    block_reason: BlockReason | None = None
    missing_items: frozenset[str] = frozenset()

    snapshot: SessionSnapshot | None = None
    sound_cues: list[str] = field(default_factory=list)
    state_changes: list[str] = field(default_factory=list)
    events: list[Any] = field(default_factory=list)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: FailureCode,
        block_reason: BlockReason | None = None,
        missing_items: frozenset[str] = frozenset(),
    ) -> TransitionResult:
        """Create a failure result."""
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            block_reason=block_reason,
            missing_items=missing_items,
        )

    @classmethod
    def ok(
        cls,
        snapshot: SessionSnapshot | None,
        changes: list[str] | None = None,
        sound_cues: list[str] | None = None,
        events: list[Any] | None = None,
    ) -> TransitionResult:
        """Create a success result."""
        return cls(
            success=True,
            snapshot=snapshot,
            state_changes=changes or [],
            sound_cues=sound_cues or [],
            events=events or [],
        )
