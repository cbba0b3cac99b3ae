"""
Engine Core - Deterministic narrative state management.

The engine is the runtime that:
1. Takes a Story from a repository
2. Owns the PlayerState of one session
3. Evaluates choice gates
4. Applies choice effects via the effect processor
5. Commits transitions and notifies listeners
"""

from .state import (
    PlayerState,
    GameSettings,
    TextSpeed,
    SessionPhase,
    clamp_sanity,
    sanity_status,
    SANITY_MIN,
    SANITY_MAX,
    LOW_SANITY_THRESHOLD,
)
from .effects import EffectOutcome, apply_effects
from .gating import BlockReason, GateResult, evaluate, evaluate_passage
from .results import FailureCode, TransitionResult, SessionSnapshot, ChoiceView
from .events import (
    ChangeCause,
    EndReason,
    StateChanged,
    SanityThresholdCrossed,
    SessionEnded,
    PersistenceFailed,
)
from .controller import NarrativeController

__all__ = [
    "PlayerState",
    "GameSettings",
    "TextSpeed",
    "SessionPhase",
    "clamp_sanity",
    "sanity_status",
    "SANITY_MIN",
    "SANITY_MAX",
    "LOW_SANITY_THRESHOLD",
    "EffectOutcome",
    "apply_effects",
    "BlockReason",
    "GateResult",
    "evaluate",
    "evaluate_passage",
    "FailureCode",
    "TransitionResult",
    "SessionSnapshot",
    "ChoiceView",
    "ChangeCause",
    "EndReason",
    "StateChanged",
    "SanityThresholdCrossed",
    "SessionEnded",
    "PersistenceFailed",
    "NarrativeController",
]
