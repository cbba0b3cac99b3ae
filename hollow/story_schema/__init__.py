"""Story schema - immutable story graph, effect DSL and load-time validation."""

from .story import Story, Passage, Choice, TextVariant, StoryPhase
from .effect_dsl import (
    Effect,
    EffectType,
    SanityChange,
    InventoryAdd,
    InventoryRemove,
    SetFlag,
    SetVariable,
    PlaySound,
)
from .validation import validate_story, ensure_valid, StoryValidationError, ValidationResult
from .documents import StoryDocument, parse_story, load_story_file

__all__ = [
    "Story",
    "Passage",
    "Choice",
    "TextVariant",
    "StoryPhase",
    "Effect",
    "EffectType",
    "SanityChange",
    "InventoryAdd",
    "InventoryRemove",
    "SetFlag",
    "SetVariable",
    "PlaySound",
    "validate_story",
    "ensure_valid",
    "StoryValidationError",
    "ValidationResult",
    "StoryDocument",
    "parse_story",
    "load_story_file",
]
