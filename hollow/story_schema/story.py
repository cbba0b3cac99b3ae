"""
Story Model - Passages, choices and the stories that hold them.

A story is an immutable directed graph:
- Passages are nodes (text plus ordered outgoing choices)
- Choices are edges (target passage, effects, gating predicates)
- The player state only ever holds a passage id, never a passage

Nothing in here is mutated after construction. The engine reads stories;
it never writes them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, TYPE_CHECKING

from .effect_dsl import Effect, SanityChange

if TYPE_CHECKING:
    from ..engine_core.state import PlayerState


class StoryPhase(Enum):
    """Narrative progress tag. Used for presentation theming only."""
    INTRO = "intro"
    EARLY = "early"
    MID = "mid"
    LATE = "late"
    ENDING = "ending"

    @classmethod
    def parse(cls, value: str | StoryPhase | None) -> StoryPhase | None:
        """Parse a phase tag, accepting the older authoring names."""
        if value is None or isinstance(value, StoryPhase):
            return value
        value = value.strip().lower()
        return cls(PHASE_ALIASES.get(value, value))


PHASE_ALIASES = {
    "introduction": "intro",
    "descent": "early",
    "climax": "late",
}


@dataclass(frozen=True)
class Choice:
    """
    A player-selectable edge between two passages.

    Gating fields are all optional. An unset gate never blocks.
    `critical` choices need an explicit confirmation before they apply.
    """
    choice_id: str
    text: str
    next_passage_id: str
    effects: tuple[Effect, ...] = ()

    # Gates
    min_sanity: int | None = None
    max_sanity: int | None = None
    requires_items: frozenset[str] = frozenset()
    requires_flags: Mapping[str, bool] = field(default_factory=dict, hash=False)

    critical: bool = False

    def __post_init__(self):
        object.__setattr__(self, "requires_flags", _frozen_mapping(self.requires_flags))

    @property
    def sanity_delta(self) -> int:
        """Net sanity change of this choice, before clamping."""
        return sum(e.delta for e in self.effects if isinstance(e, SanityChange))

    @property
    def is_gated(self) -> bool:
        return (
            self.min_sanity is not None
            or self.max_sanity is not None
            or bool(self.requires_items)
            or bool(self.requires_flags)
        )


@dataclass(frozen=True)
class TextVariant:
    """
    Alternate passage text shown when the player state matches.

    All set conditions must hold. Variants are checked in authored order
    and the first match wins.
    """
    text: str
    sanity_below: int | None = None
    sanity_above: int | None = None
    has_items: frozenset[str] = frozenset()
    has_flags: Mapping[str, bool] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "has_flags", _frozen_mapping(self.has_flags))

    def matches(self, state: PlayerState) -> bool:
        if self.sanity_below is not None and not state.sanity < self.sanity_below:
            return False
        if self.sanity_above is not None and not state.sanity > self.sanity_above:
            return False
        if not self.has_items <= state.inventory:
            return False
        for name, expected in self.has_flags.items():
            if state.flags.get(name, False) != expected:
                return False
        return True


@dataclass(frozen=True)
class Passage:
    """A node of story text plus its outgoing choices."""
    passage_id: str
    text: str
    choices: tuple[Choice, ...] = ()
    title: str | None = None
    phase: StoryPhase | None = None

    # Opaque presentation hints, passed through untouched
    background: str | None = None
    music: str | None = None

    variants: tuple[TextVariant, ...] = ()

    @property
    def paragraphs(self) -> list[str]:
        return split_paragraphs(self.text)

    def get_choice(self, choice_id: str) -> Choice | None:
        for choice in self.choices:
            if choice.choice_id == choice_id:
                return choice
        return None

    def text_for(self, state: PlayerState) -> str:
        """Passage text as the given player should read it."""
        for variant in self.variants:
            if variant.matches(state):
                return variant.text
        return self.text


@dataclass(frozen=True)
class Story:
    """
    A complete, immutable story graph.

    `ending_passage_ids` is the designated ending set. Reaching any of
    them ends the session.
    """
    story_id: str
    title: str
    start_passage_id: str
    passages: Mapping[str, Passage]
    author: str = ""
    ending_passage_ids: frozenset[str] = frozenset()
    starting_sanity: int = 100
    description: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def get_passage(self, passage_id: str) -> Passage | None:
        return self.passages.get(passage_id)

    @property
    def start_passage(self) -> Passage | None:
        return self.passages.get(self.start_passage_id)

    def is_ending(self, passage_id: str) -> bool:
        return passage_id in self.ending_passage_ids


def split_paragraphs(text: str) -> list[str]:
    """Split display text on blank lines, dropping empty paragraphs."""
    blocks = [block.strip() for block in text.replace("\r\n", "\n").split("\n\n")]
    return [block for block in blocks if block]


def _frozen_mapping(values: Mapping[str, bool]) -> Mapping[str, bool]:
    """Read-only copy of a gate mapping."""
    return MappingProxyType(dict(values))
