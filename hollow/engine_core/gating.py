"""
Choice Gate Evaluator - Decides whether a choice can be taken right now.

Rules are checked in a fixed order and the first failure is reported:
1. min_sanity       -> SANITY_TOO_LOW
2. max_sanity       -> SANITY_TOO_HIGH
3. requires_items   -> MISSING_ITEMS (with the missing subset)
4. requires_flags   -> CONDITIONS_NOT_MET

Locked choices are always visible. The reader sees what is out of reach
and why.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from ..story_schema.story import Choice, Passage
from .state import PlayerState


class BlockReason(Enum):
    """Why a choice cannot be selected."""
    SANITY_TOO_LOW = "SANITY_TOO_LOW"
    SANITY_TOO_HIGH = "SANITY_TOO_HIGH"
    MISSING_ITEMS = "MISSING_ITEMS"
    CONDITIONS_NOT_MET = "CONDITIONS_NOT_MET"


@dataclass(frozen=True)
class GateResult:
    visible: bool
    selectable: bool
    block_reason: BlockReason | None = None
    missing_items: frozenset[str] = frozenset()

    @property
    def label(self) -> str:
        """Short text for a locked choice label."""
        if self.block_reason is None:
            return ""
        if self.block_reason == BlockReason.MISSING_ITEMS:
            return "Requires " + ", ".join(sorted(self.missing_items))
        return _REASON_TEXT[self.block_reason]


_REASON_TEXT = {
    BlockReason.SANITY_TOO_LOW: "Your mind is too frayed",
    BlockReason.SANITY_TOO_HIGH: "You are too clear-headed",
    BlockReason.CONDITIONS_NOT_MET: "Conditions not met",
}

OPEN = GateResult(visible=True, selectable=True)


def evaluate(choice: Choice, state: PlayerState) -> GateResult:
    """Evaluate a choice's gates against the player state."""
    if not choice.is_gated:
        return OPEN

    if choice.min_sanity is not None and state.sanity < choice.min_sanity:
        return _blocked(BlockReason.SANITY_TOO_LOW)

    if choice.max_sanity is not None and state.sanity > choice.max_sanity:
        return _blocked(BlockReason.SANITY_TOO_HIGH)

    if choice.requires_items:
        missing = choice.requires_items - state.inventory
        if missing:
            return _blocked(BlockReason.MISSING_ITEMS, frozenset(missing))

    for name, expected in choice.requires_flags.items():
        if state.flags.get(name, False) != expected:
            return _blocked(BlockReason.CONDITIONS_NOT_MET)

    return OPEN


def evaluate_passage(
    passage: Passage, state: PlayerState
) -> list[tuple[Choice, GateResult]]:
    """Evaluate every choice of a passage, in authored order."""
    return [(choice, evaluate(choice, state)) for choice in passage.choices]


def _blocked(reason: BlockReason, missing: frozenset[str] = frozenset()) -> GateResult:
    return GateResult(
        visible=True,
        selectable=False,
        block_reason=reason,
        missing_items=missing,
    )
