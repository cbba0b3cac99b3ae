"""
Effect Processor - Folds a choice's effects over the player state.

The processor is pure: (state, effects) -> (new_state, sound_cues).
- Effects apply strictly in list order; later effects see earlier results
- Sanity is clamped after every individual delta, not once at the end
- InventoryAdd of a held item and InventoryRemove of a missing item are no-ops
- PlaySound never touches the state; cues are collected on the side

Unknown effect variants are rejected by story validation, so nothing here
raises.
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Callable, Iterable

from ..story_schema.effect_dsl import (
    Effect,
    InventoryAdd,
    InventoryRemove,
    PlaySound,
    SanityChange,
    SetFlag,
    SetVariable,
)
from .state import PlayerState, clamp_sanity


@dataclass
class EffectOutcome:
    """
    Result of applying a list of effects.

    Contains:
    - The new state (the input is never modified)
    - Sound cues for the audio collaborator, in effect order
    - Human-readable descriptions of what changed
    """
    state: PlayerState
    sound_cues: list[str] = field(default_factory=list)
    changes: list[str] = field(default_factory=list)


def apply_effects(state: PlayerState, effects: Iterable[Effect]) -> EffectOutcome:
    """Apply effects in order and return the outcome."""
    outcome = EffectOutcome(state=state)
    for effect in effects:
        handler = _HANDLERS[type(effect)]
        handler(outcome, effect)
    return outcome


def _apply_sanity(outcome: EffectOutcome, effect: SanityChange):
    previous = outcome.state.sanity
    current = clamp_sanity(previous + effect.delta)
    outcome.state = outcome.state._copy_with(sanity=current)
    if current != previous:
        outcome.changes.append(f"Sanity {previous} -> {current}")


def _apply_inventory_add(outcome: EffectOutcome, effect: InventoryAdd):
    if effect.item in outcome.state.inventory:
        return
    outcome.state = outcome.state._copy_with(
        inventory=outcome.state.inventory | {effect.item}
    )
    outcome.changes.append(f"Gained {effect.item}")


def _apply_inventory_remove(outcome: EffectOutcome, effect: InventoryRemove):
    if effect.item not in outcome.state.inventory:
        return
    outcome.state = outcome.state._copy_with(
        inventory=outcome.state.inventory - {effect.item}
    )
    outcome.changes.append(f"Lost {effect.item}")


def _apply_set_flag(outcome: EffectOutcome, effect: SetFlag):
    outcome.state = outcome.state._copy_with(
        flags={**outcome.state.flags, effect.name: effect.value}
    )


def _apply_set_variable(outcome: EffectOutcome, effect: SetVariable):
    outcome.state = outcome.state._copy_with(
        variables={**outcome.state.variables, effect.name: deepcopy(effect.value)}
    )


def _collect_sound(outcome: EffectOutcome, effect: PlaySound):
    outcome.sound_cues.append(effect.cue)


_HANDLERS: dict[type, Callable[[EffectOutcome, Effect], None]] = {
    SanityChange: _apply_sanity,
    InventoryAdd: _apply_inventory_add,
    InventoryRemove: _apply_inventory_remove,
    SetFlag: _apply_set_flag,
    SetVariable: _apply_set_variable,
    PlaySound: _collect_sound,
}
