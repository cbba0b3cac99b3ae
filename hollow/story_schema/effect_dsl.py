"""
Effect DSL - Declarative state mutations attached to choices.

Effects are:
- Atomic: each one changes exactly one aspect of the player state
- Ordered: a choice's effects are applied strictly in list order
- Closed: the set of variants is fixed; anything else is rejected when a
  story is validated, never while a game is running

Key design decisions:
- Every variant is a frozen dataclass so stories stay immutable
- PlaySound never touches player state; it is forwarded to audio
- The document tag for each variant lives on the class (EFFECT_TYPE)
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class EffectType(Enum):
    """Tags used for effects in story documents."""
    SANITY_CHANGE = "sanity_change"
    INVENTORY_ADD = "inventory_add"
    INVENTORY_REMOVE = "inventory_remove"
    SET_FLAG = "set_flag"
    SET_VARIABLE = "set_variable"
    PLAY_SOUND = "play_sound"


@dataclass(frozen=True)
class SanityChange:
    """Shift sanity by a signed delta. The result is clamped to [0, 100]."""
    delta: int

    EFFECT_TYPE = EffectType.SANITY_CHANGE


@dataclass(frozen=True)
class InventoryAdd:
    """Give the player an item. Adding a held item is a no-op."""
    item: str

    EFFECT_TYPE = EffectType.INVENTORY_ADD


@dataclass(frozen=True)
class InventoryRemove:
    """Take an item away. Removing an absent item is a no-op."""
    item: str

    EFFECT_TYPE = EffectType.INVENTORY_REMOVE


@dataclass(frozen=True)
class SetFlag:
    """Overwrite a named boolean flag."""
    name: str
    value: bool = True

    EFFECT_TYPE = EffectType.SET_FLAG


@dataclass(frozen=True)
class SetVariable:
    """Overwrite a named variable with an arbitrary (JSON-compatible) value."""
    name: str
    value: Any = None

    EFFECT_TYPE = EffectType.SET_VARIABLE


@dataclass(frozen=True)
class PlaySound:
    """Ask the audio collaborator to play a cue."""
    cue: str

    EFFECT_TYPE = EffectType.PLAY_SOUND


Effect = Union[SanityChange, InventoryAdd, InventoryRemove, SetFlag, SetVariable, PlaySound]

EFFECT_CLASSES: dict[EffectType, type] = {
    EffectType.SANITY_CHANGE: SanityChange,
    EffectType.INVENTORY_ADD: InventoryAdd,
    EffectType.INVENTORY_REMOVE: InventoryRemove,
    EffectType.SET_FLAG: SetFlag,
    EffectType.SET_VARIABLE: SetVariable,
    EffectType.PLAY_SOUND: PlaySound,
}


def is_known_effect(effect: Any) -> bool:
    """True if the object is an instance of one of the closed effect variants."""
    return type(effect) in EFFECT_CLASSES.values()


def effect_to_dict(effect: Effect) -> dict[str, Any]:
    """Serialize an effect to its document form."""
    if isinstance(effect, SanityChange):
        return {"type": effect.EFFECT_TYPE.value, "delta": effect.delta}
    if isinstance(effect, (InventoryAdd, InventoryRemove)):
        return {"type": effect.EFFECT_TYPE.value, "item": effect.item}
    if isinstance(effect, (SetFlag, SetVariable)):
        return {"type": effect.EFFECT_TYPE.value, "name": effect.name, "value": effect.value}
    if isinstance(effect, PlaySound):
        return {"type": effect.EFFECT_TYPE.value, "cue": effect.cue}
    raise TypeError(f"Unknown effect variant: {type(effect).__name__}")


# ============================================================================
# Factory functions for authoring stories in code
# ============================================================================

def sanity(delta: int) -> SanityChange:
    """Create a sanity change effect."""
    return SanityChange(delta=delta)


def give(item: str) -> InventoryAdd:
    """Create an inventory add effect."""
    return InventoryAdd(item=item)


def take(item: str) -> InventoryRemove:
    """Create an inventory remove effect."""
    return InventoryRemove(item=item)


def flag(name: str, value: bool = True) -> SetFlag:
    """Create a set flag effect."""
    return SetFlag(name=name, value=value)


def var(name: str, value: Any) -> SetVariable:
    """Create a set variable effect."""
    return SetVariable(name=name, value=value)


def sound(cue: str) -> PlaySound:
    """Create a play sound effect."""
    return PlaySound(cue=cue)
