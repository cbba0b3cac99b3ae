"""
Player State - Everything that changes while a story is played.

Design principles:
- Immutable-friendly: mutations return new state via _copy_with()
- Serializable: to_dict()/from_dict() round-trip losslessly for JSON values
- Bounded: sanity is clamped to [0, 100] at every write site
- Story-agnostic: holds passage ids, never passages
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from ..story_schema import Story

SANITY_MIN = 0
SANITY_MAX = 100

# Sanity below this drives the low-sanity presentation (distortion, audio)
LOW_SANITY_THRESHOLD = 40

# Crossing any of these, in either direction, emits a threshold event
SANITY_THRESHOLDS = (70, LOW_SANITY_THRESHOLD, 10)

SANITY_TIERS = [
    (90, "Rational"),
    (70, "Clear-Minded"),
    (50, "Unsettled"),
    (30, "Disturbed"),
    (10, "Unhinged"),
    (SANITY_MIN, "Broken"),
]


def clamp_sanity(value: int) -> int:
    """Clamp a sanity value into [SANITY_MIN, SANITY_MAX]."""
    return max(SANITY_MIN, min(SANITY_MAX, value))


def sanity_status(sanity: int) -> str:
    """Human-readable label for a sanity level."""
    for floor, label in SANITY_TIERS:
        if sanity >= floor:
            return label
    return SANITY_TIERS[-1][1]


class SessionPhase(Enum):
    """Lifecycle of a narrative session."""
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    ENDED = "ended"


class TextSpeed(Enum):
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"


@dataclass(frozen=True)
class GameSettings:
    """
    Presentation and audio preferences.

    Opaque to narrative logic, except that `sound_enabled` gates the
    cues forwarded to the audio collaborator.
    """
    sound_enabled: bool = True
    music_volume: float = 0.5
    sfx_volume: float = 0.7
    text_speed: TextSpeed = TextSpeed.NORMAL
    show_gore: bool = False
    high_contrast: bool = False

    # Settings the engine has no field for, kept as given
    extras: dict[str, Any] = field(default_factory=dict)

    def with_setting(self, key: str, value: Any) -> GameSettings:
        """
        Return new settings with one key changed.

        Known keys are coerced (volumes clamped to [0, 1], text speed parsed).
        Values that cannot be coerced leave the old value in place.
        Unknown keys land in `extras`.
        """
        if key == "extras" or key not in {f.name for f in fields(self)}:
            return replace(self, extras={**self.extras, key: value})
        coerced = _coerce_setting(key, value, getattr(self, key))
        return replace(self, **{key: coerced})

    def to_dict(self) -> dict[str, Any]:
        return {
            "sound_enabled": self.sound_enabled,
            "music_volume": self.music_volume,
            "sfx_volume": self.sfx_volume,
            "text_speed": self.text_speed.value,
            "show_gore": self.show_gore,
            "high_contrast": self.high_contrast,
            "extras": deepcopy(self.extras),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GameSettings:
        settings = cls()
        for key, value in (data or {}).items():
            if key == "extras":
                settings = replace(settings, extras=dict(value or {}))
            else:
                settings = settings.with_setting(key, value)
        return settings


def _coerce_setting(key: str, value: Any, current: Any) -> Any:
    if key in ("music_volume", "sfx_volume"):
        try:
            return max(0.0, min(1.0, float(value)))
        except (TypeError, ValueError):
            return current
    if key == "text_speed":
        try:
            return value if isinstance(value, TextSpeed) else TextSpeed(str(value).lower())
        except ValueError:
            return current
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    return value


@dataclass
class PlayerState:
    """
    Complete player state at a point in time.

    Owned by exactly one NarrativeController. Anything handed to the
    presentation layer is a copy.
    """
    story_id: str
    current_passage_id: str
    sanity: int = SANITY_MAX

    inventory: frozenset[str] = frozenset()
    flags: dict[str, bool] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)

    # Visited passages, most recent last
    history: tuple[str, ...] = ()

    settings: GameSettings = field(default_factory=GameSettings)

    def __post_init__(self):
        self.sanity = clamp_sanity(self.sanity)

    @classmethod
    def create(cls, story: Story, settings: GameSettings | None = None) -> PlayerState:
        """Fresh state at the story's start passage."""
        return cls(
            story_id=story.story_id,
            current_passage_id=story.start_passage_id,
            sanity=story.starting_sanity,
            settings=settings or GameSettings(),
        )

    @property
    def is_low_sanity(self) -> bool:
        return self.sanity < LOW_SANITY_THRESHOLD

    @property
    def sanity_status(self) -> str:
        return sanity_status(self.sanity)

    def _copy_with(self, **kwargs) -> PlayerState:
        """Create a copy with some fields replaced. Sanity is re-clamped."""
        return replace(self, **kwargs)

    def clone(self) -> PlayerState:
        """Deep copy the state."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "story_id": self.story_id,
            "current_passage_id": self.current_passage_id,
            "sanity": self.sanity,
            "inventory": sorted(self.inventory),
            "flags": dict(self.flags),
            "variables": deepcopy(self.variables),
            "history": list(self.history),
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerState:
        return cls(
            story_id=data["story_id"],
            current_passage_id=data["current_passage_id"],
            sanity=int(data.get("sanity", SANITY_MAX)),
            inventory=frozenset(data.get("inventory", ())),
            flags={k: bool(v) for k, v in data.get("flags", {}).items()},
            variables=deepcopy(data.get("variables", {})),
            history=tuple(data.get("history", ())),
            settings=GameSettings.from_dict(data.get("settings")),
        )
