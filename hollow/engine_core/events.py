"""
Events - Notifications emitted by the controller.

Events are emitted strictly after the transition that caused them is
committed, in the order transitions were requested. Derived events
(sanity thresholds, session end) are part of the same transition as the
change that caused them, not inferred later by a listener.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .results import SessionSnapshot

logger = logging.getLogger(__name__)


class ChangeCause(Enum):
    """What produced a state change."""
    NEW_GAME = "new_game"
    CHOICE = "choice"
    BACK = "back"
    SETTINGS = "settings"
    RESTORE = "restore"


class EndReason(Enum):
    ENDING_PASSAGE = "ending_passage"
    SANITY_DEPLETED = "sanity_depleted"
    RESET = "reset"


class CrossingDirection(Enum):
    FALLING = "falling"
    RISING = "rising"


@dataclass(frozen=True)
class StateChanged:
    snapshot: SessionSnapshot
    cause: ChangeCause


@dataclass(frozen=True)
class SanityThresholdCrossed:
    threshold: int
    direction: CrossingDirection
    previous: int
    current: int


@dataclass(frozen=True)
class SessionEnded:
    reason: EndReason
    passage_id: str | None = None


@dataclass(frozen=True)
class PersistenceFailed:
    session_key: str
    error: str


def threshold_crossings(
    previous: int, current: int, thresholds: tuple[int, ...]
) -> list[SanityThresholdCrossed]:
    """
    Thresholds crossed when sanity moves from previous to current.

    A threshold t is crossed falling when previous >= t > current, and
    rising when previous < t <= current. Crossings are ordered in the
    direction of travel.
    """
    if current < previous:
        crossed = sorted((t for t in thresholds if previous >= t > current), reverse=True)
        direction = CrossingDirection.FALLING
    elif current > previous:
        crossed = sorted(t for t in thresholds if previous < t <= current)
        direction = CrossingDirection.RISING
    else:
        return []
    return [
        SanityThresholdCrossed(threshold=t, direction=direction, previous=previous, current=current)
        for t in crossed
    ]


Listener = Callable[[Any], None]


class EventChannel:
    """
    Ordered list of listeners for one kind of event.

    A failing listener is logged and skipped; it never aborts the
    transition or starves the listeners after it.
    """

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Add a listener. Returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: Any):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener on %s channel failed", self.name)

    def __len__(self) -> int:
        return len(self._listeners)
