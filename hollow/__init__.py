"""
Hollow - Branching Horror Narrative Engine

A deterministic state machine for interactive horror fiction.
The engine loads story definitions (passages joined by choices) and provides:
- Player state with bounded sanity, inventory, flags and variables
- Declarative effect processing
- Choice gating with explicit block reasons
- History-based backtracking
- Pluggable save/load persistence
"""

__version__ = "0.1.0"

# engine_core must finish importing before persistence, which depends on its state module
from .engine_core import NarrativeController, PlayerState, TransitionResult  # noqa: E402
from .stories import StoryRepository, create_default_repository  # noqa: E402

__all__ = [
    "NarrativeController",
    "PlayerState",
    "TransitionResult",
    "StoryRepository",
    "create_default_repository",
]
