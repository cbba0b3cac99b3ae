"""
Narrative Controller - The session state machine.

The controller is the single point of player-state mutation.
All transitions go through its public operations.

Session phases:
    UNINITIALIZED --start_new_game--> ACTIVE --(ending / sanity 0)--> ENDED
    ACTIVE --make_choice / go_back / update_setting--> ACTIVE
    any --reset_game--> UNINITIALIZED
    ENDED is left only through start_new_game (or reset_game)

Design principles:
- Validate before applying: every check runs before any state is touched,
  so a failed operation leaves the state exactly as it was
- Typed results: failures are TransitionResult values, never exceptions
- Commit, then notify: listeners run after the new state is in place,
  in the order operations were requested
- Persistence is fire-and-forget: saves are queued after the commit and
  never block or undo a transition
"""

from __future__ import annotations
import logging
from typing import Any, Callable, TYPE_CHECKING

from ..persistence.adapter import PersistenceAdapter, SaveRecord
from ..persistence.save_queue import SaveQueue
from .effects import apply_effects
from .events import (
    ChangeCause,
    EndReason,
    EventChannel,
    PersistenceFailed,
    SessionEnded,
    StateChanged,
    threshold_crossings,
)
from .gating import evaluate
from .results import FailureCode, SessionSnapshot, TransitionResult, build_snapshot
from .state import (
    SANITY_MIN,
    SANITY_THRESHOLDS,
    GameSettings,
    PlayerState,
    SessionPhase,
)

if TYPE_CHECKING:
    from ..story_schema import Story
    from ..stories.repository import StoryRepository

logger = logging.getLogger(__name__)

# UI cue played for every committed choice when sound is enabled
CHOICE_CUE = "choice"

SoundSink = Callable[[list[str]], None]


class NarrativeController:
    """
    Runs one narrative session against one story at a time.

    Usage:
        controller = NarrativeController(create_default_repository())
        controller.on_state_change(render)

        result = controller.start_new_game("the-abandoned-manor")
        result = controller.make_choice("front-door")
        if result.error_code == FailureCode.CONFIRMATION_REQUIRED:
            if ask_user():
                result = controller.make_choice("front-door", confirmed=True)
    """

    def __init__(
        self,
        repository: StoryRepository,
        persistence: PersistenceAdapter | None = None,
        session_key: str = "default",
        sound_sink: SoundSink | None = None,
        settings: GameSettings | None = None,
        thresholds: tuple[int, ...] = SANITY_THRESHOLDS,
    ):
        self.repository = repository
        self.session_key = session_key
        self.sound_sink = sound_sink
        self.thresholds = thresholds

        self._phase = SessionPhase.UNINITIALIZED
        self._story: Story | None = None
        self._state: PlayerState | None = None

        # Outlives individual games, like a reader's preferences
        self._settings = settings or GameSettings()

        self._state_changed = EventChannel("state_change")
        self._session_ended = EventChannel("session_ended")
        self._sanity_threshold = EventChannel("sanity_threshold")
        self._persistence_failed = EventChannel("persistence_failed")

        self.persistence = persistence
        self._saves = (
            SaveQueue(persistence, on_failure=self._on_save_failure)
            if persistence is not None else None
        )

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def is_active(self) -> bool:
        return self._phase == SessionPhase.ACTIVE

    @property
    def story(self) -> Story | None:
        return self._story

    @property
    def state(self) -> PlayerState | None:
        """A copy of the current player state."""
        return self._state.clone() if self._state is not None else None

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def pending_saves(self) -> int:
        return self._saves.pending_count if self._saves else 0

    def snapshot(self) -> SessionSnapshot | None:
        if self._state is None or self._story is None:
            return None
        return build_snapshot(self._story, self._state, self._phase)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def on_state_change(self, callback: Callable[[StateChanged], None]) -> Callable[[], None]:
        return self._state_changed.subscribe(callback)

    def on_session_ended(self, callback: Callable[[SessionEnded], None]) -> Callable[[], None]:
        return self._session_ended.subscribe(callback)

    def on_sanity_threshold(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        return self._sanity_threshold.subscribe(callback)

    def on_persistence_failure(
        self, callback: Callable[[PersistenceFailed], None]
    ) -> Callable[[], None]:
        return self._persistence_failed.subscribe(callback)

    # =========================================================================
    # Operations
    # =========================================================================

    def start_new_game(self, story_id: str | None = None) -> TransitionResult:
        """Start a fresh session at the story's start passage."""
        story_id = story_id or self.repository.default_story_id
        if story_id and self.repository.is_rejected(story_id):
            logger.info("Refusing to start invalid story %s", story_id)
            return TransitionResult.failure(
                f"Story '{story_id}' failed validation and cannot be played",
                FailureCode.STORY_INVALID,
            )

        story = self.repository.get(story_id) if story_id else None
        if story is None:
            logger.info("Story %s not found", story_id)
            return TransitionResult.failure(
                f"Story '{story_id}' not found", FailureCode.STORY_NOT_FOUND
            )

        self._story = story
        self._state = PlayerState.create(story, self._settings)
        self._phase = SessionPhase.ACTIVE
        logger.debug("Started story %s at %s", story.story_id, story.start_passage_id)

        return self._finish(ChangeCause.NEW_GAME, checkpoint=False)

    def make_choice(self, choice_id: str, confirmed: bool = False) -> TransitionResult:
        """
        Take a choice on the current passage.

        Either fully applies (history push, effects, pointer advance) or
        fails before touching anything.
        """
        if self._phase != SessionPhase.ACTIVE:
            return self._not_active("make a choice")

        state = self._state
        passage = self._story.get_passage(state.current_passage_id)
        choice = passage.get_choice(choice_id) if passage else None
        if choice is None:
            logger.info("Choice %s not on passage %s", choice_id, state.current_passage_id)
            return TransitionResult.failure(
                f"Choice '{choice_id}' is not available on passage "
                f"'{state.current_passage_id}'",
                FailureCode.CHOICE_NOT_FOUND,
            )

        gate = evaluate(choice, state)
        if not gate.selectable:
            logger.info("Choice %s locked: %s", choice_id, gate.block_reason.value)
            return TransitionResult.failure(
                f"Choice '{choice_id}' is locked: {gate.label}",
                FailureCode.CHOICE_LOCKED,
                block_reason=gate.block_reason,
                missing_items=gate.missing_items,
            )

        if choice.critical and not confirmed:
            return TransitionResult.failure(
                f"Choice '{choice_id}' is critical and must be confirmed",
                FailureCode.CONFIRMATION_REQUIRED,
            )

        # Everything below is committed as one step
        pushed = state._copy_with(history=state.history + (state.current_passage_id,))
        outcome = apply_effects(pushed, choice.effects)
        new_state = outcome.state._copy_with(current_passage_id=choice.next_passage_id)
        self._state = new_state
        logger.debug(
            "Choice %s: %s -> %s (sanity %d -> %d)",
            choice_id, state.current_passage_id, choice.next_passage_id,
            state.sanity, new_state.sanity,
        )

        crossings = threshold_crossings(state.sanity, new_state.sanity, self.thresholds)
        cues = [CHOICE_CUE, *outcome.sound_cues] if new_state.settings.sound_enabled else []
        return self._finish(
            ChangeCause.CHOICE,
            changes=outcome.changes,
            crossings=crossings,
            sound_cues=cues,
        )

    def go_back(self) -> TransitionResult:
        """
        Return to the previous passage.

        Navigation only: sanity, inventory, flags and variables keep
        whatever the undone choice did to them. With no history this is
        a no-op.
        """
        if self._phase != SessionPhase.ACTIVE:
            return self._not_active("go back")

        state = self._state
        if not state.history:
            return TransitionResult.ok(self.snapshot())

        self._state = state._copy_with(
            current_passage_id=state.history[-1],
            history=state.history[:-1],
        )
        logger.debug("Back: %s -> %s", state.current_passage_id, self._state.current_passage_id)
        return self._finish(ChangeCause.BACK)

    def reset_game(self) -> TransitionResult:
        """Discard the session and return to UNINITIALIZED."""
        was_active = self._phase == SessionPhase.ACTIVE
        passage_id = self._state.current_passage_id if self._state else None

        self._phase = SessionPhase.UNINITIALIZED
        self._story = None
        self._state = None

        events = []
        if was_active:
            ended = SessionEnded(reason=EndReason.RESET, passage_id=passage_id)
            events.append(ended)
            self._session_ended.emit(ended)
        return TransitionResult.ok(None, events=events)

    def update_setting(self, key: str, value: Any) -> TransitionResult:
        """Change one presentation/audio setting. Always succeeds."""
        self._settings = self._settings.with_setting(key, value)
        if self._state is None:
            return TransitionResult.ok(None, changes=[f"Setting {key} updated"])

        self._state = self._state._copy_with(settings=self._settings)
        return self._finish(
            ChangeCause.SETTINGS,
            changes=[f"Setting {key} updated"],
            checkpoint=self._phase == SessionPhase.ACTIVE,
        )

    def save_game(self) -> TransitionResult:
        """Queue an explicit save of the current session."""
        if self._state is None:
            return self._not_active("save")
        if self._saves is None:
            return TransitionResult.failure(
                "No persistence configured", FailureCode.PERSISTENCE_FAILURE
            )
        self._checkpoint()
        return TransitionResult.ok(self.snapshot())

    async def restore(self, session_key: str | None = None) -> TransitionResult:
        """
        Resume a saved session.

        With no saved record the controller is left as it was (a fresh
        controller stays UNINITIALIZED).
        """
        if self.persistence is None:
            return TransitionResult.failure(
                "No persistence configured", FailureCode.PERSISTENCE_FAILURE
            )

        key = session_key or self.session_key
        try:
            record = await self.persistence.load(key)
        except Exception as e:
            logger.exception("Loading session %s failed", key)
            self._on_save_failure(key, f"{type(e).__name__}: {e}")
            return TransitionResult.failure(
                f"Could not load session '{key}'", FailureCode.PERSISTENCE_FAILURE
            )

        if record is None:
            return TransitionResult.failure(
                f"No saved game for session '{key}'", FailureCode.NO_SAVED_GAME
            )

        story_id = record.story_id
        if self.repository.is_rejected(story_id):
            return TransitionResult.failure(
                f"Saved story '{story_id}' failed validation", FailureCode.STORY_INVALID
            )
        story = self.repository.get(story_id)
        if story is None:
            return TransitionResult.failure(
                f"Saved story '{story_id}' not found", FailureCode.STORY_NOT_FOUND
            )
        known = set(story.passages)
        if record.state.current_passage_id not in known or not set(record.state.history) <= known:
            return TransitionResult.failure(
                f"Saved game references passages missing from story '{story_id}'",
                FailureCode.STORY_INVALID,
            )

        self.session_key = key
        self._story = story
        self._state = record.state
        self._settings = record.state.settings
        self._phase = (
            SessionPhase.ENDED if record.phase == SessionPhase.ENDED else SessionPhase.ACTIVE
        )
        logger.debug("Restored session %s at %s", key, record.state.current_passage_id)
        return self._finish(ChangeCause.RESTORE, checkpoint=False)

    async def flush(self) -> bool:
        """Wait for queued saves. Returns True if all of them succeeded."""
        if self._saves is None:
            return True
        return await self._saves.flush()

    # =========================================================================
    # Internals
    # =========================================================================

    def _finish(
        self,
        cause: ChangeCause,
        changes: list[str] | None = None,
        crossings: list | None = None,
        sound_cues: list[str] | None = None,
        checkpoint: bool = True,
    ) -> TransitionResult:
        """Settle the phase, then notify, forward audio and checkpoint."""
        events: list[Any] = []

        ended = None
        if self._phase == SessionPhase.ACTIVE:
            reason = self._end_reason()
            if reason is not None:
                self._phase = SessionPhase.ENDED
                ended = SessionEnded(reason=reason, passage_id=self._state.current_passage_id)
                logger.debug("Session ended: %s", reason.value)

        snapshot = self.snapshot()
        changed = StateChanged(snapshot=snapshot, cause=cause)
        events.append(changed)
        self._state_changed.emit(changed)

        for crossing in crossings or []:
            events.append(crossing)
            self._sanity_threshold.emit(crossing)

        if ended is not None:
            events.append(ended)
            self._session_ended.emit(ended)

        if sound_cues and self.sound_sink is not None:
            try:
                self.sound_sink(list(sound_cues))
            except Exception:
                logger.exception("Sound sink failed")

        if checkpoint:
            self._checkpoint()

        return TransitionResult.ok(snapshot, changes=changes, sound_cues=sound_cues, events=events)

    def _end_reason(self) -> EndReason | None:
        if self._story.is_ending(self._state.current_passage_id):
            return EndReason.ENDING_PASSAGE
        if self._state.sanity <= SANITY_MIN:
            return EndReason.SANITY_DEPLETED
        return None

    def _checkpoint(self):
        if self._saves is None or self._state is None:
            return
        self._saves.submit(SaveRecord(
            session_key=self.session_key,
            state=self._state.clone(),
            phase=self._phase,
        ))

    def _on_save_failure(self, session_key: str, error: str):
        self._persistence_failed.emit(PersistenceFailed(session_key=session_key, error=error))

    def _not_active(self, action: str) -> TransitionResult:
        logger.info("Cannot %s: session is %s", action, self._phase.value)
        return TransitionResult.failure(
            f"Cannot {action}: session is {self._phase.value}",
            FailureCode.SESSION_NOT_ACTIVE,
        )
