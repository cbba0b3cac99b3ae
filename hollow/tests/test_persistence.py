"""
Tests for persistence.

Tests:
- SaveRecord and PlayerState round-trips
- JSON file store
- Save queue ordering and failure isolation
- Controller checkpointing and restore paths
"""

import asyncio
import json

import pytest

from ..engine_core import FailureCode, NarrativeController, PlayerState, SessionPhase
from ..story_schema import Choice, Passage, Story
from ..story_schema.effect_dsl import var
from ..stories import StoryRepository
from ..engine_core.state import GameSettings, TextSpeed
from ..persistence import (
    InMemoryPersistence,
    JsonFilePersistence,
    PersistenceAdapter,
    RecordFormatError,
    SaveQueue,
    SaveRecord,
)


class FailingPersistence(PersistenceAdapter):
    """Adapter whose saves always raise."""

    def __init__(self):
        self.attempts = 0

    async def save(self, session_key, record):
        self.attempts += 1
        raise ConnectionError("storage offline")

    async def load(self, session_key):
        raise ConnectionError("storage offline")


class RefusingPersistence(InMemoryPersistence):
    """Adapter that reports failure without raising."""

    async def save(self, session_key, record):
        return False


class RecordingPersistence(InMemoryPersistence):
    """Remembers the order in which passages were saved."""

    def __init__(self, delay=0.0):
        super().__init__(delay=delay)
        self.saved_passages = []

    async def save(self, session_key, record):
        ok = await super().save(session_key, record)
        self.saved_passages.append(record.state.current_passage_id)
        return ok


def _rich_state() -> PlayerState:
    return PlayerState(
        story_id="crypt",
        current_passage_id="study",
        sanity=37,
        inventory=frozenset({"key", "lamp"}),
        flags={"read_book": True, "seal": False},
        variables={"pages_read": 3, "notes": {"names": ["Ada", "Iris"]}},
        history=("start", "hall"),
        settings=GameSettings(music_volume=0.2, text_speed=TextSpeed.FAST, extras={"font": "serif"}),
    )


class TestSaveRecord:
    """Tests for record encoding."""

    def test_state_round_trip(self):
        state = _rich_state()
        assert PlayerState.from_dict(json.loads(json.dumps(state.to_dict()))) == state

    def test_record_round_trip(self):
        record = SaveRecord(session_key="s1", state=_rich_state(), phase=SessionPhase.ENDED)
        decoded = SaveRecord.from_json(record.to_json())

        assert decoded == record
        assert decoded.story_id == "crypt"

    def test_rejects_garbage(self):
        with pytest.raises(RecordFormatError):
            SaveRecord.from_json("{not json")
        with pytest.raises(RecordFormatError):
            SaveRecord.from_json(json.dumps({"session_key": "s1"}))

    def test_rejects_newer_format(self):
        data = SaveRecord(session_key="s1", state=_rich_state()).to_dict()
        data["format_version"] = 99
        with pytest.raises(RecordFormatError):
            SaveRecord.from_dict(data)


class TestJsonFilePersistence:
    """Tests for the file store."""

    def test_save_and_load(self, tmp_path):
        store = JsonFilePersistence(tmp_path)
        record = SaveRecord(session_key="reader/1", state=_rich_state())

        assert asyncio.run(store.save("reader/1", record))
        loaded = asyncio.run(store.load("reader/1"))

        assert loaded == record
        assert len(store.list_saves()) == 1

    def test_missing_key(self, tmp_path):
        store = JsonFilePersistence(tmp_path)
        assert asyncio.run(store.load("nobody")) is None

    def test_corrupt_file_treated_as_absent(self, tmp_path):
        store = JsonFilePersistence(tmp_path)
        path = store._get_save_path("reader")
        path.write_text("{broken", encoding="utf-8")

        assert asyncio.run(store.load("reader")) is None
        assert not path.exists()

    def test_delete(self, tmp_path):
        store = JsonFilePersistence(tmp_path)
        asyncio.run(store.save("reader", SaveRecord(session_key="reader", state=_rich_state())))

        assert asyncio.run(store.delete("reader"))
        assert not asyncio.run(store.delete("reader"))


class TestSaveQueue:
    """Tests for the ordered save pipeline."""

    def test_holds_records_without_loop(self, memory_store):
        queue = SaveQueue(memory_store)
        queue.submit(SaveRecord(session_key="s", state=_rich_state()))

        assert queue.pending_count == 1
        assert memory_store.save_count == 0

        assert asyncio.run(queue.flush())
        assert queue.pending_count == 0
        assert memory_store.save_count == 1

    def test_saves_in_submission_order(self):
        store = RecordingPersistence(delay=0.01)
        queue = SaveQueue(store)
        base = _rich_state()

        async def scenario():
            for passage_id in ["a", "b", "c", "d"]:
                queue.submit(SaveRecord(session_key="s", state=base._copy_with(current_passage_id=passage_id)))
            return await queue.flush()

        assert asyncio.run(scenario())
        assert store.saved_passages == ["a", "b", "c", "d"]
        assert asyncio.run(store.load("s")).state.current_passage_id == "d"

    def test_failure_reported_and_later_saves_continue(self):
        reports = []
        queue = SaveQueue(FailingPersistence(), on_failure=lambda key, error: reports.append((key, error)))
        queue.submit(SaveRecord(session_key="s", state=_rich_state()))
        queue.submit(SaveRecord(session_key="s", state=_rich_state()))

        assert not asyncio.run(queue.flush())
        assert queue.adapter.attempts == 2
        assert queue.failures == 2
        assert reports[0] == ("s", "ConnectionError: storage offline")

    def test_false_return_is_failure(self):
        queue = SaveQueue(RefusingPersistence())
        queue.submit(SaveRecord(session_key="s", state=_rich_state()))
        assert not asyncio.run(queue.flush())
        assert queue.failures == 1


class TestControllerPersistence:
    """Tests for checkpointing through the controller."""

    def test_choices_checkpoint(self, repository, memory_store):
        controller = NarrativeController(repository, persistence=memory_store, session_key="reader")
        controller.start_new_game("crypt")
        controller.make_choice("enter")
        controller.make_choice("take-key")

        assert controller.pending_saves == 2
        assert asyncio.run(controller.flush())

        record = asyncio.run(memory_store.load("reader"))
        assert record.state == controller.state

    def test_failing_save_keeps_session_active(self, repository):
        failures = []
        controller = NarrativeController(repository, persistence=FailingPersistence())
        controller.on_persistence_failure(failures.append)
        controller.start_new_game("crypt")

        assert controller.make_choice("enter").success
        assert not asyncio.run(controller.flush())

        assert controller.phase == SessionPhase.ACTIVE
        assert controller.state.current_passage_id == "hall"
        assert failures[0].error == "ConnectionError: storage offline"
        assert controller.make_choice("take-key").success

    def test_slow_save_does_not_block_choices(self, repository):
        store = RecordingPersistence(delay=0.05)
        controller = NarrativeController(repository, persistence=store, session_key="reader")

        async def scenario():
            controller.start_new_game("crypt")
            first = controller.make_choice("enter")
            # The first save is still sleeping in the adapter
            second = controller.make_choice("take-key")
            third = controller.make_choice("read")
            assert store.save_count == 0
            return first, second, third, await controller.flush()

        first, second, third, ok = asyncio.run(scenario())

        assert first.success and second.success and third.success
        assert ok
        assert store.saved_passages == ["hall", "study", "hall"]
        assert asyncio.run(store.load("reader")).state.flags == {"read_book": True}

    def test_save_without_adapter(self, started):
        result = started.save_game()
        assert result.error_code == FailureCode.PERSISTENCE_FAILURE

    def test_save_before_start(self, repository, memory_store):
        controller = NarrativeController(repository, persistence=memory_store)
        assert controller.save_game().error_code == FailureCode.SESSION_NOT_ACTIVE


class TestRestore:
    """Tests for resuming sessions."""

    def test_restore_round_trip(self, repository, memory_store):
        writer = NarrativeController(repository, persistence=memory_store, session_key="reader")
        writer.start_new_game("crypt")
        writer.make_choice("enter")
        writer.make_choice("take-key")
        asyncio.run(writer.flush())

        reader = NarrativeController(repository, persistence=memory_store, session_key="reader")
        result = asyncio.run(reader.restore())

        assert result.success
        assert reader.phase == SessionPhase.ACTIVE
        assert reader.state == writer.state
        assert reader.go_back().snapshot.passage_id == "hall"

    def test_nothing_saved(self, repository, memory_store):
        controller = NarrativeController(repository, persistence=memory_store)
        result = asyncio.run(controller.restore("nobody"))

        assert result.error_code == FailureCode.NO_SAVED_GAME
        assert controller.phase == SessionPhase.UNINITIALIZED

    def test_nothing_saved_keeps_running_game(self, repository, memory_store):
        controller = NarrativeController(repository, persistence=memory_store)
        controller.start_new_game("crypt")
        controller.make_choice("enter")

        asyncio.run(controller.restore("nobody"))

        assert controller.phase == SessionPhase.ACTIVE
        assert controller.state.current_passage_id == "hall"

    def test_load_failure(self, repository):
        failures = []
        controller = NarrativeController(repository, persistence=FailingPersistence())
        controller.on_persistence_failure(failures.append)

        result = asyncio.run(controller.restore())

        assert result.error_code == FailureCode.PERSISTENCE_FAILURE
        assert len(failures) == 1

    def test_unknown_story_in_save(self, repository, memory_store):
        state = PlayerState(story_id="elsewhere", current_passage_id="start")
        asyncio.run(memory_store.save("reader", SaveRecord(session_key="reader", state=state)))

        controller = NarrativeController(repository, persistence=memory_store)
        result = asyncio.run(controller.restore("reader"))
        assert result.error_code == FailureCode.STORY_NOT_FOUND

    def test_unknown_passage_in_save(self, repository, memory_store):
        state = PlayerState(story_id="crypt", current_passage_id="deleted-room")
        asyncio.run(memory_store.save("reader", SaveRecord(session_key="reader", state=state)))

        controller = NarrativeController(repository, persistence=memory_store)
        result = asyncio.run(controller.restore("reader"))
        assert result.error_code == FailureCode.STORY_INVALID

    def test_restore_ended_session(self, repository, memory_store):
        writer = NarrativeController(repository, persistence=memory_store, session_key="reader")
        writer.start_new_game("crypt")
        writer.make_choice("plunge")
        writer.make_choice("stare", confirmed=True)
        asyncio.run(writer.flush())

        reader = NarrativeController(repository, persistence=memory_store)
        asyncio.run(reader.restore("reader"))

        assert reader.phase == SessionPhase.ENDED
        assert reader.make_choice("fall").error_code == FailureCode.SESSION_NOT_ACTIVE

    def test_story_variables_survive_round_trip(self, memory_store):
        """Whatever a valid story can store in a variable comes back equal."""
        ledger = {"names": ["Ada", "Iris"], "depth": 2, "ratio": 0.5, "sealed": None}
        story = Story(
            story_id="ledger",
            title="The Ledger",
            start_passage_id="desk",
            passages={
                "desk": Passage("desk", "A ledger lies open.", choices=(
                    Choice("read", "Read it.", "shelf", effects=(var("ledger", ledger), var("trail", ["desk"]))),
                )),
                "shelf": Passage("shelf", "Dust."),
            },
            ending_passage_ids=frozenset({"shelf"}),
        )
        repository = StoryRepository.from_stories([story])

        writer = NarrativeController(repository, persistence=memory_store, session_key="reader")
        writer.start_new_game()
        writer.make_choice("read")
        asyncio.run(writer.flush())

        reader = NarrativeController(repository, persistence=memory_store)
        asyncio.run(reader.restore("reader"))

        assert reader.state == writer.state
        assert reader.state.variables["ledger"] == ledger
