"""
Pytest fixtures for Hollow tests.
"""

import pytest

from ..story_schema import Choice, Passage, Story
from ..story_schema.effect_dsl import flag, give, sanity, sound, var
from ..stories import StoryRepository
from ..engine_core import NarrativeController, PlayerState
from ..persistence import InMemoryPersistence


def build_crypt_story() -> Story:
    """
    A small story touching every engine feature.

        start --enter(-10)--> hall --take-key--> study --read--> hall
          |                    |                   \\--finish(critical, needs read_book)--> ending
          |                    |--stare(critical, -60)--> abyss --fall(-50)--> ending
          |                    \\--leave--> start
          |--plunge(-60)--> hall
          |--vault(needs key+lamp)--> vault --exit--> ending
          \\--pray(min 90, +5)--> start
    """
    passages = [
        Passage(
            passage_id="start",
            text="A gate of black iron.\n\nBeyond it, stairs going down.",
            title="The Crypt",
            choices=(
                Choice("enter", "Go down the stairs.", "hall", effects=(sanity(-10),)),
                Choice("plunge", "Jump into the dark.", "hall", effects=(sanity(-60),)),
                Choice(
                    "vault", "Open the vault door.", "vault",
                    requires_items=frozenset({"key", "lamp"}),
                ),
                Choice("pray", "Pray at the gate.", "start", effects=(sanity(5),), min_sanity=90),
            ),
        ),
        Passage(
            passage_id="hall",
            text="Bones line the walls.",
            choices=(
                Choice("take-key", "Take the key from the altar.", "study",
                       effects=(give("key"), sound("pickup"))),
                Choice("stare", "Stare into the ossuary.", "abyss",
                       effects=(sanity(-60),), critical=True),
                Choice("leave", "Climb back up.", "start"),
            ),
        ),
        Passage(
            passage_id="study",
            text="A desk, a book, a candle.",
            choices=(
                Choice("read", "Read the book.", "hall",
                       effects=(flag("read_book"), var("pages_read", 3))),
                Choice("finish", "Speak the words from the book.", "ending",
                       requires_flags={"read_book": True}, critical=True),
            ),
        ),
        Passage(
            passage_id="abyss",
            text="It stares back.",
            choices=(
                Choice("fall", "Let go.", "ending", effects=(sanity(-50),)),
            ),
        ),
        Passage(
            passage_id="vault",
            text="Gold, and a way out.",
            choices=(Choice("exit", "Leave with the gold.", "ending"),),
        ),
        Passage(passage_id="ending", text="The crypt seals behind you."),
    ]
    return Story(
        story_id="crypt",
        title="The Crypt",
        start_passage_id="start",
        passages={p.passage_id: p for p in passages},
        ending_passage_ids=frozenset({"ending"}),
    )


@pytest.fixture
def crypt_story() -> Story:
    return build_crypt_story()


@pytest.fixture
def repository(crypt_story) -> StoryRepository:
    return StoryRepository.from_stories([crypt_story])


@pytest.fixture
def start_state(crypt_story) -> PlayerState:
    """Fresh state at the start passage with full sanity."""
    return PlayerState.create(crypt_story)


@pytest.fixture
def memory_store() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture
def controller(repository) -> NarrativeController:
    """Controller with no persistence."""
    return NarrativeController(repository)


@pytest.fixture
def started(controller) -> NarrativeController:
    """Controller with the crypt story started."""
    result = controller.start_new_game("crypt")
    assert result.success
    return controller
