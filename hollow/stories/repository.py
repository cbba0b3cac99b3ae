"""
Story Repository - The static collection of playable stories.

Stories are validated on the way in. An invalid story is never stored;
in lenient mode it is remembered as rejected so the controller can say
why it refuses to start it.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterable

from ..story_schema import Story, StoryValidationError, ensure_valid, load_story_file

logger = logging.getLogger(__name__)


class StoryRepository:
    """
    In-memory story registry.

    Usage:
        repo = StoryRepository()
        repo.register(story)              # raises StoryValidationError
        repo.load_directory("stories/", strict=False)
        story = repo.get("the-abandoned-manor")
    """

    def __init__(self):
        self._stories: dict[str, Story] = {}
        self.rejected: dict[str, list[str]] = {}

    @classmethod
    def from_stories(cls, stories: Iterable[Story], strict: bool = True) -> StoryRepository:
        repo = cls()
        for story in stories:
            repo.add(story, strict=strict)
        return repo

    def register(self, story: Story) -> Story:
        """Validate and store a story. Raises StoryValidationError."""
        result = ensure_valid(story)
        for warning in result.warnings:
            logger.warning("Story %s: %s", story.story_id, warning)
        self._stories[story.story_id] = story
        self.rejected.pop(story.story_id, None)
        return story

    def add(self, story: Story, strict: bool = True) -> bool:
        """
        Register a story.

        In lenient mode validation errors are logged and the story id is
        recorded in `rejected` instead of raising.
        """
        try:
            self.register(story)
        except StoryValidationError as e:
            if strict:
                raise
            self._reject(e)
            return False
        return True

    def load_directory(self, directory: str | Path, strict: bool = True) -> list[str]:
        """Load every *.json story in a directory. Returns the loaded ids."""
        loaded = []
        for path in sorted(Path(directory).glob("*.json")):
            try:
                story = load_story_file(path)
                self.register(story)
            except StoryValidationError as e:
                if strict:
                    raise
                self._reject(e)
                continue
            loaded.append(story.story_id)
        return loaded

    def get(self, story_id: str) -> Story | None:
        return self._stories.get(story_id)

    def is_rejected(self, story_id: str) -> bool:
        return story_id in self.rejected

    def list_stories(self) -> list[Story]:
        return list(self._stories.values())

    @property
    def default_story_id(self) -> str | None:
        """The first registered story, used when no story is named."""
        return next(iter(self._stories), None)

    def __contains__(self, story_id: str) -> bool:
        return story_id in self._stories

    def __len__(self) -> int:
        return len(self._stories)

    def _reject(self, error: StoryValidationError):
        logger.error(
            "Rejected story %s: %s", error.story_id, "; ".join(error.errors)
        )
        self.rejected[error.story_id] = list(error.errors)
