"""
Story Validation - Load-time checks for story graphs.

Validates that:
1. Required fields are present
2. References are valid (start passage, choice targets, endings)
3. Effects are drawn from the closed variant set and well-typed
4. Gates are satisfiable (sanity bounds inside [0, 100], min <= max)

A story that fails validation can never be started. Problems that do not
break play (unreachable passages, dead ends) are warnings.
"""

from __future__ import annotations
import json
from collections import deque
from dataclasses import dataclass

from .effect_dsl import SetFlag, SetVariable, SanityChange, is_known_effect
from .story import Choice, Story

SANITY_MIN = 0
SANITY_MAX = 100


class StoryValidationError(Exception):
    """Raised when a story fails validation."""

    def __init__(self, story_id: str, errors: list[str]):
        self.story_id = story_id
        self.errors = errors
        super().__init__(
            f"Story '{story_id}' failed validation with {len(errors)} error(s)"
        )


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_story(story: Story) -> ValidationResult:
    """
    Validate a complete story.

    Returns ValidationResult with errors and warnings.
    Use ensure_valid() to raise on errors instead.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not story.story_id:
        errors.append("story_id is required")
    if not story.title:
        errors.append("title is required")
    if not story.passages:
        errors.append("Story has no passages")
    if not SANITY_MIN <= story.starting_sanity <= SANITY_MAX:
        errors.append(
            f"starting_sanity {story.starting_sanity} is outside "
            f"[{SANITY_MIN}, {SANITY_MAX}]"
        )

    if story.start_passage is None:
        errors.append(f"start_passage_id '{story.start_passage_id}' is not a passage")

    for ending_id in sorted(story.ending_passage_ids):
        if ending_id not in story.passages:
            errors.append(f"Ending '{ending_id}' is not a passage")

    for key, passage in story.passages.items():
        if key != passage.passage_id:
            errors.append(f"Passage keyed '{key}' has passage_id '{passage.passage_id}'")

        seen_choice_ids: set[str] = set()
        for choice in passage.choices:
            if choice.choice_id in seen_choice_ids:
                errors.append(
                    f"Duplicate choice_id '{choice.choice_id}' in passage '{key}'"
                )
            seen_choice_ids.add(choice.choice_id)
            errors.extend(
                f"Passage '{key}': {e}" for e in _validate_choice(choice, story)
            )

        if not passage.choices and not story.is_ending(key):
            warnings.append(f"Passage '{key}' has no choices and is not an ending")

    if story.start_passage is not None:
        unreachable = sorted(set(story.passages) - _reachable(story))
        for passage_id in unreachable:
            warnings.append(f"Passage '{passage_id}' is unreachable from the start")

    if not story.ending_passage_ids:
        warnings.append("No ending passages defined")

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def ensure_valid(story: Story) -> ValidationResult:
    """Validate and raise StoryValidationError if there are errors."""
    result = validate_story(story)
    if not result.valid:
        raise StoryValidationError(story.story_id, result.errors)
    return result


def _validate_choice(choice: Choice, story: Story) -> list[str]:
    """Validate a single choice."""
    errors = []

    if not choice.choice_id:
        errors.append("Choice has empty choice_id")
    if choice.next_passage_id not in story.passages:
        errors.append(
            f"Choice '{choice.choice_id}' targets unknown passage "
            f"'{choice.next_passage_id}'"
        )

    for bound_name in ("min_sanity", "max_sanity"):
        bound = getattr(choice, bound_name)
        if bound is not None and not SANITY_MIN <= bound <= SANITY_MAX:
            errors.append(
                f"Choice '{choice.choice_id}' {bound_name} {bound} is outside "
                f"[{SANITY_MIN}, {SANITY_MAX}]"
            )
    if (
        choice.min_sanity is not None
        and choice.max_sanity is not None
        and choice.min_sanity > choice.max_sanity
    ):
        errors.append(
            f"Choice '{choice.choice_id}' min_sanity {choice.min_sanity} "
            f"exceeds max_sanity {choice.max_sanity}"
        )

    for index, effect in enumerate(choice.effects):
        if not is_known_effect(effect):
            errors.append(
                f"Choice '{choice.choice_id}' effect #{index} has unknown type "
                f"{type(effect).__name__}"
            )
        elif isinstance(effect, SetFlag) and not isinstance(effect.value, bool):
            errors.append(
                f"Choice '{choice.choice_id}' sets flag '{effect.name}' to a non-bool"
            )
        elif isinstance(effect, SanityChange) and (
            isinstance(effect.delta, bool) or not isinstance(effect.delta, int)
        ):
            errors.append(
                f"Choice '{choice.choice_id}' sanity delta must be an integer"
            )
        elif isinstance(effect, SetVariable) and not _survives_json(effect.value):
            errors.append(
                f"Choice '{choice.choice_id}' sets variable '{effect.name}' to a value "
                f"that does not round-trip through JSON"
            )

    for name, expected in choice.requires_flags.items():
        if not isinstance(expected, bool):
            errors.append(
                f"Choice '{choice.choice_id}' requires flag '{name}' to be a non-bool"
            )

    return errors


def _survives_json(value) -> bool:
    """True if saving and loading the value gives back an equal value."""
    try:
        return json.loads(json.dumps(value)) == value
    except (TypeError, ValueError):
        return False


def _reachable(story: Story) -> set[str]:
    """Breadth-first walk from the start passage."""
    seen = {story.start_passage_id}
    queue = deque([story.start_passage_id])
    while queue:
        passage = story.passages.get(queue.popleft())
        if passage is None:
            continue
        for choice in passage.choices:
            if choice.next_passage_id not in seen:
                seen.add(choice.next_passage_id)
                queue.append(choice.next_passage_id)
    return seen
