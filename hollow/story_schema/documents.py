"""
Story Documents - Pydantic models for the JSON story authoring format.

These models define the on-disk shape of a story. They are converted into
the frozen dataclasses in story.py before the engine ever sees them.

Accepted shorthand (from the older authoring format):
- `sanityChange` on a choice becomes a leading SanityChange effect
- `requiredSanity` / `minimumSanity` become `min_sanity`
- `content: [paragraph, ...]` becomes `text` joined by blank lines
- camelCase keys are accepted alongside snake_case
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .effect_dsl import (
    Effect,
    InventoryAdd,
    InventoryRemove,
    PlaySound,
    SanityChange,
    SetFlag,
    SetVariable,
)
from .story import Choice, Passage, Story, StoryPhase, TextVariant
from .validation import StoryValidationError


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


# =============================================================================
# Effects
# =============================================================================

class SanityChangeDocument(BaseModel):
    type: Literal["sanity_change"]
    delta: int

    def to_effect(self) -> Effect:
        return SanityChange(delta=self.delta)


class InventoryAddDocument(BaseModel):
    type: Literal["inventory_add"]
    item: str

    def to_effect(self) -> Effect:
        return InventoryAdd(item=self.item)


class InventoryRemoveDocument(BaseModel):
    type: Literal["inventory_remove"]
    item: str

    def to_effect(self) -> Effect:
        return InventoryRemove(item=self.item)


class SetFlagDocument(BaseModel):
    type: Literal["set_flag"]
    name: str
    value: bool = True

    def to_effect(self) -> Effect:
        return SetFlag(name=self.name, value=self.value)


class SetVariableDocument(BaseModel):
    type: Literal["set_variable"]
    name: str
    value: Any = None

    def to_effect(self) -> Effect:
        return SetVariable(name=self.name, value=self.value)


class PlaySoundDocument(BaseModel):
    type: Literal["play_sound"]
    cue: str

    def to_effect(self) -> Effect:
        return PlaySound(cue=self.cue)


EffectDocument = Annotated[
    Union[
        SanityChangeDocument,
        InventoryAddDocument,
        InventoryRemoveDocument,
        SetFlagDocument,
        SetVariableDocument,
        PlaySoundDocument,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# Graph
# =============================================================================

class ChoiceDocument(BaseModel):
    """A choice as authored."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    next_passage_id: str = Field(validation_alias=_alias("next_passage_id", "nextPassageId"))
    effects: list[EffectDocument] = Field(default_factory=list)

    sanity_change: Optional[int] = Field(
        None, validation_alias=_alias("sanity_change", "sanityChange")
    )
    min_sanity: Optional[int] = Field(
        None,
        validation_alias=_alias("min_sanity", "minSanity", "requiredSanity", "minimumSanity"),
    )
    max_sanity: Optional[int] = Field(
        None, validation_alias=_alias("max_sanity", "maxSanity", "maximumSanity")
    )
    requires_items: list[str] = Field(
        default_factory=list,
        validation_alias=_alias("requires_items", "requiresItems", "requiredItems"),
    )
    requires_flags: dict[str, bool] = Field(
        default_factory=dict,
        validation_alias=_alias("requires_flags", "requiresFlags", "requiredFlags"),
    )
    critical: bool = False

    def to_choice(self) -> Choice:
        effects = [doc.to_effect() for doc in self.effects]
        if self.sanity_change:
            effects.insert(0, SanityChange(delta=self.sanity_change))
        return Choice(
            choice_id=self.id,
            text=self.text,
            next_passage_id=self.next_passage_id,
            effects=tuple(effects),
            min_sanity=self.min_sanity,
            max_sanity=self.max_sanity,
            requires_items=frozenset(self.requires_items),
            requires_flags=dict(self.requires_flags),
            critical=self.critical,
        )


class TextVariantDocument(BaseModel):
    """Alternate passage text with its conditions."""
    model_config = ConfigDict(populate_by_name=True)

    text: str
    sanity_below: Optional[int] = Field(None, validation_alias=_alias("sanity_below", "sanityBelow"))
    sanity_above: Optional[int] = Field(None, validation_alias=_alias("sanity_above", "sanityAbove"))
    has_items: list[str] = Field(default_factory=list, validation_alias=_alias("has_items", "hasItems"))
    has_flags: dict[str, bool] = Field(default_factory=dict, validation_alias=_alias("has_flags", "hasFlags"))

    def to_variant(self) -> TextVariant:
        return TextVariant(
            text=self.text,
            sanity_below=self.sanity_below,
            sanity_above=self.sanity_above,
            has_items=frozenset(self.has_items),
            has_flags=dict(self.has_flags),
        )


class PassageDocument(BaseModel):
    """A passage as authored. `id` may be omitted when passages are keyed."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    text: Optional[str] = None
    content: list[str] = Field(default_factory=list)
    title: Optional[str] = None
    phase: Optional[str] = None
    background: Optional[str] = None
    music: Optional[str] = None
    choices: list[ChoiceDocument] = Field(default_factory=list)
    variants: list[TextVariantDocument] = Field(
        default_factory=list,
        validation_alias=_alias("variants", "alternateDescriptions"),
    )

    def to_passage(self, key: str | None = None) -> Passage:
        text = self.text if self.text is not None else "\n\n".join(self.content)
        return Passage(
            passage_id=self.id or key or "",
            text=text,
            choices=tuple(doc.to_choice() for doc in self.choices),
            title=self.title,
            phase=StoryPhase.parse(self.phase),
            background=self.background,
            music=self.music,
            variants=tuple(doc.to_variant() for doc in self.variants),
        )


class StoryDocument(BaseModel):
    """A complete story as authored."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    author: str = ""
    description: str = ""
    start_passage_id: str = Field(validation_alias=_alias("start_passage_id", "startPassageId"))
    passages: Union[dict[str, PassageDocument], list[PassageDocument]]
    ending_passage_ids: list[str] = Field(
        default_factory=list,
        validation_alias=_alias("ending_passage_ids", "endingPassageIds", "endings"),
    )
    starting_sanity: int = Field(100, validation_alias=_alias("starting_sanity", "startingSanity"))
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_story(self) -> Story:
        if isinstance(self.passages, dict):
            passages = {key: doc.to_passage(key) for key, doc in self.passages.items()}
        else:
            passages = self._index_passages()
        return Story(
            story_id=self.id,
            title=self.title,
            author=self.author,
            description=self.description,
            start_passage_id=self.start_passage_id,
            passages=passages,
            ending_passage_ids=frozenset(self.ending_passage_ids),
            starting_sanity=self.starting_sanity,
            metadata=dict(self.metadata),
        )

    def _index_passages(self) -> dict[str, Passage]:
        """Key list-form passages by id. Missing and repeated ids are errors."""
        passages: dict[str, Passage] = {}
        errors = []
        for index, doc in enumerate(self.passages):
            passage = doc.to_passage()
            if not passage.passage_id:
                errors.append(f"passages.{index}: id is required in list form")
            elif passage.passage_id in passages:
                errors.append(f"passages.{index}: duplicate passage id '{passage.passage_id}'")
            else:
                passages[passage.passage_id] = passage
        if errors:
            raise StoryValidationError(self.id, errors)
        return passages


def parse_story(data: dict[str, Any]) -> Story:
    """
    Build a Story from a decoded JSON document.

    Raises StoryValidationError if the document does not match the schema.
    Graph-level checks (dangling targets etc.) are left to validate_story().
    """
    try:
        document = StoryDocument.model_validate(data)
    except ValidationError as e:
        story_id = data.get("id", "<unknown>") if isinstance(data, dict) else "<unknown>"
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise StoryValidationError(str(story_id), errors) from e
    return document.to_story()


def load_story_file(path: str | Path) -> Story:
    """Read and parse a JSON story file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise StoryValidationError(path.stem, [f"Invalid JSON: {e}"]) from e
    except UnicodeDecodeError as e:
        raise StoryValidationError(path.stem, [f"File is not UTF-8: {e}"]) from e
    except OSError as e:
        raise StoryValidationError(path.stem, [f"Cannot read file: {e}"]) from e
    return parse_story(data)
