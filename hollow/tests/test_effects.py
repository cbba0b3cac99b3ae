"""
Tests for the effect processor.

Tests:
- Sanity clamping after every delta
- Inventory idempotence
- Flags, variables and sound cues
- Input state is never modified
"""

import pytest

from ..engine_core.effects import _HANDLERS, apply_effects
from ..engine_core.state import PlayerState
from ..story_schema.effect_dsl import (
    EFFECT_CLASSES,
    effect_to_dict,
    flag,
    give,
    sanity,
    sound,
    take,
    var,
)


class TestSanityEffects:
    """Tests for SanityChange."""

    def test_single_drop(self, start_state):
        """A -60 drop from 100 leaves 40."""
        outcome = apply_effects(start_state, [sanity(-60)])
        assert outcome.state.sanity == 40

    def test_clamps_after_each_delta(self, start_state):
        """-110 then +5 gives 5, not clamp(100 - 110 + 5) = 0."""
        outcome = apply_effects(start_state, [sanity(-110), sanity(5)])
        assert outcome.state.sanity == 5

    def test_clamps_at_ceiling(self, start_state):
        """Gains above 100 are discarded before later drops apply."""
        outcome = apply_effects(start_state, [sanity(50), sanity(-10)])
        assert outcome.state.sanity == 90

    @pytest.mark.parametrize("deltas", [
        [-30, -30, -30, -30],
        [70, -200, 15, 300],
        [-1] * 150,
    ])
    def test_every_step_in_range(self, start_state, deltas):
        """Sanity stays within [0, 100] after every single effect."""
        state = start_state
        for delta in deltas:
            state = apply_effects(state, [sanity(delta)]).state
            assert 0 <= state.sanity <= 100

    def test_change_description(self, start_state):
        outcome = apply_effects(start_state, [sanity(-15)])
        assert outcome.changes == ["Sanity 100 -> 85"]

    def test_no_change_at_floor_is_silent(self, start_state):
        state = start_state._copy_with(sanity=0)
        outcome = apply_effects(state, [sanity(-5)])
        assert outcome.state.sanity == 0
        assert outcome.changes == []


class TestInventoryEffects:
    """Tests for InventoryAdd and InventoryRemove."""

    def test_add_twice_is_add_once(self, start_state):
        """Adding an item twice equals adding it once."""
        once = apply_effects(start_state, [give("key")]).state
        twice = apply_effects(start_state, [give("key"), give("key")]).state
        assert once.inventory == twice.inventory == frozenset({"key"})

    def test_remove_missing_is_noop(self, start_state):
        outcome = apply_effects(start_state, [take("lamp")])
        assert outcome.state.inventory == frozenset()
        assert outcome.changes == []

    def test_add_then_remove(self, start_state):
        outcome = apply_effects(start_state, [give("key"), give("lamp"), take("key")])
        assert outcome.state.inventory == frozenset({"lamp"})
        assert outcome.changes == ["Gained key", "Gained lamp", "Lost key"]


class TestFlagsAndVariables:
    """Tests for SetFlag and SetVariable."""

    def test_set_and_clear_flag(self, start_state):
        state = apply_effects(start_state, [flag("seal")]).state
        assert state.flags == {"seal": True}
        state = apply_effects(state, [flag("seal", False)]).state
        assert state.flags == {"seal": False}

    def test_variable_value_is_copied(self, start_state):
        """Mutating the authored value afterwards does not leak into state."""
        value = {"pages": [1, 2]}
        effect = var("notes", value)
        state = apply_effects(start_state, [effect]).state
        value["pages"].append(3)
        assert state.variables["notes"] == {"pages": [1, 2]}

    def test_later_effects_see_earlier(self, start_state):
        state = apply_effects(start_state, [var("count", 1), var("count", 2)]).state
        assert state.variables["count"] == 2


class TestSoundEffects:
    """Tests for PlaySound."""

    def test_sound_collected_not_applied(self, start_state):
        outcome = apply_effects(start_state, [sound("thunder"), sanity(-5), sound("scream")])
        assert outcome.sound_cues == ["thunder", "scream"]
        assert outcome.state.sanity == 95

    def test_sound_only_leaves_state_equal(self, start_state):
        outcome = apply_effects(start_state, [sound("drip")])
        assert outcome.state == start_state


class TestProcessorContract:
    """Tests for processor-wide guarantees."""

    def test_input_state_untouched(self, start_state):
        before = start_state.clone()
        apply_effects(start_state, [sanity(-50), give("key"), flag("x"), var("v", [1])])
        assert start_state == before

    def test_every_effect_class_has_handler(self):
        """Adding an effect variant without a handler is caught here."""
        assert set(_HANDLERS) == set(EFFECT_CLASSES.values())

    def test_empty_effects(self, start_state):
        outcome = apply_effects(start_state, [])
        assert outcome.state == start_state
        assert outcome.sound_cues == []

    def test_effect_to_dict_tags(self):
        assert effect_to_dict(sanity(-5)) == {"type": "sanity_change", "delta": -5}
        assert effect_to_dict(give("key"))["type"] == "inventory_add"


class TestPlayerStateSanity:
    """Tests for clamping at construction."""

    def test_construction_clamps(self):
        assert PlayerState(story_id="s", current_passage_id="p", sanity=150).sanity == 100
        assert PlayerState(story_id="s", current_passage_id="p", sanity=-3).sanity == 0
