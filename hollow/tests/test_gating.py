"""
Tests for the choice gate evaluator.

Tests:
- Each gate in isolation
- Rule precedence
- Missing item subsets
- Purity
"""

import pytest

from ..engine_core.gating import OPEN, BlockReason, evaluate, evaluate_passage
from ..story_schema import Choice


def _choice(**gates) -> Choice:
    return Choice(choice_id="c", text="Choice", next_passage_id="start", **gates)


class TestSanityGates:
    """Tests for min_sanity / max_sanity."""

    def test_min_sanity_blocks_below(self, start_state):
        """sanity 40 against min 50 is locked as SANITY_TOO_LOW."""
        state = start_state._copy_with(sanity=40)
        result = evaluate(_choice(min_sanity=50), state)

        assert result.visible
        assert not result.selectable
        assert result.block_reason == BlockReason.SANITY_TOO_LOW

    def test_min_sanity_is_inclusive(self, start_state):
        state = start_state._copy_with(sanity=50)
        assert evaluate(_choice(min_sanity=50), state).selectable

    def test_max_sanity_blocks_above(self, start_state):
        result = evaluate(_choice(max_sanity=30), start_state)
        assert result.block_reason == BlockReason.SANITY_TOO_HIGH

    def test_max_sanity_is_inclusive(self, start_state):
        state = start_state._copy_with(sanity=30)
        assert evaluate(_choice(max_sanity=30), state).selectable


class TestItemAndFlagGates:
    """Tests for requires_items / requires_flags."""

    def test_reports_missing_subset(self, start_state):
        state = start_state._copy_with(inventory=frozenset({"key"}))
        result = evaluate(_choice(requires_items=frozenset({"key", "lamp", "rope"})), state)

        assert result.block_reason == BlockReason.MISSING_ITEMS
        assert result.missing_items == frozenset({"lamp", "rope"})
        assert result.label == "Requires lamp, rope"

    def test_items_held(self, start_state):
        state = start_state._copy_with(inventory=frozenset({"key", "lamp"}))
        assert evaluate(_choice(requires_items=frozenset({"key"})), state) == OPEN

    def test_unset_flag_counts_as_false(self, start_state):
        """An unset flag satisfies a False requirement and fails a True one."""
        assert evaluate(_choice(requires_flags={"seal": False}), start_state).selectable
        result = evaluate(_choice(requires_flags={"seal": True}), start_state)
        assert result.block_reason == BlockReason.CONDITIONS_NOT_MET

    def test_flag_set(self, start_state):
        state = start_state._copy_with(flags={"seal": True})
        assert evaluate(_choice(requires_flags={"seal": True}), state).selectable


class TestRulePrecedence:
    """The first failing rule in fixed order is reported."""

    @pytest.mark.parametrize("sanity,inventory,flags,expected", [
        (10, frozenset(), {}, BlockReason.SANITY_TOO_LOW),
        (95, frozenset(), {}, BlockReason.SANITY_TOO_HIGH),
        (60, frozenset(), {}, BlockReason.MISSING_ITEMS),
        (60, frozenset({"key"}), {}, BlockReason.CONDITIONS_NOT_MET),
        (60, frozenset({"key"}), {"seal": True}, None),
    ])
    def test_order(self, start_state, sanity, inventory, flags, expected):
        choice = _choice(
            min_sanity=20,
            max_sanity=90,
            requires_items=frozenset({"key"}),
            requires_flags={"seal": True},
        )
        state = start_state._copy_with(sanity=sanity, inventory=inventory, flags=flags)
        assert evaluate(choice, state).block_reason == expected


class TestPurity:
    """evaluate() is deterministic and side-effect free."""

    def test_same_inputs_same_result(self, start_state):
        choice = _choice(min_sanity=50, requires_items=frozenset({"key"}))
        results = {evaluate(choice, start_state) for _ in range(5)}
        assert len(results) == 1

    def test_state_untouched(self, start_state):
        before = start_state.clone()
        evaluate(_choice(requires_items=frozenset({"key"})), start_state)
        assert start_state == before

    def test_ungated_choice_is_open(self, start_state):
        assert evaluate(_choice(), start_state) is OPEN

    def test_evaluate_passage_keeps_authored_order(self, crypt_story, start_state):
        results = evaluate_passage(crypt_story.get_passage("start"), start_state)
        assert [c.choice_id for c, _ in results] == ["enter", "plunge", "vault", "pray"]
        assert [g.selectable for _, g in results] == [True, True, False, True]
