"""
Tests for the effect simulator.

Tests:
- Leader boosts, nullification and zone restrictions
- Live conditions
- Effect ordering and face-down cards
- Combos and combo suppression
- Determinism and replay from a saved document
- Target filters by card type
"""

import pytest

from ..engine_core.action import SequenceIntegrityError
from ..engine_core.state import ActiveEffect, EffectTarget, MatchState, Scope
from .helpers import effects_by_source, take_turn


class TestLeaderEffects:
    """Tests for continuous leader rules."""

    def test_trump_boosts_patriot(self, reducer, match_factory):
        state = match_factory(p1_hand=["c-1"], p2_hand=["c-6"])
        state = take_turn(reducer, state, "p1", "c-1", "left")

        p1 = state.require_player("p1")
        assert p1.field_effects.calculated_powers["c-1"] == 155
        assert p1.field_effects.zone_restrictions["TOP"] == {"right-wing", "freedom", "economy"}
        assert state.zones["p1"].left[0].value_on_field == 155
        assert p1.player_point == 155

    def test_powell_nullifies_opponent_economy(self, reducer, match_factory):
        state = match_factory(p2_leaders=["s-2"], p1_hand=["c-econ"], p2_hand=["c-6"])
        state = take_turn(reducer, state, "p1", "c-econ", "top")

        p1 = state.require_player("p1")
        assert p1.field_effects.calculated_powers["c-econ"] == 0
        assert p1.player_point == 0
        nullifier = effects_by_source(state, "s-2")[0]
        assert nullifier.type == "powerNullification"
        assert nullifier.target.player_id == "p1"
        assert nullifier.unremovable

    def test_sanders_restricts_opponent_top(self, match_factory):
        state = match_factory(p2_leaders=["s-3"], p1_hand=["c-2"], p2_hand=["c-4"])
        assert state.require_player("p1").field_effects.zone_restrictions["TOP"] == {"freedom", "economy"}

    def test_condition_tracks_opponent_hand(self, reducer, match_factory):
        """Musk boosts tech only while the opponent holds five or more cards."""
        state = match_factory(
            p1_hand=["c-2", "c-3", "c-9", "c-12", "c-13", "c-14"],
            p2_hand=["c-8", "c-6"],
        )
        state = take_turn(reducer, state, "p1", "c-2", "top")
        state = take_turn(reducer, state, "p2", "c-8", "top")
        assert state.require_player("p2").field_effects.calculated_powers["c-8"] == 115

        state = take_turn(reducer, state, "p1", "c-3", "right")
        assert len(state.require_player("p1").hand) == 4
        assert state.require_player("p2").field_effects.calculated_powers["c-8"] == 95


class TestEffectOrdering:
    """Tests for the order of active effects."""

    def test_equal_priority_keeps_play_order(self, reducer, match_factory):
        state = match_factory(p1_hand=["c-1", "h-x"], p2_hand=["c-6", "c-4"])
        state = take_turn(reducer, state, "p1", "c-1", "left")
        state = take_turn(reducer, state, "p2", "c-6", "top")
        state = take_turn(reducer, state, "p1", "h-x", "help")

        ids = [e.effect_id for e in state.require_player("p1").field_effects.active_effects]
        assert ids == ["s-1_patriot_rally", "c-1_colour_guard", "h-x_parade"]
        assert state.require_player("p1").field_effects.calculated_powers["c-1"] == 185


class TestFaceDown:
    """Tests for face-down placements."""

    def test_face_down_has_no_power_or_effects(self, reducer, match_factory):
        state = match_factory(p1_hand=["c-1"], p2_hand=["c-6"])
        state = take_turn(reducer, state, "p1", "c-1", "top", face_down=True)

        p1 = state.require_player("p1")
        assert p1.field_effects.calculated_powers["c-1"] == 0
        assert effects_by_source(state, "c-1") == []
        assert p1.player_point == 0

    def test_face_down_help_does_not_fire(self, reducer, match_factory):
        state = match_factory(p1_hand=["h-3"], p1_deck=["c-2", "c-3"], p2_hand=["c-6"])
        state = take_turn(reducer, state, "p1", "h-3", "help", face_down=True)
        assert state.require_player("p1").main_deck == ["c-2", "c-3"]


class TestCombos:
    """Tests for combo bonuses."""

    def test_combos_for(self, catalog, reducer):
        pick = [catalog.get(c) for c in ("c-2", "c-3")]
        assert reducer.simulator.combos_for(pick) == ["all_same_type"]

        mixed = [catalog.get(c) for c in ("c-2", "c-4", "c-8")]
        assert reducer.simulator.combos_for(mixed) == ["all_different_type", "high_power_trio", "balanced_power"]

    def test_scandal_disables_opponent_combos(self, reducer, match_factory):
        state = match_factory(p1_hand=["c-2", "c-3"], p2_hand=["h-8", "c-4"])
        state = take_turn(reducer, state, "p1", "c-2", "top")
        state = take_turn(reducer, state, "p2", "h-8", "help")
        state = take_turn(reducer, state, "p1", "c-3", "right")

        points = reducer.simulator.points(state, "p1")
        assert points.combo_disabled
        assert points.combos == []
        assert points.card_power == 265
        assert points.total == 265


class TestDeterminism:
    """Tests for replaying the play sequence."""

    def _played(self, reducer, match_factory):
        state = match_factory(p1_hand=["c-1", "h-x", "c-2"], p2_hand=["c-6", "h-1", "c-4"])
        state = take_turn(reducer, state, "p1", "c-1", "left")
        state = take_turn(reducer, state, "p2", "c-6", "top")
        return take_turn(reducer, state, "p1", "h-x", "help")

    def test_simulate_is_idempotent(self, reducer, match_factory):
        state = self._played(reducer, match_factory)
        before = [p.field_effects.to_dict() for p in state.players]
        reducer.simulate(state)
        reducer.simulate(state)
        assert [p.field_effects.to_dict() for p in state.players] == before

    def test_reload_and_simulate_reproduces_effects(self, reducer, match_factory):
        state = self._played(reducer, match_factory)
        reloaded = MatchState.from_dict(state.to_dict())
        for player in reloaded.players:
            player.field_effects.active_effects = []
        reducer.simulate(reloaded)

        assert [p.field_effects.to_dict() for p in reloaded.players] == \
            [p.field_effects.to_dict() for p in state.players]
        assert reloaded.rng.random() == state.clone().rng.random()

    def test_gap_in_sequence_is_fatal(self, reducer, match_factory):
        state = self._played(reducer, match_factory)
        state.play_sequence[1].sequence_id = 9
        with pytest.raises(SequenceIntegrityError):
            reducer.simulate(state)


class TestTargetFilters:
    """Tests for matching an effect's target against a card."""

    def _effect(self, **target):
        return ActiveEffect(
            effect_id="x-1_boost", source="x-1", source_player_id="p1", type="powerBoost",
            target=EffectTarget(scope=Scope.SELF, player_id="p1", **target), value=10,
        )

    def test_card_type_filter(self, catalog, reducer):
        card = catalog.get("c-1")
        assert reducer.simulator._matches(self._effect(card_types=["character"]), card, "left")
        assert not reducer.simulator._matches(self._effect(card_types=["help"]), card, "left")

    def test_card_type_survives_reload(self):
        effect = self._effect(card_types=["help"])
        assert ActiveEffect.from_dict(effect.to_dict()).target.card_types == ["help"]
