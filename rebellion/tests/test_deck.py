"""
Tests for deck operations.

Tests:
- Deck validation
- Seeded shuffles, draws and redraws
- Search returns and random discards
"""

import random

import pytest

from ..engine_core.deck import (
    DeckError, build_player, card_count, draw, random_discard, redraw_hand,
    return_to_bottom, seed_for, validate_decks,
)
from ..engine_core.state import PlayerState


class TestValidation:
    """Tests for validate_decks."""

    def test_packaged_decks_are_valid(self, catalog):
        validate_decks(catalog, [catalog.deck("patriots"), catalog.deck("progressives")])

    @pytest.mark.parametrize("decks, message", [
        ([{"leaders": [], "cards": ["c-1"]}], "no leaders"),
        ([{"leaders": ["s-1"], "cards": ["zz-9"]}], "unknown card"),
        ([{"leaders": ["c-1"], "cards": []}], "not a leader"),
        ([{"leaders": ["s-1"], "cards": ["s-2"]}], "Leader"),
        ([{"leaders": ["s-1"], "cards": ["c-1"]}, {"leaders": ["s-2"], "cards": ["c-1"]}], "more than once"),
    ])
    def test_bad_decks(self, catalog, decks, message):
        with pytest.raises(DeckError, match=message):
            validate_decks(catalog, decks)


class TestShuffleAndDraw:
    """Tests for seeded deck handling."""

    def test_seed_is_stable(self):
        assert seed_for("g1", "salt") == seed_for("g1", "salt")
        assert seed_for("g1", "salt") != seed_for("g2", "salt")

    def test_build_player_shuffles_with_match_rng(self):
        deck = {"leaders": ["s-1", "s-5"], "cards": [f"c-{i}" for i in range(1, 10)]}
        a = build_player("p1", deck, random.Random(7))
        b = build_player("p1", deck, random.Random(7))
        assert a.main_deck == b.main_deck
        assert sorted(a.main_deck) == sorted(deck["cards"])
        assert a.leader_list == ["s-1", "s-5"]

    def test_draw_takes_from_top(self):
        player = PlayerState(player_id="p1", main_deck=["c-1", "c-2", "c-3"])
        assert draw(player, 2) == ["c-1", "c-2"]
        assert player.hand == ["c-1", "c-2"]
        assert player.main_deck == ["c-3"]

    def test_draw_from_short_deck(self):
        player = PlayerState(player_id="p1", main_deck=["c-1"])
        assert draw(player, 3) == ["c-1"]
        assert draw(player, 1) == []

    def test_redraw_keeps_card_count(self):
        player = PlayerState(player_id="p1", main_deck=[f"c-{i}" for i in range(1, 12)])
        draw(player, 7)
        before = card_count(player)
        redraw_hand(player, random.Random(1), 7)
        assert len(player.hand) == 7
        assert card_count(player) == before


class TestSearchAndDiscard:
    """Tests for deck-bottom returns and random discards."""

    def test_return_to_bottom_keeps_order(self):
        player = PlayerState(player_id="p1", main_deck=["a", "b", "c", "d"])
        return_to_bottom(player, ["a", "c"])
        assert player.main_deck == ["b", "d", "a", "c"]

    def test_random_discard_moves_to_pile(self):
        player = PlayerState(player_id="p1", hand=["a", "b", "c"])
        discarded = random_discard(player, 2, random.Random(3))
        assert len(discarded) == 2
        assert player.discard_pile == discarded
        assert len(player.hand) == 1

    def test_random_discard_is_seeded(self):
        first = random_discard(PlayerState(player_id="p1", hand=list("abcdef")), 3, random.Random(11))
        second = random_discard(PlayerState(player_id="p1", hand=list("abcdef")), 3, random.Random(11))
        assert first == second

    def test_random_discard_caps_at_hand_size(self):
        player = PlayerState(player_id="p1", hand=["a"])
        assert random_discard(player, 2, random.Random(0)) == ["a"]
