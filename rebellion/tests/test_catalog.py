"""
Tests for the card catalog and rule normalization.

Tests:
- Packaged data loads and lookups behave
- Effect kinds and aliases normalize to typed variants
- Unknown kinds are dropped with a warning
- Loading from a data directory
"""

import json
import logging

import pytest

from ..engine_core.action import CardNotFound, ErrorKind
from ..engine_core.catalog import CardCatalog, CardKind
from ..engine_core.effects import (
    ForceSPPlay, NeutralizeEffect, PowerBoost, PowerNullification, SearchCard,
    ZoneRestriction, normalize_rule,
)
from ..engine_core.state import ALL


class TestPackagedCatalog:
    """Tests for the packaged card data."""

    def test_cards_have_expected_kinds(self, catalog):
        assert catalog.get("s-1").kind == CardKind.LEADER
        assert catalog.get("c-1").kind == CardKind.CHARACTER
        assert catalog.get("h-1").kind == CardKind.HELP
        assert catalog.get("sp-1").kind == CardKind.SP

    def test_leader_initial_point(self, catalog):
        assert catalog.get("s-1").initial_point == 110
        assert catalog.get("s-2").initial_point == 100

    def test_unknown_card_is_catalog_corruption(self, catalog):
        """Missing ids raise, they are never user errors."""
        with pytest.raises(CardNotFound) as exc:
            catalog.get("nope-1")
        assert exc.value.kind == ErrorKind.CATALOG_CORRUPT
        assert catalog.find("nope-1") is None

    def test_zone_compatibility(self, catalog):
        trump = catalog.get("s-1")
        assert trump.allowed_in("top") == frozenset({"right-wing", "freedom", "economy"})
        assert catalog.get("s-4").allowed_in("left") == ALL

    def test_packaged_decks(self, catalog):
        assert catalog.deck_names == ["patriots", "progressives"]
        deck = catalog.deck("patriots")
        assert deck["leaders"] == ["s-1", "s-4", "s-5"]
        assert len(deck["cards"]) == 23
        with pytest.raises(KeyError):
            catalog.deck("anarchists")

    def test_combo_table(self, catalog):
        combos = catalog.combos
        assert combos["trait_synergy"].bonus == 30
        assert combos["high_power_trio"].min_power == 80

    def test_immunity_flag(self, catalog):
        assert catalog.get("h-5").immune_to_neutralization
        assert not catalog.get("h-x").immune_to_neutralization


class TestRuleNormalization:
    """Tests for turning card JSON into typed rules."""

    def test_leader_set_power_zero_becomes_nullification(self, catalog):
        rule = catalog.get("s-2").rules[0]
        assert isinstance(rule.kind, PowerNullification)
        assert rule.target.owner == "opponent"
        assert rule.target.game_types == ("economy",)
        assert rule.unremovable

    def test_prevent_summon_alias(self, catalog):
        rule = catalog.get("s-3").rules[1]
        assert isinstance(rule.kind, ZoneRestriction)
        assert rule.kind.restricted_types == ("right-wing",)
        assert rule.conditions == ({"type": "opponentLeader", "value": "Trump"},)

    def test_power_nerf_is_negative_boost(self, catalog):
        rule = catalog.get("h-14").rules[0]
        assert rule.kind == PowerBoost(value=-60)
        assert rule.requires_selection

    def test_force_sp_play(self, catalog):
        kinds = [type(r.kind) for r in catalog.get("h-12").rules]
        assert kinds == [NeutralizeEffect, ForceSPPlay]

    def test_search_rule(self, catalog):
        rule = catalog.get("c-10").rules[0]
        assert rule.kind == SearchCard(
            search_count=7, select_count=1, filters=(("cardType", "sp"),), destination="spZone",
        )
        assert rule.requires_selection
        assert not rule.kind.declarative

    def test_after_combo_timing(self, catalog):
        assert catalog.get("sp-3").rules[0].is_after_combo
        assert not catalog.get("sp-1").rules[0].is_after_combo

    def test_unknown_kind_is_dropped(self, caplog):
        raw = {"id": "warp", "type": "triggered", "effect": {"type": "teleport"}}
        with caplog.at_level(logging.WARNING):
            assert normalize_rule(raw, "x-1") is None
        assert "teleport" in caplog.text

    def test_timing_defaults(self):
        rule = normalize_rule({"type": "permanent", "effect": {"type": "powerBoost", "value": 5}}, "x-2")
        assert rule.is_continuous
        assert rule.event == "always"
        assert rule.rule_id == "powerBoost_0"

    def test_card_type_target_filter(self):
        raw = {
            "type": "permanent",
            "target": {"owner": "opponent", "filters": [{"type": "cardType", "value": "help"}]},
            "effect": {"type": "powerBoost", "value": 5},
        }
        rule = normalize_rule(raw, "x-3")
        assert rule.target.card_types == ("help",)
        assert rule.target.owner == "opponent"


class TestCatalogLoading:
    """Tests for loading card tables from disk."""

    def _write(self, path, name, data):
        (path / f"{name}.json").write_text(json.dumps(data), encoding="utf-8")

    def test_load_from_directory(self, tmp_path):
        self._write(tmp_path, "leaders", {"leaders": {"l-1": {"name": "Solo", "initialPoint": 50}}})
        self._write(tmp_path, "characters", {"cards": {"k-1": {"name": "Pawn", "gameType": "freedom", "power": 10}}})
        self._write(tmp_path, "utilities", {"cards": {"u-1": {"name": "Aid", "cardType": "help"}}})
        self._write(tmp_path, "combos", {"combos": {}})
        self._write(tmp_path, "decks", {"decks": {"solo": {"leaders": ["l-1"], "cards": ["k-1", "u-1"]}}})

        catalog = CardCatalog.load(tmp_path)

        assert len(catalog) == 3
        assert catalog.get("l-1").kind == CardKind.LEADER
        assert catalog.get("k-1").base_power == 10
        assert catalog.get("u-1").kind == CardKind.HELP
        assert catalog.deck_names == ["solo"]

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            CardCatalog.from_dicts(
                {"leaders": {"x-1": {"name": "A"}}},
                {"cards": {"x-1": {"name": "B"}}},
                {"cards": {}},
            )
