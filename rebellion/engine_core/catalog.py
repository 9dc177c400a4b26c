"""
Card Catalog - Immutable card definitions looked up by id.

Loaded once from three definition tables (leaders, characters, utilities)
plus the combo bonus table. A missing card id is never a user error: it
means the data is corrupt, so lookups raise CardNotFound.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
import json
import logging

from .action import CardNotFound
from .effects import EffectRule, parse_rules
from .state import ALL, BATTLE_ZONES

logger = logging.getLogger(__name__)


class CardKind(str, Enum):
    LEADER = "leader"
    CHARACTER = "character"
    HELP = "help"
    SP = "sp"


@dataclass(frozen=True)
class CardDef:
    """
    A card definition.

    Leaders use base_power as their initial point (turn order and SP
    priority) and carry zone_compatibility for the three battle zones.
    """
    card_id: str
    kind: CardKind
    name: str
    base_power: int = 0
    game_type: str = ""
    traits: frozenset[str] = frozenset()
    zone_compatibility: dict[str, Any] = field(default_factory=dict, compare=False)
    rules: tuple[EffectRule, ...] = ()
    immune_to_neutralization: bool = False

    @property
    def initial_point(self) -> int:
        return self.base_power

    @property
    def has_effects(self) -> bool:
        return bool(self.rules)

    @property
    def is_character(self) -> bool:
        return self.kind == CardKind.CHARACTER

    def rules_for(self, *events: str) -> list[EffectRule]:
        return [r for r in self.rules if r.event in events]

    def allowed_in(self, zone: str) -> Any:
        """Leader compatibility for a battle zone: ALL or a frozenset of game types."""
        return self.zone_compatibility.get(zone, ALL)


@dataclass(frozen=True)
class ComboDef:
    name: str
    bonus: int
    min_cards: int = 2
    min_power: int = 0
    max_spread: int = 0


def _card_from_dict(data: dict[str, Any], default_kind: CardKind) -> CardDef:
    card_id = data["id"]
    kind = CardKind(data.get("cardType", default_kind.value))
    effects = data.get("effects") or {}
    immune = bool(data.get("immuneToNeutralization", False))
    if isinstance(effects, dict):
        immune = immune or bool(effects.get("immuneToNeutralization", False))

    compat: dict[str, Any] = {}
    for zone in BATTLE_ZONES:
        allowed = (data.get("zoneCompatibility") or {}).get(zone, ALL)
        compat[zone] = ALL if allowed == ALL else frozenset(allowed)

    power = data.get("power", data.get("basePower", data.get("initialPoint", 0)))
    return CardDef(
        card_id=card_id,
        kind=kind,
        name=data.get("name", card_id),
        base_power=max(0, int(power or 0)),
        game_type=data.get("gameType", ""),
        traits=frozenset(data.get("traits") or ()),
        zone_compatibility=compat,
        rules=parse_rules(effects, card_id, is_leader=kind == CardKind.LEADER),
        immune_to_neutralization=immune,
    )


class CardCatalog:
    """
    Read-only lookup of card definitions, combos and sample decks.

    Usage:
        catalog = CardCatalog.load()
        trump = catalog.get("s-1")
    """

    def __init__(
        self,
        cards: dict[str, CardDef],
        combos: dict[str, ComboDef] | None = None,
        decks: dict[str, dict[str, list[str]]] | None = None,
    ):
        self._cards = dict(cards)
        self._combos = dict(combos or {})
        self._decks = dict(decks or {})

    def __contains__(self, card_id: str) -> bool:
        return card_id in self._cards

    def __len__(self) -> int:
        return len(self._cards)

    def get(self, card_id: str) -> CardDef:
        """Look up a card; raises CardNotFound for unknown ids."""
        card = self._cards.get(card_id)
        if card is None:
            raise CardNotFound(card_id)
        return card

    def find(self, card_id: str) -> CardDef | None:
        return self._cards.get(card_id)

    def all_cards(self) -> list[CardDef]:
        return list(self._cards.values())

    @property
    def combos(self) -> dict[str, ComboDef]:
        return dict(self._combos)

    def deck(self, name: str) -> dict[str, list[str]]:
        """A packaged sample deck: {"leaders": [...], "cards": [...]}."""
        deck = self._decks.get(name)
        if deck is None:
            raise KeyError(f"Unknown deck {name!r}")
        return {"leaders": list(deck["leaders"]), "cards": list(deck["cards"])}

    @property
    def deck_names(self) -> list[str]:
        return sorted(self._decks)

    @classmethod
    def from_dicts(
        cls,
        leaders: dict[str, Any],
        characters: dict[str, Any],
        utilities: dict[str, Any],
        combos: dict[str, Any] | None = None,
        decks: dict[str, Any] | None = None,
    ) -> CardCatalog:
        """Build a catalog from the parsed JSON tables."""
        cards: dict[str, CardDef] = {}
        tables = (
            (leaders.get("leaders", leaders), CardKind.LEADER),
            (characters.get("cards", characters), CardKind.CHARACTER),
            (utilities.get("cards", utilities), CardKind.HELP),
        )
        for table, kind in tables:
            for card_id, data in table.items():
                card = _card_from_dict({"id": card_id, **data}, kind)
                if card.card_id in cards:
                    raise ValueError(f"Duplicate card id {card.card_id!r}")
                cards[card.card_id] = card

        combo_defs = {}
        for name, data in ((combos or {}).get("combos", combos or {})).items():
            combo_defs[name] = ComboDef(
                name=name,
                bonus=int(data.get("bonus", 0)),
                min_cards=int(data.get("minCards", 2)),
                min_power=int(data.get("minPower", 0)),
                max_spread=int(data.get("maxSpread", 0)),
            )

        deck_defs = (decks or {}).get("decks", decks or {})
        logger.info("Loaded catalog: %d cards, %d combos", len(cards), len(combo_defs))
        return cls(cards, combo_defs, deck_defs)

    @classmethod
    def load(cls, data_dir: str | Path | None = None) -> CardCatalog:
        """Load from a directory of JSON files, or from the packaged data."""
        names = ("leaders", "characters", "utilities", "combos", "decks")
        if data_dir is not None:
            base = Path(data_dir)
            tables = [json.loads((base / f"{n}.json").read_text(encoding="utf-8")) for n in names]
        else:
            pkg = resources.files("rebellion.data")
            tables = [json.loads(pkg.joinpath(f"{n}.json").read_text(encoding="utf-8")) for n in names]
        return cls.from_dicts(*tables)


@lru_cache(maxsize=4)
def default_catalog(data_dir: str | None = None) -> CardCatalog:
    """Process-wide catalog, loaded on first use."""
    return CardCatalog.load(data_dir)
