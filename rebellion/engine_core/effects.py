"""
Effect Kinds - Tagged effect variants and the central rule normalizer.

Card JSON describes effects with string-typed kinds and a handful of
historical aliases ("drawCard", "forcePlaySP", "preventSummon", ...). The
normalizer turns every rule into an EffectRule holding one typed
EffectKind so the simulator and the reducer dispatch on classes instead of
strings.

Key design decisions:
- Unknown kinds are logged and dropped, never raised
- Declarative kinds become ActiveEffects during simulation
- Side-effect kinds (draw, discard, search, selections) run once at play
  time and leave APPLY_* records behind for replay
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar
import logging

from .state import BATTLE_ZONES, ZONE_ORDER

logger = logging.getLogger(__name__)

# Trigger events
ALWAYS = "always"
ON_SUMMON = "onSummon"
ON_PLAY = "onPlay"
SP_PHASE = "spPhase"
FINAL_CALCULATION = "finalCalculation"

CONTINUOUS = "continuous"
TRIGGERED = "triggered"

# Descriptions mentioning these run after combo totals are known
_AFTER_COMBO_KEYWORDS = ("combo", "total power", "final calculation")


# =============================================================================
# Effect kinds
# =============================================================================

@dataclass(frozen=True)
class EffectKind:
    """Base class of all effect variants."""
    kind: ClassVar[str] = ""
    declarative: ClassVar[bool] = True
    # specialEffects flag flipped on the target player, if any
    flag: ClassVar[str | None] = None


@dataclass(frozen=True)
class PowerBoost(EffectKind):
    kind: ClassVar[str] = "powerBoost"
    value: int = 0


@dataclass(frozen=True)
class SetPower(EffectKind):
    kind: ClassVar[str] = "setPower"
    value: int = 0


@dataclass(frozen=True)
class PowerNullification(EffectKind):
    kind: ClassVar[str] = "powerNullification"


@dataclass(frozen=True)
class ZoneRestriction(EffectKind):
    kind: ClassVar[str] = "zoneRestriction"
    restricted_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class DrawCards(EffectKind):
    kind: ClassVar[str] = "drawCards"
    declarative: ClassVar[bool] = False
    count: int = 1


@dataclass(frozen=True)
class SearchCard(EffectKind):
    kind: ClassVar[str] = "searchCard"
    declarative: ClassVar[bool] = False
    search_count: int = 1
    select_count: int = 1
    filters: tuple[tuple[str, str], ...] = ()
    destination: str = "hand"


@dataclass(frozen=True)
class RandomDiscard(EffectKind):
    kind: ClassVar[str] = "randomDiscard"
    declarative: ClassVar[bool] = False
    count: int = 1


@dataclass(frozen=True)
class NeutralizeEffect(EffectKind):
    """Zone-wide (standing) neutralization, or a selection when required."""
    kind: ClassVar[str] = "neutralizeEffect"


@dataclass(frozen=True)
class SilenceOnSummon(EffectKind):
    kind: ClassVar[str] = "silenceOnSummon"
    flag: ClassVar[str | None] = "summonEffectsSilenced"


@dataclass(frozen=True)
class ZonePlacementFreedom(EffectKind):
    kind: ClassVar[str] = "zonePlacementFreedom"
    flag: ClassVar[str | None] = "zonePlacementFreedom"


@dataclass(frozen=True)
class DisableComboBonus(EffectKind):
    kind: ClassVar[str] = "disableComboBonus"
    flag: ClassVar[str | None] = "comboBonusDisabled"


@dataclass(frozen=True)
class PreventPlay(EffectKind):
    kind: ClassVar[str] = "preventPlay"


@dataclass(frozen=True)
class ForceSPPlay(EffectKind):
    kind: ClassVar[str] = "forceSPPlay"
    flag: ClassVar[str | None] = "forceSpPlay"


@dataclass(frozen=True)
class TotalPowerNerf(EffectKind):
    kind: ClassVar[str] = "totalPowerNerf"
    value: int = 0


# =============================================================================
# Rules
# =============================================================================

@dataclass(frozen=True)
class RuleTarget:
    """Declared target of a rule, before it is resolved to a player."""
    owner: str = "self"  # "self" | "opponent" | "all"
    zones: tuple[str, ...] = BATTLE_ZONES
    game_types: tuple[str, ...] = ()
    traits: tuple[str, ...] = ()
    card_types: tuple[str, ...] = ()
    requires_selection: bool = False
    select_count: int = 1


@dataclass(frozen=True)
class EffectRule:
    """One normalized rule of a card."""
    rule_id: str
    source_id: str
    timing: str
    event: str
    kind: EffectKind
    target: RuleTarget = field(default_factory=RuleTarget)
    conditions: tuple[dict[str, Any], ...] = ()
    unremovable: bool = False
    priority: int = 0
    description: str = ""
    raw_effect: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def requires_selection(self) -> bool:
        return self.target.requires_selection or isinstance(self.kind, SearchCard)

    @property
    def is_continuous(self) -> bool:
        return self.timing == CONTINUOUS

    @property
    def is_after_combo(self) -> bool:
        """SP rules that resolve once combo totals are known."""
        if self.event == FINAL_CALCULATION or isinstance(self.kind, TotalPowerNerf):
            return True
        text = self.description.lower()
        return any(word in text for word in _AFTER_COMBO_KEYWORDS)


def _int(effect: dict[str, Any], *keys: str, default: int = 0) -> int:
    for key in keys:
        if effect.get(key) is not None:
            return int(effect[key])
    return default


def _search(effect: dict[str, Any]) -> SearchCard:
    filters = []
    for f in effect.get("filters") or []:
        if f.get("type") and f.get("value") is not None:
            filters.append((f["type"], str(f["value"])))
    if effect.get("cardTypeFilter"):
        filters.append(("cardType", effect["cardTypeFilter"]))
    return SearchCard(
        search_count=_int(effect, "searchCount", default=1),
        select_count=_int(effect, "selectCount", default=1),
        filters=tuple(filters),
        destination=effect.get("destination", "hand"),
    )


_BUILDERS: dict[str, Callable[[dict[str, Any]], EffectKind]] = {
    "powerBoost": lambda e: PowerBoost(value=_int(e, "value")),
    "powerNerf": lambda e: PowerBoost(value=-abs(_int(e, "value"))),
    "setPower": lambda e: SetPower(value=_int(e, "value")),
    "powerNullification": lambda e: PowerNullification(),
    "zoneRestriction": lambda e: ZoneRestriction(
        restricted_types=tuple(e.get("restrictedTypes") or e.get("gameTypes") or ())
    ),
    "drawCards": lambda e: DrawCards(count=_int(e, "value", "count", default=1)),
    "searchCard": _search,
    "randomDiscard": lambda e: RandomDiscard(count=_int(e, "value", "count", default=1)),
    "neutralizeEffect": lambda e: NeutralizeEffect(),
    "silenceOnSummon": lambda e: SilenceOnSummon(),
    "zonePlacementFreedom": lambda e: ZonePlacementFreedom(),
    "disableComboBonus": lambda e: DisableComboBonus(),
    "preventPlay": lambda e: PreventPlay(),
    "forceSPPlay": lambda e: ForceSPPlay(),
    "totalPowerNerf": lambda e: TotalPowerNerf(value=abs(_int(e, "value"))),
}

# Spellings found in card data
_KIND_ALIASES = {
    "POWER_NULLIFICATION": "powerNullification",
    "preventSummon": "zoneRestriction",
    "drawCard": "drawCards",
    "discardRandomCard": "randomDiscard",
    "forcePlaySP": "forceSPPlay",
    "forceSpPlay": "forceSPPlay",
    "disableCombos": "disableComboBonus",
    "silenceSummon": "silenceOnSummon",
}


def normalize_kind(effect: dict[str, Any]) -> EffectKind | None:
    """Build the typed variant for a raw effect dict, or None if unknown."""
    name = effect.get("type")
    name = _KIND_ALIASES.get(name, name)
    builder = _BUILDERS.get(name)
    if builder is None:
        return None
    return builder(effect)


def _target(raw: dict[str, Any]) -> RuleTarget:
    game_types: list[str] = []
    traits: list[str] = []
    card_types: list[str] = []
    for f in raw.get("filters") or []:
        ftype = f.get("type")
        if ftype == "gameType":
            game_types.append(f["value"])
        elif ftype == "gameTypeOr":
            game_types.extend(f.get("values") or [])
        elif ftype == "trait":
            traits.append(f["value"])
        elif ftype == "cardType":
            card_types.append(f["value"])
        else:
            logger.warning("Ignoring unknown target filter %r", ftype)

    zones = tuple(z for z in (raw.get("zones") or BATTLE_ZONES) if z in ZONE_ORDER)
    owner = raw.get("owner", "self")
    if owner not in {"self", "opponent", "all"}:
        owner = "self"
    return RuleTarget(
        owner=owner,
        zones=zones or BATTLE_ZONES,
        game_types=tuple(game_types),
        traits=tuple(traits),
        card_types=tuple(card_types),
        requires_selection=bool(raw.get("requiresSelection", False)),
        select_count=int(raw.get("selectCount") or 1),
    )


def normalize_rule(
    raw: dict[str, Any],
    source_id: str,
    index: int = 0,
    is_leader: bool = False,
) -> EffectRule | None:
    """
    Normalize one rule dict from card JSON.

    Returns None (after logging) for rules whose effect kind is unknown.
    Leader setPower-to-zero rules become PowerNullification.
    """
    effect = raw.get("effect") or {}
    kind = normalize_kind(effect)
    if kind is None:
        logger.warning(
            "Skipping rule %s[%d]: unknown effect type %r", source_id, index, effect.get("type")
        )
        return None

    target = _target(raw.get("target") or {})
    if is_leader and isinstance(kind, SetPower) and kind.value == 0 and not target.requires_selection:
        kind = PowerNullification()

    trigger = raw.get("trigger") or {}
    conditions = trigger.get("conditions") or raw.get("conditions") or []
    if isinstance(conditions, dict):
        conditions = [conditions]

    timing = raw.get("type", CONTINUOUS)
    if timing == "permanent":
        timing = CONTINUOUS
    event = trigger.get("event", ALWAYS if timing == CONTINUOUS else ON_PLAY)

    rule_id = raw.get("id") or f"{effect.get('type')}_{index}"
    return EffectRule(
        rule_id=str(rule_id),
        source_id=source_id,
        timing=timing,
        event=event,
        kind=kind,
        target=target,
        conditions=tuple(conditions),
        unremovable=bool(raw.get("unremovable", False)),
        priority=int(raw.get("priority", 0)),
        description=effect.get("description", "") or raw.get("description", ""),
        raw_effect=dict(effect),
    )


def parse_rules(effects: Any, source_id: str, is_leader: bool = False) -> tuple[EffectRule, ...]:
    """Normalize the "effects" block of a card ({"rules": [...]} or a list)."""
    if not effects:
        return ()
    raw_rules = effects.get("rules", []) if isinstance(effects, dict) else effects
    rules = []
    for index, raw in enumerate(raw_rules):
        rule = normalize_rule(raw, source_id, index, is_leader=is_leader)
        if rule is not None:
            rules.append(rule)
    return tuple(rules)
