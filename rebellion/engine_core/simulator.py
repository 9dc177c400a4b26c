"""
Effect Simulator - Rebuilds every player's fieldEffects from the play sequence.

simulate() is deterministic and idempotent: it depends only on the play
sequence, the cards currently on the field (including leaders) and the
card catalog. It is called after every state-mutating action.

Algorithm:
1. Reset fieldEffects for both players
2. Replay the play sequence in order, emitting ActiveEffects
3. Apply standing (zone-wide) neutralizations
4. Derive flags, play restrictions and zone restrictions from enabled effects
5. Compute per-card power, then per-player points (cards + combo - nerfs)

Neutralization never removes an effect: it flips is_enabled and records
who disabled it, when and why.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging

from .catalog import CardCatalog, CardDef, CardKind
from .conditions import conditions_met
from .effects import (
    ALWAYS, FINAL_CALCULATION, ON_PLAY, ON_SUMMON, SP_PHASE,
    EffectRule, NeutralizeEffect, PowerBoost, PowerNullification, PreventPlay,
    SetPower, TotalPowerNerf, ZoneRestriction,
)
from .play_sequence import verify
from .state import (
    ALL, BATTLE_ZONES,
    ActiveEffect, EffectTarget, FieldCard, FieldEffects, MatchState, PlayRecord,
    RecordAction, Scope, zone_key,
)

logger = logging.getLogger(__name__)

# Zones where a card of each kind is "in play" and may emit effects
_HOME_ZONES = {
    CardKind.CHARACTER: set(BATTLE_ZONES),
    CardKind.HELP: {"help"},
    CardKind.SP: {"sp"},
}


@dataclass
class _Mark:
    """Why a card's effects are disabled."""
    by: str
    at: int
    reason: str
    neutralization_id: str


@dataclass
class _Replay:
    neutralized: dict[str, _Mark] = field(default_factory=dict)


@dataclass
class PointsBreakdown:
    """How a player's total was reached."""
    player_id: str
    card_power: int = 0
    combo_bonus: int = 0
    combos: list[str] = field(default_factory=list)
    combo_disabled: bool = False
    total_power_nerf: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "playerId": self.player_id,
            "cardPower": self.card_power,
            "comboBonus": self.combo_bonus,
            "combos": list(self.combos),
            "comboDisabled": self.combo_disabled,
            "totalPowerNerf": self.total_power_nerf,
            "total": self.total,
        }


class EffectSimulator:
    """
    Replays the play sequence over the catalog.

    Usage:
        simulator = EffectSimulator(catalog)
        simulator.simulate(state)
        state.players[0].field_effects.calculated_powers
    """

    def __init__(self, catalog: CardCatalog):
        self.catalog = catalog
        self._all_game_types = frozenset(
            c.game_type for c in catalog.all_cards() if c.game_type
        )
        self._handlers: dict[RecordAction, Callable[[MatchState, PlayRecord, _Replay], None]] = {
            RecordAction.PLAY_LEADER: self._replay_leader,
            RecordAction.PLAY_CARD: self._replay_card,
            RecordAction.APPLY_SEARCH: self._replay_search,
            RecordAction.APPLY_SET_POWER: self._replay_targeted_power,
            RecordAction.APPLY_POWER_BOOST: self._replay_targeted_power,
            RecordAction.APPLY_NEUTRALIZATION: self._replay_neutralization,
            RecordAction.APPLY_SP_EFFECT: self._replay_sp_effect,
            RecordAction.APPLY_DRAW: self._replay_noop,
            RecordAction.APPLY_DISCARD: self._replay_noop,
        }

    # =========================================================================
    # Entry points
    # =========================================================================

    def simulate(self, state: MatchState) -> None:
        """Recompute fieldEffects, valueOnField and playerPoint in place."""
        verify(state.play_sequence)
        for player in state.players:
            player.field_effects = FieldEffects()

        replay = _Replay()
        for record in state.play_sequence:
            self._handlers[record.action](state, record, replay)

        self._apply_standing_neutralizations(state, replay)
        self._collect_disabled_cards(state, replay)
        self._derive_flags(state)
        self._compute_powers(state)
        for player in state.players:
            player.player_point = self.points(state, player.player_id).total

    def points(self, state: MatchState, player_id: str) -> PointsBreakdown:
        """Total for a player from the current fieldEffects."""
        player = state.require_player(player_id)
        effects = player.field_effects
        breakdown = PointsBreakdown(player_id=player_id)

        characters: list[CardDef] = []
        for zone in BATTLE_ZONES:
            for fc in state.zones[player_id].get(zone):
                if fc.face_down:
                    continue
                card = self.catalog.get(fc.card_id)
                if card.is_character:
                    characters.append(card)
                    breakdown.card_power += max(0, effects.calculated_powers.get(fc.card_id, 0))

        breakdown.combo_disabled = bool(effects.special_effects.get("comboBonusDisabled"))
        if not breakdown.combo_disabled:
            breakdown.combos = self.combos_for(characters)
            breakdown.combo_bonus = sum(self.catalog.combos[name].bonus for name in breakdown.combos)

        total = breakdown.card_power + breakdown.combo_bonus
        for effect in effects.active_effects:
            if effect.is_enabled and effect.type == TotalPowerNerf.kind:
                breakdown.total_power_nerf += effect.value or 0
                total = max(0, total - (effect.value or 0))
        breakdown.total = max(0, total)
        return breakdown

    def combos_for(self, cards: list[CardDef]) -> list[str]:
        """Names of the combos a set of face-up characters completes."""
        defs = self.catalog.combos
        hits = []
        n = len(cards)
        types = [c.game_type for c in cards]
        powers = [c.base_power for c in cards]

        combo = defs.get("all_same_type")
        if combo and n >= combo.min_cards and len(set(types)) == 1:
            hits.append(combo.name)
        combo = defs.get("all_different_type")
        if combo and n >= combo.min_cards and len(set(types)) == n:
            hits.append(combo.name)
        combo = defs.get("high_power_trio")
        if combo and n >= combo.min_cards and all(p >= combo.min_power for p in powers):
            hits.append(combo.name)
        combo = defs.get("trait_synergy")
        if combo and n >= combo.min_cards:
            seen: dict[str, int] = {}
            for card in cards:
                for trait in card.traits:
                    seen[trait] = seen.get(trait, 0) + 1
            if any(count >= 2 for count in seen.values()):
                hits.append(combo.name)
        combo = defs.get("balanced_power")
        if combo and n >= combo.min_cards and max(powers) - min(powers) <= combo.max_spread:
            hits.append(combo.name)
        return hits

    def is_neutralized(self, state: MatchState, card_id: str) -> bool:
        """True when a card's effects are currently disabled."""
        return any(card_id in p.field_effects.disabled_cards for p in state.players)

    def zone_neutralized(self, state: MatchState, player_id: str, zone: str) -> bool:
        """True when an enabled zone-wide neutralizer covers a player's zone."""
        return any(
            e.is_enabled and e.type == NeutralizeEffect.kind and zone in e.effect_data.get("zones", [])
            for e in state.require_player(player_id).field_effects.active_effects
        )

    # =========================================================================
    # Replay handlers
    # =========================================================================

    def _replay_noop(self, state: MatchState, record: PlayRecord, replay: _Replay) -> None:
        return None

    def _replay_leader(self, state: MatchState, record: PlayRecord, replay: _Replay) -> None:
        owner = record.player_id
        zones = state.zones.get(owner)
        if zones is None or zones.leader != record.card_id:
            return  # a previous leader

        leader = self.catalog.get(record.card_id)
        restrictions = state.require_player(owner).field_effects.zone_restrictions
        for zone in BATTLE_ZONES:
            allowed = leader.allowed_in(zone)
            restrictions[zone_key(zone)] = ALL if allowed == ALL else set(allowed)
        restrictions["HELP"] = ALL
        restrictions["SP"] = ALL

        for rule in leader.rules:
            if not rule.is_continuous:
                continue
            if conditions_met(rule.conditions, state, self.catalog, owner):
                self._emit(state, replay, rule, owner, record)

    def _replay_card(self, state: MatchState, record: PlayRecord, replay: _Replay) -> None:
        card = self.catalog.get(record.card_id)
        if card.kind == CardKind.SP:
            return  # SP cards act only once revealed, via APPLY_SP_EFFECT
        self._activate(state, replay, record, record.player_id, card, record.data.get("firedRules", []))

    def _replay_search(self, state: MatchState, record: PlayRecord, replay: _Replay) -> None:
        for placement in record.data.get("placements", []):
            card = self.catalog.get(placement["cardId"])
            if card.kind == CardKind.SP:
                continue
            self._activate(state, replay, record, record.player_id, card, placement.get("firedRules", []))

    def _replay_targeted_power(self, state: MatchState, record: PlayRecord, replay: _Replay) -> None:
        self.catalog.get(record.card_id)
        targets = [t for t in record.data.get("targets", []) if state.find_on_field(t)]
        if not targets:
            return  # every target has left the field
        target_player = record.data["targetPlayerId"]
        kind = SetPower.kind if record.action == RecordAction.APPLY_SET_POWER else PowerBoost.kind
        effect = ActiveEffect(
            effect_id=f"{record.card_id}_{record.data.get('ruleId', kind)}_{record.sequence_id}",
            source=record.card_id,
            source_player_id=record.player_id,
            type=kind,
            target=EffectTarget(
                scope=Scope.SPECIFIC_CARD,
                player_id=target_player,
                zones=list(BATTLE_ZONES),
                specific_cards=targets,
            ),
            value=int(record.data.get("value", 0)),
            created_at=record.timestamp,
            effect_data={"sequenceId": record.sequence_id},
        )
        self._push(state, replay, effect)

    def _replay_neutralization(self, state: MatchState, record: PlayRecord, replay: _Replay) -> None:
        source = record.card_id
        reason = record.data.get("reason", "neutralizeEffect")
        for target in record.data.get("targets", []):
            card = self.catalog.get(target)
            if card.immune_to_neutralization:
                continue
            mark = _Mark(
                by=source,
                at=record.timestamp,
                reason=reason,
                neutralization_id=f"{source}_{record.timestamp}",
            )
            replay.neutralized[target] = mark
            self._disable_source(state, target, mark)

    def _replay_sp_effect(self, state: MatchState, record: PlayRecord, replay: _Replay) -> None:
        if record.leader_round != state.leader_round:
            return  # revealed in an earlier leader battle
        owner = record.player_id
        card = self.catalog.get(record.card_id)
        if self._placement(state, owner, card) is None:
            return
        after = record.data.get("timing") == "after"
        for rule in card.rules_for(SP_PHASE, FINAL_CALCULATION):
            if rule.is_after_combo != after or not rule.kind.declarative or rule.requires_selection:
                continue
            if conditions_met(rule.conditions, state, self.catalog, owner):
                self._emit(state, replay, rule, owner, record)

    # =========================================================================
    # Emission
    # =========================================================================

    def _placement(self, state: MatchState, owner: str, card: CardDef) -> FieldCard | None:
        """The card's face-up FieldCard in a zone where it can act, if any."""
        hit = state.zones[owner].find(card.card_id)
        if hit is None:
            return None
        zone, fc = hit
        if fc.face_down or zone not in _HOME_ZONES.get(card.kind, set()):
            return None
        return fc

    def _activate(self, state: MatchState, replay: _Replay, record: PlayRecord,
                  owner: str, card: CardDef, fired: list[str]) -> None:
        if self._placement(state, owner, card) is None:
            return
        for rule in card.rules:
            if not rule.kind.declarative or rule.requires_selection:
                continue
            if rule.is_continuous and rule.event == ALWAYS:
                if conditions_met(rule.conditions, state, self.catalog, owner):
                    self._emit(state, replay, rule, owner, record)
            elif rule.event in (ON_PLAY, ON_SUMMON) and rule.rule_id in fired:
                self._emit(state, replay, rule, owner, record)

    def _emit(self, state: MatchState, replay: _Replay, rule: EffectRule,
              owner: str, record: PlayRecord) -> None:
        opponent = state.opponent_id(owner)
        if rule.target.owner == "all":
            targets = [(owner, Scope.ALL), (opponent, Scope.ALL)]
        elif rule.target.owner == "opponent":
            targets = [(opponent, Scope.OPPONENT)]
        else:
            targets = [(owner, Scope.SELF)]

        kind = rule.kind
        effect_type = kind.kind
        value = getattr(kind, "value", None)
        data: dict[str, Any] = {"ruleId": rule.rule_id, "sequenceId": record.sequence_id}
        if isinstance(kind, PowerNullification):
            value = 0
        elif isinstance(kind, ZoneRestriction):
            data["restrictedTypes"] = list(kind.restricted_types)
        elif isinstance(kind, (PreventPlay, NeutralizeEffect)):
            data["zones"] = list(rule.target.zones)
        if kind.flag:
            data["flag"] = kind.flag

        effect_id = f"{rule.source_id}_{rule.rule_id}"
        if record.action == RecordAction.APPLY_SP_EFFECT:
            effect_id = f"{effect_id}_{record.sequence_id}"

        for player_id, scope in targets:
            effect = ActiveEffect(
                effect_id=effect_id,
                source=rule.source_id,
                source_player_id=owner,
                type=effect_type,
                target=EffectTarget(
                    scope=scope,
                    player_id=player_id,
                    zones=list(rule.target.zones),
                    game_types=list(rule.target.game_types) or None,
                    traits=list(rule.target.traits) or None,
                    card_types=list(rule.target.card_types) or None,
                ),
                value=value,
                priority=rule.priority,
                unremovable=rule.unremovable,
                created_at=record.timestamp,
                effect_data=dict(data),
            )
            self._push(state, replay, effect)

    def _push(self, state: MatchState, replay: _Replay, effect: ActiveEffect) -> None:
        mark = replay.neutralized.get(effect.source)
        if mark is not None:
            self._disable(effect, mark)
        state.require_player(effect.target.player_id).field_effects.active_effects.append(effect)

    # =========================================================================
    # Neutralization
    # =========================================================================

    def _disable(self, effect: ActiveEffect, mark: _Mark) -> bool:
        if effect.unremovable or not effect.is_enabled:
            return False
        if self.catalog.get(effect.source).immune_to_neutralization:
            return False
        effect.is_enabled = False
        effect.disabled_by = mark.by
        effect.disabled_at = mark.at
        effect.disabled_reason = mark.reason
        effect.neutralization_id = mark.neutralization_id
        return True

    def _disable_source(self, state: MatchState, card_id: str, mark: _Mark) -> int:
        count = 0
        for player in state.players:
            for effect in player.field_effects.active_effects:
                if effect.source == card_id and self._disable(effect, mark):
                    count += 1
        return count

    def _apply_standing_neutralizations(self, state: MatchState, replay: _Replay) -> None:
        """Zone-wide neutralizers, applied in emission order."""
        neutralizers = [
            e for p in state.players for e in p.field_effects.active_effects
            if e.type == NeutralizeEffect.kind
        ]
        neutralizers.sort(key=lambda e: (e.effect_data.get("sequenceId", 0), e.effect_id))
        for neutralizer in neutralizers:
            if not neutralizer.is_enabled:
                continue
            victim = neutralizer.target.player_id
            for zone in neutralizer.effect_data.get("zones", []):
                for fc in state.zones[victim].get(zone):
                    if fc.face_down or fc.card_id in replay.neutralized:
                        continue
                    card = self.catalog.get(fc.card_id)
                    if card.immune_to_neutralization or not card.has_effects:
                        continue
                    mark = _Mark(
                        by=neutralizer.source,
                        at=neutralizer.created_at,
                        reason="zoneNeutralization",
                        neutralization_id=f"{neutralizer.source}_{neutralizer.created_at}",
                    )
                    replay.neutralized[fc.card_id] = mark
                    self._disable_source(state, fc.card_id, mark)

    def _collect_disabled_cards(self, state: MatchState, replay: _Replay) -> None:
        for card_id in replay.neutralized:
            hit = state.find_on_field(card_id)
            if hit is None:
                continue
            owner = hit[0]
            disabled = state.require_player(owner).field_effects.disabled_cards
            if card_id not in disabled:
                disabled.append(card_id)

    # =========================================================================
    # Derived flags and restrictions
    # =========================================================================

    def _derive_flags(self, state: MatchState) -> None:
        for player in state.players:
            effects = player.field_effects
            for effect in effects.active_effects:
                if not effect.is_enabled:
                    continue
                flag = effect.effect_data.get("flag")
                if flag:
                    effects.special_effects[flag] = True
                if effect.type == PreventPlay.kind:
                    for zone in effect.effect_data.get("zones", []):
                        if zone in effects.play_restrictions:
                            effects.play_restrictions[zone] = True
                elif effect.type == ZoneRestriction.kind:
                    banned = set(effect.effect_data.get("restrictedTypes", []))
                    for zone in effect.target.zones:
                        if zone not in BATTLE_ZONES:
                            continue
                        key = zone_key(zone)
                        current = effects.zone_restrictions.get(key, ALL)
                        allowed = set(self._all_game_types) if current == ALL else set(current)
                        effects.zone_restrictions[key] = allowed - banned

    # =========================================================================
    # Power
    # =========================================================================

    @staticmethod
    def _matches(effect: ActiveEffect, card: CardDef, zone: str) -> bool:
        target = effect.target
        if ALL not in target.zones and zone not in target.zones:
            return False
        if target.specific_cards is not None and card.card_id not in target.specific_cards:
            return False
        if target.game_types and card.game_type not in target.game_types:
            return False
        if target.card_types and card.kind.value not in target.card_types:
            return False
        if target.traits and not (card.traits & set(target.traits)):
            return False
        return True

    def _compute_powers(self, state: MatchState) -> None:
        for player in state.players:
            effects = player.field_effects
            enabled = [e for e in effects.active_effects if e.is_enabled]
            for zone, fc in state.zones[player.player_id].all_cards():
                if fc.face_down:
                    power = 0
                else:
                    card = self.catalog.get(fc.card_id)
                    power = card.base_power
                    if card.is_character:
                        power = self._card_power(card, zone, enabled)
                power = max(0, power)
                effects.calculated_powers[fc.card_id] = power
                fc.value_on_field = power

    def _card_power(self, card: CardDef, zone: str, enabled: list[ActiveEffect]) -> int:
        power = card.base_power
        override = None
        nullified = False
        for effect in enabled:
            if not self._matches(effect, card, zone):
                continue
            if effect.type == PowerBoost.kind:
                power += effect.value or 0
            elif effect.type == SetPower.kind:
                override = effect.value or 0
            elif effect.type == PowerNullification.kind:
                nullified = True
        if override is not None:
            power = override
        if nullified:
            power = 0
        return power
