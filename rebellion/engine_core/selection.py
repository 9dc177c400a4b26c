"""
Selection Manager - Triggered effects and the interactive choices they open.

When a card enters play face-up its onPlay / onSummon rules fire here:
- Side effects (draw, random discard) run once and leave APPLY_DRAW /
  APPLY_DISCARD records with the concrete card ids, so replay never
  re-rolls randomness
- Declarative triggered rules are returned as "fired" rule ids; the
  simulator turns them into ActiveEffects
- At most one rule per card opens a Selection (deck search or field
  target); it blocks the match until completed

Completing a selection writes the APPLY_* record that lets the simulator
rebuild its outcome from the play sequence alone.
"""

from __future__ import annotations
from typing import Any
import logging

from . import events
from .catalog import CardCatalog, CardDef, CardKind
from .conditions import conditions_met
from .deck import draw, random_discard, return_to_bottom
from .effects import (
    ON_PLAY, ON_SUMMON,
    DrawCards, EffectRule, NeutralizeEffect, PowerBoost, PowerNullification,
    RandomDiscard, SearchCard, SetPower,
)
from .play_sequence import append
from .simulator import EffectSimulator
from .state import (
    BATTLE_ZONES, FieldCard, MatchState, NeutralizationRecord, RecordAction, Selection,
)

logger = logging.getLogger(__name__)

DECK_SEARCH = "deckSearch"
FIELD_TARGET = "fieldTarget"

# Search destinations
TO_HAND = "hand"
TO_SP_ZONE = "spZone"
TO_HELP_ZONE = "helpZone"
TO_CONDITIONAL_HELP_ZONE = "conditionalHelpZone"


def _matches_filters(card: CardDef, filters: tuple[tuple[str, str], ...]) -> bool:
    for ftype, value in filters:
        if ftype == "cardType" and card.kind.value != value:
            return False
        if ftype == "gameType" and card.game_type != value:
            return False
        if ftype == "trait" and value not in card.traits:
            return False
    return True


class SelectionManager:
    """
    Runs triggered effects and owns the pending-selection lifecycle.

    Usage:
        fired = manager.fire_triggers(state, "p1", "c-10", "left", now=now)
        if state.pending_selection:
            ...
        error = manager.validate(state, "p1", selection_id, ["sp-2"])
        manager.complete(state, "p1", ["sp-2"], now=now)
    """

    def __init__(self, catalog: CardCatalog, simulator: EffectSimulator,
                 ttl_ms: int = events.DEFAULT_TTL_MS):
        self.catalog = catalog
        self.simulator = simulator
        self.ttl_ms = ttl_ms

    # =========================================================================
    # Triggers
    # =========================================================================

    def fire_triggers(self, state: MatchState, owner: str, card_id: str, zone: str,
                      *, now: int, trigger_record_id: int) -> list[str]:
        """
        Fire the onPlay/onSummon rules of a card that just entered play.

        Returns the ids of declarative rules that fired. May set
        state.pending_selection.
        """
        card = self.catalog.get(card_id)
        if card.kind == CardKind.SP:
            return []
        if self.simulator.zone_neutralized(state, owner, zone):
            logger.debug("%s entered a neutralized zone; triggers suppressed", card_id)
            return []

        silenced = state.require_player(owner).field_effects.special_effects.get("summonEffectsSilenced")
        fired: list[str] = []
        selection_rule: EffectRule | None = None

        for rule in card.rules_for(ON_PLAY, ON_SUMMON):
            if rule.event == ON_SUMMON and silenced:
                events.emit(state, events.CARD_EFFECT_TRIGGERED, {
                    "cardId": card_id, "playerId": owner, "ruleId": rule.rule_id, "silenced": True,
                }, now=now, ttl_ms=self.ttl_ms)
                continue
            if not conditions_met(rule.conditions, state, self.catalog, owner):
                continue
            if rule.requires_selection:
                if selection_rule is None:
                    selection_rule = rule
                else:
                    logger.warning("%s has more than one selection rule; %s ignored", card_id, rule.rule_id)
                continue
            if rule.kind.declarative:
                fired.append(rule.rule_id)
            else:
                self.run_side_effect(state, owner, rule, now=now)
            events.emit(state, events.CARD_EFFECT_TRIGGERED, {
                "cardId": card_id, "playerId": owner, "ruleId": rule.rule_id, "effectType": rule.kind.kind,
            }, now=now, ttl_ms=self.ttl_ms)

        if selection_rule is not None:
            self._open(state, owner, selection_rule, now=now, trigger_record_id=trigger_record_id)
        return fired

    def run_side_effect(self, state: MatchState, owner: str, rule: EffectRule, *, now: int) -> list[str]:
        """Execute a draw or random discard once and record its outcome."""
        target = state.opponent_id(owner) if rule.target.owner == "opponent" else owner
        player = state.require_player(target)
        kind = rule.kind

        if isinstance(kind, DrawCards):
            drawn = draw(player, kind.count)
            append(state, owner, RecordAction.APPLY_DRAW, now=now, card_id=rule.source_id, data={
                "ruleId": rule.rule_id, "targetPlayerId": target, "cards": drawn,
            })
            events.emit(state, events.CARDS_DRAWN, {
                "playerId": target, "count": len(drawn), "sourceCardId": rule.source_id,
            }, now=now, ttl_ms=self.ttl_ms)
            return drawn

        if isinstance(kind, RandomDiscard):
            discarded = random_discard(player, kind.count, state.rng)
            append(state, owner, RecordAction.APPLY_DISCARD, now=now, card_id=rule.source_id, data={
                "ruleId": rule.rule_id, "targetPlayerId": target, "cards": discarded,
            })
            for discarded_id in discarded:
                events.emit(state, events.CARD_DISCARDED, {
                    "playerId": target, "cardId": discarded_id, "sourceCardId": rule.source_id,
                }, now=now, ttl_ms=self.ttl_ms)
            return discarded

        logger.warning("No side effect for %s on %s", kind.kind, rule.source_id)
        return []

    # =========================================================================
    # Opening selections
    # =========================================================================

    def _open(self, state: MatchState, owner: str, rule: EffectRule, *, now: int,
              trigger_record_id: int) -> Selection | None:
        selection_id = f"sel-{trigger_record_id}-{rule.rule_id}"
        if isinstance(rule.kind, SearchCard):
            selection = self._open_deck_search(state, owner, rule, selection_id, now)
        else:
            selection = self._open_field_target(state, owner, rule, selection_id, now)
        if selection is None:
            return None

        state.pending_selection = selection
        events.emit(state, events.CARD_SELECTION_REQUIRED, {
            "selectionId": selection.selection_id,
            "playerId": owner,
            "selectionType": selection.type,
            "selectCount": selection.select_count,
            "sourceCardId": selection.source_card_id,
        }, now=now, ttl_ms=self.ttl_ms)
        logger.debug("game %s: %s opened %s", state.game_id, owner, selection.selection_id)
        return selection

    def _open_deck_search(self, state: MatchState, owner: str, rule: EffectRule,
                          selection_id: str, now: int) -> Selection | None:
        kind: SearchCard = rule.kind  # type: ignore[assignment]
        player = state.require_player(owner)
        searched = player.main_deck[:kind.search_count]
        eligible = [c for c in searched if _matches_filters(self.catalog.get(c), kind.filters)]

        if not eligible:
            return_to_bottom(player, searched)
            append(state, owner, RecordAction.APPLY_SEARCH, now=now, card_id=rule.source_id, data={
                "ruleId": rule.rule_id, "selected": [], "returnedToBottom": list(searched),
                "destination": kind.destination, "placements": [],
            })
            events.emit(state, events.CARD_EFFECT_TRIGGERED, {
                "cardId": rule.source_id, "playerId": owner, "ruleId": rule.rule_id,
                "effectType": kind.kind, "noEligibleCards": True,
            }, now=now, ttl_ms=self.ttl_ms)
            return None

        return Selection(
            selection_id=selection_id,
            player_id=owner,
            type=DECK_SEARCH,
            eligible_card_ids=eligible,
            select_count=min(kind.select_count, len(eligible)),
            effect={
                "type": kind.kind,
                "ruleId": rule.rule_id,
                "searchCount": kind.search_count,
                "filters": [{"type": t, "value": v} for t, v in kind.filters],
                "destination": kind.destination,
            },
            source_card_id=rule.source_id,
            target_player_id=owner,
            searched_card_ids=list(searched),
            created_at=now,
        )

    def _open_field_target(self, state: MatchState, owner: str, rule: EffectRule,
                           selection_id: str, now: int) -> Selection | None:
        target = state.opponent_id(owner) if rule.target.owner == "opponent" else owner
        neutralizing = isinstance(rule.kind, NeutralizeEffect)
        eligible = []
        for zone in rule.target.zones:
            for fc in state.zones[target].get(zone):
                if fc.face_down:
                    continue
                card = self.catalog.get(fc.card_id)
                if rule.target.card_types and card.kind.value not in rule.target.card_types:
                    continue
                if neutralizing:
                    if not card.has_effects or card.immune_to_neutralization:
                        continue
                    if self.simulator.is_neutralized(state, card.card_id):
                        continue
                elif not card.is_character or zone not in BATTLE_ZONES:
                    continue
                eligible.append(fc.card_id)

        if not eligible:
            events.emit(state, events.CARD_EFFECT_TRIGGERED, {
                "cardId": rule.source_id, "playerId": owner, "ruleId": rule.rule_id,
                "effectType": rule.kind.kind, "noEligibleCards": True,
            }, now=now, ttl_ms=self.ttl_ms)
            return None

        return Selection(
            selection_id=selection_id,
            player_id=owner,
            type=FIELD_TARGET,
            eligible_card_ids=eligible,
            select_count=min(rule.target.select_count, len(eligible)),
            effect={
                "type": rule.kind.kind,
                "ruleId": rule.rule_id,
                "value": getattr(rule.kind, "value", 0),
                "zones": list(rule.target.zones),
            },
            source_card_id=rule.source_id,
            target_player_id=target,
            created_at=now,
        )

    # =========================================================================
    # Completion
    # =========================================================================

    def validate(self, state: MatchState, player_id: str, selection_id: str | None,
                 selected: list[str] | None) -> str | None:
        """Return an error message if the choice is not acceptable."""
        pending = state.pending_selection
        if pending is None:
            return "No selection is pending"
        if player_id != pending.player_id:
            return f"Selection {pending.selection_id} belongs to {pending.player_id}"
        if selection_id != pending.selection_id:
            return f"Unknown selection {selection_id!r}"
        selected = list(selected or [])
        if len(selected) != pending.select_count:
            return f"Select exactly {pending.select_count} card(s), got {len(selected)}"
        if len(set(selected)) != len(selected):
            return "Selected cards must be unique"
        ineligible = [c for c in selected if c not in pending.eligible_card_ids]
        if ineligible:
            return f"Cards not eligible: {', '.join(ineligible)}"
        return None

    def complete(self, state: MatchState, selected: list[str], *, now: int) -> None:
        """
        Apply a validated choice, clear the selection and re-simulate.

        Placing a searched card in the help zone fires its own triggers,
        which may open a new selection.
        """
        selection = state.pending_selection
        if selection is None:
            raise ValueError("No selection is pending")
        state.pending_selection = None

        events.emit(state, events.CARD_SELECTION_COMPLETED, {
            "selectionId": selection.selection_id,
            "playerId": selection.player_id,
            "selectionType": selection.type,
            "count": len(selected),
        }, now=now, ttl_ms=self.ttl_ms)

        if selection.type == DECK_SEARCH:
            self._complete_search(state, selection, selected, now)
        else:
            self._complete_target(state, selection, selected, now)

    def _complete_search(self, state: MatchState, selection: Selection,
                         selected: list[str], now: int) -> None:
        owner = selection.player_id
        player = state.require_player(owner)
        zones = state.zones[owner]
        destination = selection.effect.get("destination", TO_HAND)

        for card_id in selected:
            player.main_deck.remove(card_id)
        rest = [c for c in selection.searched_card_ids if c not in selected and c in player.main_deck]
        return_to_bottom(player, rest)

        placements: list[dict[str, Any]] = []
        to_help: list[str] = []
        for card_id in selected:
            if destination == TO_SP_ZONE and not zones.sp:
                zones.sp.append(FieldCard(card_id=card_id, face_down=True))
                placements.append({"cardId": card_id, "zone": "sp", "firedRules": []})
                events.emit(state, events.CARD_MOVED_TO_SP_ZONE, {
                    "playerId": owner, "faceDown": True,
                }, now=now, ttl_ms=self.ttl_ms)
            elif destination in (TO_HELP_ZONE, TO_CONDITIONAL_HELP_ZONE) and not zones.help:
                zones.help.append(FieldCard(card_id=card_id))
                placements.append({"cardId": card_id, "zone": "help", "firedRules": []})
                to_help.append(card_id)
                events.emit(state, events.CARD_MOVED_TO_HELP_ZONE, {
                    "playerId": owner, "cardId": card_id,
                }, now=now, ttl_ms=self.ttl_ms)
            else:
                player.hand.append(card_id)
                events.emit(state, events.CARD_MOVED_TO_HAND, {
                    "playerId": owner, "count": 1,
                }, now=now, ttl_ms=self.ttl_ms)

        record = append(state, owner, RecordAction.APPLY_SEARCH, now=now,
                        card_id=selection.source_card_id, data={
                            "ruleId": selection.effect.get("ruleId"),
                            "selected": list(selected),
                            "returnedToBottom": rest,
                            "destination": destination,
                            "placements": placements,
                        })
        self.simulator.simulate(state)

        for placement in placements:
            if placement["cardId"] in to_help:
                placement["firedRules"] = self.fire_triggers(
                    state, owner, placement["cardId"], "help",
                    now=now, trigger_record_id=record.sequence_id,
                )
        if to_help:
            self.simulator.simulate(state)

    def _complete_target(self, state: MatchState, selection: Selection,
                         selected: list[str], now: int) -> None:
        owner = selection.player_id
        source = selection.source_card_id
        effect_type = selection.effect_type
        data = {
            "ruleId": selection.effect.get("ruleId"),
            "targets": list(selected),
            "targetPlayerId": selection.target_player_id,
        }

        if effect_type == NeutralizeEffect.kind:
            data["reason"] = "neutralizeEffect"
            append(state, owner, RecordAction.APPLY_NEUTRALIZATION, now=now, card_id=source, data=data)
            self.simulator.simulate(state)
            for target in selected:
                disabled = sum(
                    1 for p in state.players for e in p.field_effects.active_effects
                    if e.source == target and e.disabled_by == source and not e.is_enabled
                )
                state.neutralization_history.append(NeutralizationRecord(
                    neutralized_card=target,
                    neutralized_by=source,
                    timestamp=now,
                    effects_disabled=disabled,
                    reason="neutralizeEffect",
                ))
                logger.info("game %s: %s neutralized %s (%d effects)", state.game_id, source, target, disabled)
            return

        if effect_type in (SetPower.kind, PowerNullification.kind):
            data["value"] = int(selection.effect.get("value") or 0)
            append(state, owner, RecordAction.APPLY_SET_POWER, now=now, card_id=source, data=data)
        elif effect_type == PowerBoost.kind:
            data["value"] = int(selection.effect.get("value") or 0)
            append(state, owner, RecordAction.APPLY_POWER_BOOST, now=now, card_id=source, data=data)
        else:
            logger.warning("Selection %s has unsupported effect %r", selection.selection_id, effect_type)
        self.simulator.simulate(state)
