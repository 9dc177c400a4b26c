"""
Battle Resolver - Concludes a leader battle once main and SP phases are over.

Order of resolution:
1. Reveal face-down SP cards
2. Order SP cards by their owner's leader initial point (ties go to the
   first player)
3. Write before-combo SP effects, simulating after each card
4. Compute totals
5. Write after-combo SP effects (finalCalculation, totalPowerNerf) and
   re-simulate
6. Award the point difference to the higher total
7. Clear the battle zones and check for the end of the match

SP effects are recorded as APPLY_SP_EFFECT so replay rebuilds them; they
only count during the leader round they were revealed in.
"""

from __future__ import annotations
from typing import Any
import logging

from . import events
from .catalog import CardCatalog, CardKind
from .conditions import conditions_met
from .effects import FINAL_CALCULATION, SP_PHASE
from .play_sequence import append
from .selection import SelectionManager
from .simulator import EffectSimulator
from .state import BATTLE_ZONES, MatchState, Phase, RecordAction

logger = logging.getLogger(__name__)

DRAW = "draw"


class BattleResolver:
    """
    Resolves leader battles and advances leaders.

    Usage:
        resolver = BattleResolver(catalog, simulator, selections)
        resolver.resolve(state, now=now)
        if state.phase == Phase.END_LEADER_BATTLE:
            resolver.advance_leaders(state, now=now)
    """

    def __init__(
        self,
        catalog: CardCatalog,
        simulator: EffectSimulator,
        selections: SelectionManager,
        victory_points_to_win: int = 50,
        ttl_ms: int = events.DEFAULT_TTL_MS,
    ):
        self.catalog = catalog
        self.simulator = simulator
        self.selections = selections
        self.victory_points_to_win = victory_points_to_win
        self.ttl_ms = ttl_ms

    def _emit(self, state: MatchState, event_type: str, data: dict[str, Any], now: int) -> None:
        events.emit(state, event_type, data, now=now, ttl_ms=self.ttl_ms)

    def priority_order(self, state: MatchState) -> list[str]:
        """Player ids by descending leader initial point, first player wins ties."""
        def key(index_pid: tuple[int, str]) -> tuple[int, int]:
            index, pid = index_pid
            leader = state.zones[pid].leader
            power = self.catalog.get(leader).initial_point if leader else 0
            return (-power, 0 if index == state.first_player else 1)

        return [pid for _, pid in sorted(enumerate(state.player_ids), key=key)]

    def resolve(self, state: MatchState, *, now: int) -> dict[str, Any]:
        """Run a full battle; leaves the match in END_LEADER_BATTLE or GAME_END."""
        state.phase = Phase.BATTLE_PHASE
        self._emit(state, events.PHASE_CHANGE, {"phase": state.phase.value}, now)

        revealed = []
        for pid in state.player_ids:
            for fc in state.zones[pid].sp:
                if fc.face_down:
                    fc.face_down = False
                revealed.append({"playerId": pid, "cardId": fc.card_id})
        self._emit(state, events.SP_CARDS_REVEALED, {"cards": revealed}, now)
        self.simulator.simulate(state)

        order = self.priority_order(state)
        self._run_sp_effects(state, order, after=False, now=now)
        before = {pid: self.simulator.points(state, pid).total for pid in state.player_ids}
        self._run_sp_effects(state, order, after=True, now=now)

        result = self._award(state, before, now)
        self._end_leader_battle(state, now)
        return result

    @staticmethod
    def _resolved_earlier(state: MatchState, card_id: str) -> bool:
        """SP cards left in the sp zone act only in the round they were revealed."""
        return any(
            r.action == RecordAction.APPLY_SP_EFFECT and r.card_id == card_id
            and r.leader_round < state.leader_round
            for r in state.play_sequence
        )

    def _run_sp_effects(self, state: MatchState, order: list[str], *, after: bool, now: int) -> None:
        timing = "after" if after else "before"
        for pid in order:
            for fc in list(state.zones[pid].sp):
                card = self.catalog.get(fc.card_id)
                if card.kind != CardKind.SP or self._resolved_earlier(state, card.card_id):
                    continue
                rules = [r for r in card.rules_for(SP_PHASE, FINAL_CALCULATION) if r.is_after_combo == after]
                if not rules:
                    continue
                append(state, pid, RecordAction.APPLY_SP_EFFECT, now=now, card_id=card.card_id,
                       zone="sp", data={"timing": timing})
                self.simulator.simulate(state)

                neutralized = self.simulator.is_neutralized(state, card.card_id)
                for rule in rules:
                    if rule.requires_selection:
                        logger.warning("SP rule %s needs a selection; skipped at reveal", rule.rule_id)
                        continue
                    if neutralized or not conditions_met(rule.conditions, state, self.catalog, pid):
                        continue
                    if not rule.kind.declarative:
                        self.selections.run_side_effect(state, pid, rule, now=now)
                    self._emit(state, events.CARD_EFFECT_TRIGGERED, {
                        "cardId": card.card_id, "playerId": pid, "ruleId": rule.rule_id,
                        "effectType": rule.kind.kind, "timing": timing,
                    }, now)
                self.simulator.simulate(state)

    def _award(self, state: MatchState, before: dict[str, int], now: int) -> dict[str, Any]:
        breakdowns = {pid: self.simulator.points(state, pid) for pid in state.player_ids}
        first, second = state.player_ids
        t1, t2 = breakdowns[first].total, breakdowns[second].total

        winner = None
        awarded = 0
        if t1 != t2:
            winner = first if t1 > t2 else second
            player = state.require_player(winner)
            awarded = abs(t1 - t2) + max(0, player.field_effects.victory_point_modifiers)
            player.victory_points += awarded

        result = {
            "leaderRound": state.leader_round,
            "totalsBeforeFinal": before,
            "points": {pid: b.to_dict() for pid, b in breakdowns.items()},
            "roundWinner": winner,
            "victoryPointsAwarded": awarded,
            "victoryPoints": {p.player_id: p.victory_points for p in state.players},
        }
        state.last_battle = result
        self._emit(state, events.BATTLE_RESULT, result, now)
        logger.info(
            "game %s leader battle %d: %s %d vs %s %d, winner=%s (+%d)",
            state.game_id, state.leader_round, first, t1, second, t2, winner, awarded,
        )
        return result

    def _end_leader_battle(self, state: MatchState, now: int) -> None:
        state.phase = Phase.END_LEADER_BATTLE
        self._emit(state, events.PHASE_CHANGE, {"phase": state.phase.value}, now)

        for player in state.players:
            zones = state.zones[player.player_id]
            for zone in BATTLE_ZONES:
                cleared = zones.get(zone)
                player.discard_pile.extend(fc.card_id for fc in cleared)
                player.hidden_discards.extend(fc.card_id for fc in cleared if fc.face_down)
                cleared.clear()
            player.player_point = 0
        self.simulator.simulate(state)

        reached = [p for p in state.players if p.victory_points >= self.victory_points_to_win]
        if reached:
            self._finish(state, self._leader_of(reached), "victoryPoints", now)
        elif any(p.is_last_leader for p in state.players):
            self._finish(state, self._leader_of(state.players), "lastLeader", now)

    @staticmethod
    def _leader_of(players: list[Any]) -> str:
        best = max(p.victory_points for p in players)
        top = [p.player_id for p in players if p.victory_points == best]
        return top[0] if len(top) == 1 else DRAW

    def _finish(self, state: MatchState, winner: str, reason: str, now: int) -> None:
        state.phase = Phase.GAME_END
        state.winner = winner
        self._emit(state, events.GAME_END, {
            "winner": winner,
            "reason": reason,
            "victoryPoints": {p.player_id: p.victory_points for p in state.players},
        }, now)
        logger.info("game %s over: winner=%s (%s)", state.game_id, winner, reason)

    def advance_leaders(self, state: MatchState, *, now: int) -> None:
        """Bring in every player's next leader and record it."""
        if state.phase != Phase.END_LEADER_BATTLE:
            raise ValueError(f"Cannot advance leaders during {state.phase.value}")
        state.leader_round += 1
        state.sp_passed = []
        state.phase = Phase.DRAW_PHASE
        for player in state.players:
            player.current_leader_index += 1
            leader = player.current_leader
            state.zones[player.player_id].leader = leader
            append(state, player.player_id, RecordAction.PLAY_LEADER, now=now, card_id=leader, zone="leader")
            self._emit(state, events.LEADER_CHANGED, {
                "playerId": player.player_id,
                "leaderId": leader,
                "leaderIndex": player.current_leader_index,
            }, now)
        self.simulator.simulate(state)
