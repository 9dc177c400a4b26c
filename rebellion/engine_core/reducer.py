"""
Reducer - Applies actions to match state.

The reducer is the single point of state mutation.
All state changes must go through apply().

Design principles:
- (state, action) -> ActionResult; the caller's state is never mutated
- Validates before applying, in a fixed precondition order
- A rejected action returns the untouched state plus an ERROR_* event
- Fatal engine errors end the match, are logged, and are re-raised
- Delegates effects to the simulator, selections to the SelectionManager
  and leader battles to the BattleResolver
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging
import random

from . import events
from ..config import Settings
from .action import Action, ActionResult, ActionType, EngineError, ErrorKind
from .battle import BattleResolver
from .catalog import CardCatalog, CardDef, CardKind
from .deck import DeckError, build_player, draw, redraw_hand, seed_for, validate_decks
from .play_sequence import append
from .selection import SelectionManager
from .simulator import EffectSimulator
from .state import (
    ALL, BATTLE_ZONES, ZONE_ORDER,
    FieldCard, MatchState, Phase, PlayerState, PlayerZones, RecordAction, zone_key,
)

logger = logging.getLogger(__name__)

_PLAY_ACTIONS = {ActionType.PLAY_CARD, ActionType.PLAY_CARD_BACK}
_CLOSED_PHASES = {Phase.START_REDRAW, Phase.BATTLE_PHASE, Phase.END_LEADER_BATTLE, Phase.GAME_END}


@dataclass
class Reducer:
    """
    Reducer applies actions to match state.

    Stateless - all state is in MatchState.
    The catalog provides card definitions, settings the rule knobs.

    Usage:
        reducer = Reducer(catalog)
        state = reducer.create_match("g1", ["p1", "p2"], [deck1, deck2])
        result = reducer.apply(state, Action.start_ready("p1"))
        state = result.new_state
    """
    catalog: CardCatalog
    settings: Settings = field(default_factory=Settings)
    clock: Callable[[], int] = events.now_ms

    def __post_init__(self):
        ttl = self.settings.event_ttl_ms
        self.simulator = EffectSimulator(self.catalog)
        self.selections = SelectionManager(self.catalog, self.simulator, ttl)
        self.battle = BattleResolver(
            self.catalog,
            self.simulator,
            self.selections,
            victory_points_to_win=self.settings.victory_points_to_win,
            ttl_ms=ttl,
        )

    def _emit(self, state: MatchState, event_type: str, data: dict[str, Any], now: int,
              requires_ack: bool = False) -> None:
        events.emit(state, event_type, data, now=now, requires_ack=requires_ack,
                    ttl_ms=self.settings.event_ttl_ms)

    def simulate(self, state: MatchState) -> None:
        """Recompute fieldEffects in place."""
        self.simulator.simulate(state)

    # =========================================================================
    # Lobby
    # =========================================================================

    def create_match(
        self,
        game_id: str,
        player_ids: list[str],
        decks: list[dict[str, Any]],
    ) -> MatchState:
        """
        Create a match with one or two seated players.

        Raises DeckError for malformed or overlapping decks.
        """
        if not 1 <= len(player_ids) <= 2 or len(decks) != len(player_ids):
            raise DeckError("A match needs one or two players, each with a deck")
        if len(set(player_ids)) != len(player_ids):
            raise DeckError("Player ids must be distinct")
        validate_decks(self.catalog, decks)

        now = self.clock()
        seed = seed_for(game_id, self.settings.seed_salt)
        state = MatchState(game_id=game_id, seed=seed, rng=random.Random(seed), created_at=now)
        for player_id, deck in zip(player_ids, decks):
            self._seat(state, player_id, deck, now)
        if len(state.players) == 2:
            self._emit(state, events.GAME_STARTED, {"players": state.player_ids}, now)
        logger.info("game %s created for %s", game_id, ", ".join(player_ids))
        return state

    def join(self, state: MatchState, player_id: str, deck: dict[str, Any]) -> ActionResult:
        """Seat a second player into a room created with one."""
        now = self.clock()
        if len(state.players) >= 2:
            return self._reject(state, player_id, ErrorKind.INVALID_PHASE_FOR_ACTION, "Room is full", now)
        if state.get_player(player_id) is not None:
            return self._reject(state, player_id, ErrorKind.INVALID_PHASE_FOR_ACTION,
                                f"{player_id} is already seated", now)
        try:
            validate_decks(self.catalog, [deck])
            owned = set(deck.get("cards") or []) | set(deck.get("leaders") or [])
            for other in state.players:
                taken = set(other.hand) | set(other.main_deck) | set(other.leader_list)
                overlap = owned & taken
                if overlap:
                    raise DeckError(f"Cards already in play: {', '.join(sorted(overlap))}")
        except DeckError as e:
            return self._reject(state, player_id, ErrorKind.INVALID_DECK, str(e), now)

        work = state.clone()
        self._seat(work, player_id, deck, now)
        self._emit(work, events.GAME_STARTED, {"players": work.player_ids}, now)
        logger.info("game %s: %s joined", work.game_id, player_id)
        return ActionResult.success_with_state(work, [f"{player_id} joined"])

    def _seat(self, state: MatchState, player_id: str, deck: dict[str, Any], now: int) -> PlayerState:
        player = build_player(player_id, deck, state.rng)
        draw(player, self.settings.initial_hand_size)
        state.players.append(player)
        self._emit(state, events.INITIAL_HAND_DEALT, {"playerId": player_id, "count": len(player.hand)}, now)
        return player

    # =========================================================================
    # Dispatch
    # =========================================================================

    def apply(self, state: MatchState, action: Action) -> ActionResult:
        """
        Apply an action to the match state.

        Returns ActionResult with the new state, or with the original state
        plus an ERROR_* event when the action is rejected.
        """
        now = self.clock()
        handler = self._get_handler(action.action_type)
        if handler is None:
            return self._reject(state, action.player_id, ErrorKind.INVALID_PHASE_FOR_ACTION,
                                f"No handler for action type: {action.action_type}", now)

        if state.get_player(action.player_id) is None:
            return self._reject(state, action.player_id, ErrorKind.PLAYER_NOT_FOUND,
                                f"Player {action.player_id} is not seated", now)
        if state.is_over and action.action_type != ActionType.ACKNOWLEDGE_EVENTS:
            return self._reject(state, action.player_id, ErrorKind.INVALID_PHASE_FOR_ACTION,
                                "Game is over - no actions allowed", now)

        blocked = self._blocking_error(state, action)
        if blocked:
            return self._reject(state, action.player_id, blocked[0], blocked[1], now)

        work = state.clone()
        events.purge(work, now)
        try:
            result = handler(work, action, now)
        except EngineError as e:
            self._abort(state, e, now)
            raise

        if not result.success:
            return self._reject(state, action.player_id, result.error_code, result.error, now)
        logger.debug("game %s: %s %s ok", state.game_id, action.player_id, action.action_type.value)
        return result

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.PLAY_CARD: self._handle_play,
            ActionType.PLAY_CARD_BACK: self._handle_play,
            ActionType.SELECT_CARD: self._handle_select,
            ActionType.ACKNOWLEDGE_EVENTS: self._handle_acknowledge,
            ActionType.START_READY: self._handle_start_ready,
            ActionType.PASS_SP: self._handle_pass_sp,
            ActionType.NEXT_ROUND: self._handle_next_round,
        }
        return handlers.get(action_type)

    def _blocking_error(self, state: MatchState, action: Action) -> tuple[ErrorKind, str] | None:
        """While a selection is pending only SelectCard goes through."""
        pending = state.pending_selection
        if pending is None or action.action_type == ActionType.SELECT_CARD:
            return None
        if action.action_type in _PLAY_ACTIONS:
            if action.player_id == pending.player_id:
                return ErrorKind.CARD_SELECTION_PENDING, f"Complete selection {pending.selection_id} first"
            return ErrorKind.WAITING_FOR_PLAYER, f"Waiting for {pending.player_id} to select"
        return ErrorKind.GAME_BLOCKED, f"Game blocked by selection {pending.selection_id}"

    def _reject(self, state: MatchState, player_id: str | None, kind: ErrorKind | None,
                message: str | None, now: int) -> ActionResult:
        kind = kind or ErrorKind.INVALID_PHASE_FOR_ACTION
        message = message or kind.value
        rejected = state.clone()
        events.purge(rejected, now)
        events.emit_error(rejected, kind, message, player_id=player_id, now=now,
                          ttl_ms=self.settings.event_ttl_ms)
        logger.warning("game %s: rejected %s for %s: %s", state.game_id, kind.value, player_id, message)
        return ActionResult.failure(message, kind, state=rejected)

    def _abort(self, state: MatchState, error: EngineError, now: int) -> None:
        """End the match on a fatal error, keeping a snapshot for diagnosis."""
        snapshot = state.clone()
        snapshot.phase = Phase.GAME_END
        snapshot.fatal_error = error.kind.value
        self._emit(snapshot, events.GAME_END, {
            "winner": None, "reason": "fatal", "errorType": error.kind.value, "message": str(error),
        }, now)
        error.state = snapshot
        logger.exception("game %s aborted: %s", state.game_id, error)

    # =========================================================================
    # Opening
    # =========================================================================

    def _handle_start_ready(self, state: MatchState, action: Action, now: int) -> ActionResult:
        if state.phase != Phase.START_REDRAW:
            return ActionResult.failure("Opening redraw is over", ErrorKind.INVALID_PHASE_FOR_ACTION)
        if len(state.players) < 2:
            return ActionResult.failure("Waiting for an opponent", ErrorKind.GAME_NOT_STARTED)

        player = state.require_player(action.player_id)
        if player.ready:
            return ActionResult.failure(f"{player.player_id} is already ready",
                                        ErrorKind.INVALID_PHASE_FOR_ACTION)

        if action.payload.redraw:
            drawn = redraw_hand(player, state.rng, self.settings.initial_hand_size)
            player.redraw_used = True
            self._emit(state, events.HAND_REDRAWN, {"playerId": player.player_id, "count": len(drawn)}, now)
        player.ready = True
        self._emit(state, events.PLAYER_READY, {
            "playerId": player.player_id, "redraw": action.payload.redraw,
        }, now)

        changes = [f"{player.player_id} ready"]
        if all(p.ready for p in state.players):
            self._begin(state, now)
            changes.append("match started")
        return ActionResult.success_with_state(state, changes)

    def decide_first_player(self, state: MatchState) -> int:
        """Higher leader initial point goes first; a tie is a coin flip."""
        if self.settings.force_first_player is not None:
            return self.settings.force_first_player
        powers = [self.catalog.get(p.current_leader).initial_point for p in state.players]
        if powers[0] != powers[1]:
            return 0 if powers[0] > powers[1] else 1
        return state.rng.randrange(2)

    def _begin(self, state: MatchState, now: int) -> None:
        state.first_player = self.decide_first_player(state)
        state.zones = {p.player_id: PlayerZones(leader=p.current_leader) for p in state.players}
        state.phase = Phase.DRAW_PHASE
        state.current_turn = 0
        state.leader_round = 0
        for player in state.players:
            append(state, player.player_id, RecordAction.PLAY_LEADER, now=now,
                   card_id=player.current_leader, zone="leader")
        self.simulator.simulate(state)

        self._emit(state, events.PHASE_CHANGE, {"phase": state.phase.value}, now)
        first = state.player_ids[state.first_player]
        logger.info("game %s begins, %s plays first", state.game_id, first)
        self._start_turn(state, first, now, draw_card=False)

    # =========================================================================
    # Turn flow
    # =========================================================================

    def _player_for_turn(self, state: MatchState) -> str:
        ids = state.player_ids
        if state.current_turn % 2 == 0:
            return ids[state.first_player]
        return ids[1 - state.first_player]

    def _zones_full(self, state: MatchState, player_id: str) -> bool:
        zones = state.zones[player_id]
        return all(zones.get(z) for z in (*BATTLE_ZONES, "help"))

    def _main_blocked(self, state: MatchState, player_id: str) -> bool:
        """No main-phase play possible even after the turn's draw."""
        player = state.require_player(player_id)
        return self._zones_full(state, player_id) or (not player.hand and not player.main_deck)

    def _start_turn(self, state: MatchState, player_id: str, now: int, draw_card: bool = True) -> None:
        state.current_player = player_id
        state.phase = Phase.DRAW_PHASE
        drawn = draw(state.require_player(player_id), 1) if draw_card else []
        if drawn:
            self._emit(state, events.CARDS_DRAWN, {"playerId": player_id, "count": len(drawn)}, now)
            self.simulator.simulate(state)
        self._emit(state, events.TURN_SWITCH, {"playerId": player_id, "turn": state.current_turn}, now)
        self._emit(state, events.DRAW_PHASE_COMPLETE, {
            "playerId": player_id, "turn": state.current_turn, "drawn": len(drawn),
        }, now, requires_ack=True)

    def _next_turn(self, state: MatchState, now: int) -> None:
        for _ in range(2):
            state.current_turn += 1
            player_id = self._player_for_turn(state)
            if self._main_blocked(state, player_id):
                self._emit(state, events.TURN_SKIPPED, {"playerId": player_id, "turn": state.current_turn}, now)
                continue
            self._start_turn(state, player_id, now)
            return
        self._enter_sp_phase(state, now)

    def _after_main_action(self, state: MatchState, now: int) -> None:
        if all(self._zones_full(state, pid) for pid in state.player_ids):
            self._emit(state, events.ALL_MAIN_ZONES_FILLED, {}, now)
            self._enter_sp_phase(state, now)
        elif all(self._main_blocked(state, pid) for pid in state.player_ids):
            self._enter_sp_phase(state, now)
        else:
            self._next_turn(state, now)

    def _needs_sp_action(self, state: MatchState, player_id: str) -> bool:
        return (
            not state.zones[player_id].sp
            and player_id not in state.sp_passed
            and bool(state.require_player(player_id).hand)
        )

    def _enter_sp_phase(self, state: MatchState, now: int) -> None:
        state.phase = Phase.SP_PHASE
        state.sp_passed = []
        self._emit(state, events.PHASE_CHANGE, {"phase": state.phase.value}, now)
        ids = state.player_ids
        for player_id in (ids[state.first_player], ids[1 - state.first_player]):
            if self._needs_sp_action(state, player_id):
                self._switch_sp_turn(state, player_id, now)
                return
        self._resolve_battle(state, now)

    def _switch_sp_turn(self, state: MatchState, player_id: str, now: int) -> None:
        state.current_turn += 1
        state.current_player = player_id
        self._emit(state, events.TURN_SWITCH, {"playerId": player_id, "turn": state.current_turn}, now)

    def _after_sp_action(self, state: MatchState, now: int) -> None:
        current = state.current_player
        for player_id in (state.opponent_id(current), current):
            if self._needs_sp_action(state, player_id):
                self._switch_sp_turn(state, player_id, now)
                return
        if all(state.zones[pid].sp for pid in state.player_ids):
            self._emit(state, events.ALL_SP_ZONES_FILLED, {}, now)
        self._resolve_battle(state, now)

    def _resolve_battle(self, state: MatchState, now: int) -> None:
        self.battle.resolve(state, now=now)
        if state.phase == Phase.END_LEADER_BATTLE and self.settings.auto_advance:
            self._advance_round(state, now)

    def _advance_round(self, state: MatchState, now: int) -> None:
        self.battle.advance_leaders(state, now=now)
        self._next_turn(state, now)

    # =========================================================================
    # Placement
    # =========================================================================

    def _handle_play(self, state: MatchState, action: Action, now: int) -> ActionResult:
        face_down = action.action_type == ActionType.PLAY_CARD_BACK
        player_id = action.player_id
        payload = action.payload

        if state.phase in _CLOSED_PHASES:
            return ActionResult.failure(f"Cannot play cards during {state.phase.value}",
                                        ErrorKind.INVALID_PHASE_FOR_ACTION)
        if player_id != state.current_player:
            return ActionResult.failure(f"Not {player_id}'s turn", ErrorKind.NOT_YOUR_TURN)
        if state.phase == Phase.DRAW_PHASE:
            return ActionResult.failure("Acknowledge the draw phase before playing",
                                        ErrorKind.PHASE_RESTRICTION_ERROR)

        player = state.require_player(player_id)
        if payload.field_index is None or not 0 <= payload.field_index < len(ZONE_ORDER):
            return ActionResult.failure(f"Invalid field index {payload.field_index}", ErrorKind.INVALID_POSITION)
        if payload.card_index is None:
            return ActionResult.failure("No card given", ErrorKind.CARD_NOT_FOUND)
        if not 0 <= payload.card_index < len(player.hand):
            return ActionResult.failure(f"Invalid card index {payload.card_index}", ErrorKind.INVALID_CARD_INDEX)

        zone = ZONE_ORDER[payload.field_index]
        card = self.catalog.get(player.hand[payload.card_index])
        rejection = self._check_placement(state, player, card, zone, face_down)
        if rejection:
            return ActionResult.failure(rejection[1], rejection[0])

        player.hand.pop(payload.card_index)
        state.zones[player_id].get(zone).append(FieldCard(card_id=card.card_id, face_down=face_down))
        record = append(state, player_id, RecordAction.PLAY_CARD, now=now, card_id=card.card_id,
                        zone=zone, data={"faceDown": face_down, "firedRules": []})
        player.turn_actions.append({
            "turn": state.current_turn,
            "leaderRound": state.leader_round,
            "action": action.action_type.value,
            "cardId": card.card_id,
            "zone": zone,
            "faceDown": face_down,
        })
        self._emit(state, events.CARD_PLAYED, {
            "playerId": player_id,
            "cardId": None if face_down else card.card_id,
            "zone": zone,
            "faceDown": face_down,
        }, now)
        self._emit(state, events.ZONE_FILLED, {"playerId": player_id, "zone": zone}, now)
        self.simulator.simulate(state)

        if not face_down and state.phase == Phase.MAIN_PHASE:
            fired = self.selections.fire_triggers(state, player_id, card.card_id, zone,
                                                  now=now, trigger_record_id=record.sequence_id)
            record.data["firedRules"] = fired
            self.simulator.simulate(state)

        changes = [f"{player_id} played {'a card face-down' if face_down else card.card_id} to {zone}"]
        if state.pending_selection is not None:
            changes.append(f"selection {state.pending_selection.selection_id} opened")
            return ActionResult.success_with_state(state, changes)

        if state.phase == Phase.SP_PHASE:
            self._after_sp_action(state, now)
        else:
            self._after_main_action(state, now)
        return ActionResult.success_with_state(state, changes)

    def _check_placement(self, state: MatchState, player: PlayerState, card: CardDef,
                         zone: str, face_down: bool) -> tuple[ErrorKind, str] | None:
        """Return (kind, message) for an illegal placement."""
        zones = state.zones[player.player_id]
        effects = player.field_effects

        if state.phase == Phase.SP_PHASE:
            if zone != "sp":
                return ErrorKind.SP_PHASE_RESTRICTION, "Only the sp zone can be played during SP phase"
            if zones.sp:
                return ErrorKind.ZONE_OCCUPIED_ERROR, "The sp zone is occupied"
            if not face_down:
                if card.kind != CardKind.SP:
                    return ErrorKind.CARD_TYPE_ZONE_ERROR, f"{card.card_id} is not an sp card"
                if effects.play_restrictions.get("sp"):
                    return ErrorKind.PREVENT_PLAY, "SP cards cannot be played"
            return None

        if face_down:
            if zone == "sp":
                return ErrorKind.PHASE_RESTRICTION_ERROR, "The sp zone opens in SP phase"
            if zone == "help" and zones.help:
                return ErrorKind.ZONE_OCCUPIED_ERROR, "The help zone is occupied"
            return None

        # Card type / zone
        if card.kind == CardKind.SP:
            if zone == "sp":
                return ErrorKind.PHASE_RESTRICTION_ERROR, "SP cards are played face-up in SP phase"
            return ErrorKind.CARD_TYPE_ZONE_ERROR, "SP cards belong in the sp zone"
        if card.kind == CardKind.CHARACTER and zone not in BATTLE_ZONES:
            return ErrorKind.CARD_TYPE_ZONE_ERROR, "Characters belong in top, left or right"
        if card.kind == CardKind.HELP and zone != "help":
            return ErrorKind.CARD_TYPE_ZONE_ERROR, "Help cards belong in the help zone"
        if card.kind == CardKind.LEADER:
            return ErrorKind.CARD_TYPE_ZONE_ERROR, "Leaders cannot be played from hand"

        # Leader compatibility and field restrictions
        if card.is_character and not effects.special_effects.get("zonePlacementFreedom"):
            allowed = self.catalog.get(zones.leader).allowed_in(zone)
            if allowed != ALL and card.game_type not in allowed:
                return ErrorKind.ZONE_COMPATIBILITY_ERROR, f"{card.game_type} cannot be placed in {zone}"
            current = effects.zone_restrictions.get(zone_key(zone), ALL)
            if current != ALL and card.game_type not in current:
                return ErrorKind.FIELD_EFFECT_RESTRICTION, f"{card.game_type} is restricted from {zone}"

        # Occupancy
        if zone in BATTLE_ZONES:
            if any(not fc.face_down for fc in zones.get(zone)):
                return ErrorKind.ZONE_OCCUPIED_ERROR, f"{zone} already holds a character"
        elif zones.get(zone):
            return ErrorKind.ZONE_OCCUPIED_ERROR, f"The {zone} zone is occupied"

        if zone == "help" and effects.play_restrictions.get("help"):
            return ErrorKind.PREVENT_PLAY, "Help cards cannot be played"
        return None

    # =========================================================================
    # Other actions
    # =========================================================================

    def _handle_select(self, state: MatchState, action: Action, now: int) -> ActionResult:
        payload = action.payload
        error = self.selections.validate(state, action.player_id, payload.selection_id,
                                         payload.selected_card_ids)
        if error:
            return ActionResult.failure(error, ErrorKind.INVALID_SELECTION)

        self.selections.complete(state, list(payload.selected_card_ids or []), now=now)
        changes = [f"{action.player_id} completed {payload.selection_id}"]
        if state.pending_selection is None:
            self._after_main_action(state, now)
        return ActionResult.success_with_state(state, changes)

    def _handle_acknowledge(self, state: MatchState, action: Action, now: int) -> ActionResult:
        player_id = action.player_id
        acked = events.acknowledge(state, action.payload.event_ids or [], player_id=player_id)
        changes = [f"{player_id} acknowledged {len(acked)} event(s)"]

        if (
            state.phase == Phase.DRAW_PHASE
            and player_id == state.current_player
            and events.pending_ack(state, events.DRAW_PHASE_COMPLETE, player_id) is None
        ):
            state.phase = Phase.MAIN_PHASE
            self._emit(state, events.PHASE_CHANGE, {"phase": state.phase.value, "playerId": player_id}, now)
            if not state.require_player(player_id).hand or self._zones_full(state, player_id):
                self._emit(state, events.TURN_SKIPPED, {"playerId": player_id, "turn": state.current_turn}, now)
                self._after_main_action(state, now)
            changes.append("main phase")
        return ActionResult.success_with_state(state, changes)

    def _handle_pass_sp(self, state: MatchState, action: Action, now: int) -> ActionResult:
        player_id = action.player_id
        if state.phase != Phase.SP_PHASE:
            return ActionResult.failure("Passing is only possible in SP phase", ErrorKind.INVALID_PHASE_FOR_ACTION)
        if player_id != state.current_player:
            return ActionResult.failure(f"Not {player_id}'s turn", ErrorKind.NOT_YOUR_TURN)
        if state.require_player(player_id).field_effects.special_effects.get("forceSpPlay"):
            return ActionResult.failure("A card must be placed in the sp zone", ErrorKind.SP_PHASE_RESTRICTION)

        state.sp_passed.append(player_id)
        self._emit(state, events.TURN_SKIPPED, {
            "playerId": player_id, "turn": state.current_turn, "reason": "pass",
        }, now)
        self._after_sp_action(state, now)
        return ActionResult.success_with_state(state, [f"{player_id} passed SP"])

    def _handle_next_round(self, state: MatchState, action: Action, now: int) -> ActionResult:
        if self.settings.auto_advance:
            return ActionResult.failure("Leader battles advance automatically",
                                        ErrorKind.INVALID_PHASE_FOR_ACTION)
        if state.phase != Phase.END_LEADER_BATTLE:
            return ActionResult.failure(f"No leader battle to conclude during {state.phase.value}",
                                        ErrorKind.INVALID_PHASE_FOR_ACTION)
        self._advance_round(state, now)
        return ActionResult.success_with_state(state, [f"leader round {state.leader_round}"])


def apply_action(catalog: CardCatalog, state: MatchState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer with default settings and applies the action.
    """
    reducer = Reducer(catalog=catalog)
    return reducer.apply(state, action)
