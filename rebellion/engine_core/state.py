"""
Match State - The aggregate root for one Revolution and Rebellion duel.

Design principles:
- One mutable MatchState per match; the reducer clones before mutating so a
  rejected action never touches the caller's copy
- Serializable: to_dict()/from_dict() produce the camelCase JSON document
  used for persistence and the injectGameState test hook
- Derived data (fieldEffects, valueOnField, playerPoint) is rebuilt by the
  effect simulator and never edited by hand
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import random


ZONE_ORDER = ("top", "left", "right", "help", "sp")
BATTLE_ZONES = ("top", "left", "right")
ALL = "ALL"


class Phase(Enum):
    """Turn phases of a match."""
    START_REDRAW = "START_REDRAW"
    DRAW_PHASE = "DRAW_PHASE"
    MAIN_PHASE = "MAIN_PHASE"
    SP_PHASE = "SP_PHASE"
    BATTLE_PHASE = "BATTLE_PHASE"
    END_LEADER_BATTLE = "END_LEADER_BATTLE"
    GAME_END = "GAME_END"


class Scope(str, Enum):
    """Which players (or cards) an active effect applies to."""
    SELF = "SELF"
    OPPONENT = "OPPONENT"
    SPECIFIC_CARD = "SPECIFIC_CARD"
    ALL = "ALL"


class RecordAction(str, Enum):
    """Kinds of entries in the play sequence."""
    PLAY_LEADER = "PLAY_LEADER"
    PLAY_CARD = "PLAY_CARD"
    APPLY_SET_POWER = "APPLY_SET_POWER"
    APPLY_POWER_BOOST = "APPLY_POWER_BOOST"
    APPLY_NEUTRALIZATION = "APPLY_NEUTRALIZATION"
    APPLY_DRAW = "APPLY_DRAW"
    APPLY_DISCARD = "APPLY_DISCARD"
    APPLY_SEARCH = "APPLY_SEARCH"
    APPLY_SP_EFFECT = "APPLY_SP_EFFECT"


def zone_key(zone: str) -> str:
    """Map a field zone name to its zoneRestrictions key ("top" -> "TOP")."""
    return zone.upper()


@dataclass
class FieldCard:
    """One placement of a card in a zone."""
    card_id: str
    face_down: bool = False
    value_on_field: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cardId": self.card_id,
            "faceDown": self.face_down,
            "valueOnField": self.value_on_field,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldCard:
        return cls(
            card_id=data["cardId"],
            face_down=bool(data.get("faceDown", False)),
            value_on_field=int(data.get("valueOnField", 0)),
        )


@dataclass
class EffectTarget:
    """Who and what an active effect applies to."""
    scope: Scope
    player_id: str
    zones: list[str] = field(default_factory=lambda: list(BATTLE_ZONES))
    game_types: list[str] | None = None
    traits: list[str] | None = None
    card_types: list[str] | None = None
    specific_cards: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope.value,
            "playerId": self.player_id,
            "zones": list(self.zones),
            "gameTypes": self.game_types,
            "traits": self.traits,
            "cardTypes": self.card_types,
            "specificCards": self.specific_cards,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EffectTarget:
        return cls(
            scope=Scope(data["scope"]),
            player_id=data["playerId"],
            zones=list(data.get("zones") or []),
            game_types=data.get("gameTypes"),
            traits=data.get("traits"),
            card_types=data.get("cardTypes"),
            specific_cards=data.get("specificCards"),
        )


@dataclass
class ActiveEffect:
    """
    A normalized, disable-able record of a declarative card effect.

    Neutralization flips is_enabled and fills the disabled_* provenance
    fields; effects are never deleted by it.
    """
    effect_id: str
    source: str
    source_player_id: str
    type: str
    target: EffectTarget
    value: int | None = None
    priority: int = 0
    unremovable: bool = False
    is_enabled: bool = True
    created_at: int = 0
    effect_data: dict[str, Any] = field(default_factory=dict)

    disabled_by: str | None = None
    disabled_at: int | None = None
    disabled_reason: str | None = None
    neutralization_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "effectId": self.effect_id,
            "source": self.source,
            "sourcePlayerId": self.source_player_id,
            "type": self.type,
            "target": self.target.to_dict(),
            "value": self.value,
            "priority": self.priority,
            "unremovable": self.unremovable,
            "isEnabled": self.is_enabled,
            "createdAt": self.created_at,
            "effectData": dict(self.effect_data),
            "disabledBy": self.disabled_by,
            "disabledAt": self.disabled_at,
            "disabledReason": self.disabled_reason,
            "neutralizationId": self.neutralization_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActiveEffect:
        return cls(
            effect_id=data["effectId"],
            source=data["source"],
            source_player_id=data["sourcePlayerId"],
            type=data["type"],
            target=EffectTarget.from_dict(data["target"]),
            value=data.get("value"),
            priority=int(data.get("priority", 0)),
            unremovable=bool(data.get("unremovable", False)),
            is_enabled=bool(data.get("isEnabled", True)),
            created_at=int(data.get("createdAt", 0)),
            effect_data=dict(data.get("effectData") or {}),
            disabled_by=data.get("disabledBy"),
            disabled_at=data.get("disabledAt"),
            disabled_reason=data.get("disabledReason"),
            neutralization_id=data.get("neutralizationId"),
        )


def default_zone_restrictions() -> dict[str, Any]:
    return {zone_key(z): ALL for z in ZONE_ORDER}


@dataclass
class FieldEffects:
    """Per-player effect state. Rebuilt from scratch on every simulation."""
    zone_restrictions: dict[str, Any] = field(default_factory=default_zone_restrictions)
    active_effects: list[ActiveEffect] = field(default_factory=list)
    calculated_powers: dict[str, int] = field(default_factory=dict)
    disabled_cards: list[str] = field(default_factory=list)
    special_effects: dict[str, bool] = field(default_factory=dict)
    play_restrictions: dict[str, bool] = field(
        default_factory=lambda: {"help": False, "sp": False}
    )
    victory_point_modifiers: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "zoneRestrictions": {
                k: (v if v == ALL else sorted(v)) for k, v in self.zone_restrictions.items()
            },
            "activeEffects": [e.to_dict() for e in self.active_effects],
            "calculatedPowers": dict(self.calculated_powers),
            "disabledCards": list(self.disabled_cards),
            "specialEffects": dict(self.special_effects),
            "playRestrictions": dict(self.play_restrictions),
            "victoryPointModifiers": self.victory_point_modifiers,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldEffects:
        restrictions = default_zone_restrictions()
        for key, value in (data.get("zoneRestrictions") or {}).items():
            restrictions[key] = value if value == ALL else set(value)
        return cls(
            zone_restrictions=restrictions,
            active_effects=[ActiveEffect.from_dict(e) for e in data.get("activeEffects", [])],
            calculated_powers={k: int(v) for k, v in (data.get("calculatedPowers") or {}).items()},
            disabled_cards=list(data.get("disabledCards", [])),
            special_effects=dict(data.get("specialEffects") or {}),
            play_restrictions=dict(data.get("playRestrictions") or {"help": False, "sp": False}),
            victory_point_modifiers=int(data.get("victoryPointModifiers", 0)),
        )


@dataclass
class PlayerZones:
    """The field of one player: the current leader plus five zones."""
    leader: str | None = None
    top: list[FieldCard] = field(default_factory=list)
    left: list[FieldCard] = field(default_factory=list)
    right: list[FieldCard] = field(default_factory=list)
    help: list[FieldCard] = field(default_factory=list)
    sp: list[FieldCard] = field(default_factory=list)

    def get(self, zone: str) -> list[FieldCard]:
        if zone not in ZONE_ORDER:
            raise KeyError(zone)
        return getattr(self, zone)

    def all_cards(self) -> list[tuple[str, FieldCard]]:
        """(zone, FieldCard) pairs in zone order."""
        return [(z, fc) for z in ZONE_ORDER for fc in self.get(z)]

    def find(self, card_id: str) -> tuple[str, FieldCard] | None:
        for zone, fc in self.all_cards():
            if fc.card_id == card_id:
                return zone, fc
        return None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"leader": self.leader}
        for zone in ZONE_ORDER:
            data[zone] = [fc.to_dict() for fc in self.get(zone)]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerZones:
        zones = cls(leader=data.get("leader"))
        for zone in ZONE_ORDER:
            setattr(zones, zone, [FieldCard.from_dict(fc) for fc in data.get(zone, [])])
        return zones


@dataclass
class PlayerState:
    """
    State for one seat.

    hand keeps insertion order; main_deck has its top card at index 0.
    """
    player_id: str
    hand: list[str] = field(default_factory=list)
    main_deck: list[str] = field(default_factory=list)
    discard_pile: list[str] = field(default_factory=list)
    # Discarded ids that left the field face-down
    hidden_discards: list[str] = field(default_factory=list)
    leader_list: list[str] = field(default_factory=list)
    current_leader_index: int = 0
    victory_points: int = 0
    turn_actions: list[dict[str, Any]] = field(default_factory=list)
    field_effects: FieldEffects = field(default_factory=FieldEffects)
    player_point: int = 0

    # Opening-hand bookkeeping
    ready: bool = False
    redraw_used: bool = False

    @property
    def current_leader(self) -> str | None:
        if 0 <= self.current_leader_index < len(self.leader_list):
            return self.leader_list[self.current_leader_index]
        return None

    @property
    def is_last_leader(self) -> bool:
        return self.current_leader_index >= len(self.leader_list) - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "playerId": self.player_id,
            "hand": list(self.hand),
            "mainDeck": list(self.main_deck),
            "discardPile": list(self.discard_pile),
            "hiddenDiscards": list(self.hidden_discards),
            "leaderList": list(self.leader_list),
            "currentLeaderIndex": self.current_leader_index,
            "victoryPoints": self.victory_points,
            "turnActions": [dict(a) for a in self.turn_actions],
            "fieldEffects": self.field_effects.to_dict(),
            "playerPoint": self.player_point,
            "ready": self.ready,
            "redrawUsed": self.redraw_used,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerState:
        return cls(
            player_id=data["playerId"],
            hand=list(data.get("hand", [])),
            main_deck=list(data.get("mainDeck", [])),
            discard_pile=list(data.get("discardPile", [])),
            hidden_discards=list(data.get("hiddenDiscards", [])),
            leader_list=list(data.get("leaderList", [])),
            current_leader_index=int(data.get("currentLeaderIndex", 0)),
            victory_points=int(data.get("victoryPoints", 0)),
            turn_actions=[dict(a) for a in data.get("turnActions", [])],
            field_effects=FieldEffects.from_dict(data.get("fieldEffects") or {}),
            player_point=int(data.get("playerPoint", 0)),
            ready=bool(data.get("ready", False)),
            redraw_used=bool(data.get("redrawUsed", False)),
        )


@dataclass
class PlayRecord:
    """One entry of the append-only play sequence."""
    sequence_id: int
    player_id: str
    card_id: str | None
    action: RecordAction
    zone: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    turn_number: int = 0
    phase_when_played: str = Phase.MAIN_PHASE.value
    leader_round: int = 0
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequenceId": self.sequence_id,
            "playerId": self.player_id,
            "cardId": self.card_id,
            "action": self.action.value,
            "zone": self.zone,
            "data": deepcopy(self.data),
            "turnNumber": self.turn_number,
            "phaseWhenPlayed": self.phase_when_played,
            "leaderRound": self.leader_round,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayRecord:
        return cls(
            sequence_id=int(data["sequenceId"]),
            player_id=data["playerId"],
            card_id=data.get("cardId"),
            action=RecordAction(data["action"]),
            zone=data.get("zone"),
            data=deepcopy(data.get("data") or {}),
            turn_number=int(data.get("turnNumber", 0)),
            phase_when_played=data.get("phaseWhenPlayed", Phase.MAIN_PHASE.value),
            leader_round=int(data.get("leaderRound", 0)),
            timestamp=int(data.get("timestamp", 0)),
        )


@dataclass
class Selection:
    """An interactive choice that blocks the match until completed."""
    selection_id: str
    player_id: str
    type: str  # "deckSearch" | "fieldTarget"
    eligible_card_ids: list[str]
    select_count: int
    effect: dict[str, Any]
    source_card_id: str
    target_player_id: str | None = None
    searched_card_ids: list[str] = field(default_factory=list)
    created_at: int = 0

    @property
    def effect_type(self) -> str:
        return self.effect.get("type", "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "selectionId": self.selection_id,
            "playerId": self.player_id,
            "type": self.type,
            "eligibleCardIds": list(self.eligible_card_ids),
            "selectCount": self.select_count,
            "effect": deepcopy(self.effect),
            "sourceCardId": self.source_card_id,
            "targetPlayerId": self.target_player_id,
            "searchedCardIds": list(self.searched_card_ids),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Selection:
        return cls(
            selection_id=data["selectionId"],
            player_id=data["playerId"],
            type=data["type"],
            eligible_card_ids=list(data.get("eligibleCardIds", [])),
            select_count=int(data.get("selectCount", 1)),
            effect=deepcopy(data.get("effect") or {}),
            source_card_id=data["sourceCardId"],
            target_player_id=data.get("targetPlayerId"),
            searched_card_ids=list(data.get("searchedCardIds", [])),
            created_at=int(data.get("createdAt", 0)),
        )


@dataclass
class GameEvent:
    """A short-lived notification for the presenter."""
    event_id: int
    type: str
    data: dict[str, Any]
    created_at: int
    expires_at: int
    requires_ack: bool = False
    acknowledged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.event_id,
            "type": self.type,
            "data": deepcopy(self.data),
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
            "requiresAcknowledgment": self.requires_ack,
            "acknowledged": self.acknowledged,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameEvent:
        return cls(
            event_id=int(data["id"]),
            type=data["type"],
            data=deepcopy(data.get("data") or {}),
            created_at=int(data.get("createdAt", 0)),
            expires_at=int(data.get("expiresAt", 0)),
            requires_ack=bool(data.get("requiresAcknowledgment", False)),
            acknowledged=bool(data.get("acknowledged", False)),
        )


@dataclass
class NeutralizationRecord:
    neutralized_card: str
    neutralized_by: str
    timestamp: int
    effects_disabled: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "neutralizedCard": self.neutralized_card,
            "neutralizedBy": self.neutralized_by,
            "timestamp": self.timestamp,
            "effectsDisabled": self.effects_disabled,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NeutralizationRecord:
        return cls(
            neutralized_card=data["neutralizedCard"],
            neutralized_by=data["neutralizedBy"],
            timestamp=int(data.get("timestamp", 0)),
            effects_disabled=int(data.get("effectsDisabled", 0)),
            reason=data.get("reason", ""),
        )


def _rng_state_to_json(rng: random.Random) -> list[Any]:
    version, internal, gauss = rng.getstate()
    return [version, list(internal), gauss]


def _rng_from_json(seed: int, state: list[Any] | None) -> random.Random:
    rng = random.Random(seed)
    if state:
        version, internal, gauss = state
        rng.setstate((version, tuple(internal), gauss))
    return rng


@dataclass
class MatchState:
    """
    Complete state of one match ("game environment").

    Mutated only by the reducer (engine_core.reducer) and the selection
    manager, always on a clone owned by the current call.
    """
    game_id: str
    players: list[PlayerState] = field(default_factory=list)
    zones: dict[str, PlayerZones] = field(default_factory=dict)

    phase: Phase = Phase.START_REDRAW
    current_turn: int = 0
    first_player: int = 0
    current_player: str | None = None
    leader_round: int = 0

    play_sequence: list[PlayRecord] = field(default_factory=list)
    pending_selection: Selection | None = None
    events: list[GameEvent] = field(default_factory=list)
    next_event_id: int = 1
    neutralization_history: list[NeutralizationRecord] = field(default_factory=list)

    # Players who declined to place a card during the current SP phase
    sp_passed: list[str] = field(default_factory=list)
    last_battle: dict[str, Any] | None = None

    winner: str | None = None
    fatal_error: str | None = None

    seed: int = 0
    rng: random.Random = field(default_factory=random.Random)
    created_at: int = 0

    @property
    def player_ids(self) -> list[str]:
        return [p.player_id for p in self.players]

    def get_player(self, player_id: str) -> PlayerState | None:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def require_player(self, player_id: str) -> PlayerState:
        player = self.get_player(player_id)
        if player is None:
            raise KeyError(f"Unknown player {player_id}")
        return player

    def opponent_id(self, player_id: str) -> str:
        for pid in self.player_ids:
            if pid != player_id:
                return pid
        raise KeyError(f"No opponent for {player_id}")

    def find_on_field(self, card_id: str) -> tuple[str, str, FieldCard] | None:
        """Locate a card on any field: (owner, zone, FieldCard)."""
        for pid, zones in self.zones.items():
            hit = zones.find(card_id)
            if hit:
                return pid, hit[0], hit[1]
        return None

    @property
    def is_over(self) -> bool:
        return self.phase == Phase.GAME_END

    def clone(self) -> MatchState:
        """Deep copy the state (including the RNG position)."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "gameId": self.game_id,
            "players": [p.to_dict() for p in self.players],
            "zones": {pid: z.to_dict() for pid, z in self.zones.items()},
            "phase": self.phase.value,
            "currentTurn": self.current_turn,
            "firstPlayer": self.first_player,
            "currentPlayer": self.current_player,
            "leaderRound": self.leader_round,
            "playSequence": [r.to_dict() for r in self.play_sequence],
            "pendingSelection": self.pending_selection.to_dict() if self.pending_selection else None,
            "events": [e.to_dict() for e in self.events],
            "nextEventId": self.next_event_id,
            "neutralizationHistory": [n.to_dict() for n in self.neutralization_history],
            "spPassed": list(self.sp_passed),
            "lastBattle": deepcopy(self.last_battle),
            "winner": self.winner,
            "fatalError": self.fatal_error,
            "seed": self.seed,
            "rngState": _rng_state_to_json(self.rng),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchState:
        selection = data.get("pendingSelection")
        seed = int(data.get("seed", 0))
        return cls(
            game_id=data["gameId"],
            players=[PlayerState.from_dict(p) for p in data.get("players", [])],
            zones={pid: PlayerZones.from_dict(z) for pid, z in (data.get("zones") or {}).items()},
            phase=Phase(data.get("phase", Phase.START_REDRAW.value)),
            current_turn=int(data.get("currentTurn", 0)),
            first_player=int(data.get("firstPlayer", 0)),
            current_player=data.get("currentPlayer"),
            leader_round=int(data.get("leaderRound", 0)),
            play_sequence=[PlayRecord.from_dict(r) for r in data.get("playSequence", [])],
            pending_selection=Selection.from_dict(selection) if selection else None,
            events=[GameEvent.from_dict(e) for e in data.get("events", [])],
            next_event_id=int(data.get("nextEventId", 1)),
            neutralization_history=[
                NeutralizationRecord.from_dict(n) for n in data.get("neutralizationHistory", [])
            ],
            sp_passed=list(data.get("spPassed", [])),
            last_battle=deepcopy(data.get("lastBattle")),
            winner=data.get("winner"),
            fatal_error=data.get("fatalError"),
            seed=seed,
            rng=_rng_from_json(seed, data.get("rngState")),
            created_at=int(data.get("createdAt", 0)),
        )
