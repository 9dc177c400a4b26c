"""
Action System - Actions, error kinds, and results.

Actions represent:
1. Card placements (face-up and face-down)
2. Interactive responses (card selection, event acknowledgement)
3. Lobby steps (opening-hand redraw, SP pass, next round)

All state changes flow through actions and the reducer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(Enum):
    """Types of actions in the system."""
    PLAY_CARD = "PlayCard"
    PLAY_CARD_BACK = "PlayCardBack"
    SELECT_CARD = "SelectCard"
    ACKNOWLEDGE_EVENTS = "AcknowledgeEvents"
    START_READY = "StartReady"
    PASS_SP = "PassSp"
    NEXT_ROUND = "NextRound"


class ErrorKind(str, Enum):
    """Error kinds surfaced in responses and ERROR_* events."""
    # Input shape
    INVALID_POSITION = "INVALID_POSITION"
    INVALID_CARD_INDEX = "INVALID_CARD_INDEX"
    CARD_NOT_FOUND = "CARD_NOT_FOUND"

    # Placement rules
    ZONE_COMPATIBILITY_ERROR = "ZONE_COMPATIBILITY_ERROR"
    FIELD_EFFECT_RESTRICTION = "FIELD_EFFECT_RESTRICTION"
    CARD_TYPE_ZONE_ERROR = "CARD_TYPE_ZONE_ERROR"
    ZONE_OCCUPIED_ERROR = "ZONE_OCCUPIED_ERROR"
    PHASE_RESTRICTION_ERROR = "PHASE_RESTRICTION_ERROR"
    SP_PHASE_RESTRICTION = "SP_PHASE_RESTRICTION"
    PREVENT_PLAY = "PREVENT_PLAY"

    # Blocked by a pending selection
    GAME_BLOCKED = "GAME_BLOCKED"
    CARD_SELECTION_PENDING = "CARD_SELECTION_PENDING"
    WAITING_FOR_PLAYER = "WAITING_FOR_PLAYER"

    INVALID_SELECTION = "INVALID_SELECTION"
    INVALID_PHASE_FOR_ACTION = "INVALID_PHASE_FOR_ACTION"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    INVALID_DECK = "INVALID_DECK"

    # Lookup (service level)
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    GAME_NOT_STARTED = "GAME_NOT_STARTED"

    # Fatal
    CATALOG_CORRUPT = "CATALOG_CORRUPT"
    SEQUENCE_INTEGRITY_BROKEN = "SEQUENCE_INTEGRITY_BROKEN"


FATAL_ERRORS = {ErrorKind.CATALOG_CORRUPT, ErrorKind.SEQUENCE_INTEGRITY_BROKEN}


class EngineError(Exception):
    """Base class for fatal engine failures."""
    kind: ErrorKind = ErrorKind.SEQUENCE_INTEGRITY_BROKEN
    # Inspectable match snapshot attached by the reducer before re-raising
    state: Any = None


class CardNotFound(EngineError):
    """A card id is missing from the catalog. Always corrupt data."""
    kind = ErrorKind.CATALOG_CORRUPT

    def __init__(self, card_id: str):
        super().__init__(f"Card {card_id!r} is not in the catalog")
        self.card_id = card_id


class SequenceIntegrityError(EngineError):
    """The play sequence is out of order or references impossible state."""
    kind = ErrorKind.SEQUENCE_INTEGRITY_BROKEN


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types use different fields; validation happens
    in the reducer.
    """
    card_index: int | None = None
    field_index: int | None = None
    selection_id: str | None = None
    selected_card_ids: list[str] | None = None
    event_ids: list[int] | None = None
    redraw: bool = False


@dataclass
class Action:
    """A complete action submitted by one player."""
    action_type: ActionType
    player_id: str
    payload: ActionPayload = field(default_factory=ActionPayload)

    @classmethod
    def play_card(cls, player_id: str, card_index: int, field_index: int) -> Action:
        """Factory for a face-up placement."""
        return cls(
            action_type=ActionType.PLAY_CARD,
            player_id=player_id,
            payload=ActionPayload(card_index=card_index, field_index=field_index),
        )

    @classmethod
    def play_card_back(cls, player_id: str, card_index: int, field_index: int) -> Action:
        """Factory for a face-down placement."""
        return cls(
            action_type=ActionType.PLAY_CARD_BACK,
            player_id=player_id,
            payload=ActionPayload(card_index=card_index, field_index=field_index),
        )

    @classmethod
    def select_card(cls, player_id: str, selection_id: str, selected_card_ids: list[str]) -> Action:
        return cls(
            action_type=ActionType.SELECT_CARD,
            player_id=player_id,
            payload=ActionPayload(selection_id=selection_id, selected_card_ids=list(selected_card_ids)),
        )

    @classmethod
    def acknowledge(cls, player_id: str, event_ids: list[int]) -> Action:
        return cls(
            action_type=ActionType.ACKNOWLEDGE_EVENTS,
            player_id=player_id,
            payload=ActionPayload(event_ids=list(event_ids)),
        )

    @classmethod
    def start_ready(cls, player_id: str, redraw: bool = False) -> Action:
        return cls(
            action_type=ActionType.START_READY,
            player_id=player_id,
            payload=ActionPayload(redraw=redraw),
        )

    @classmethod
    def pass_sp(cls, player_id: str) -> Action:
        return cls(action_type=ActionType.PASS_SP, player_id=player_id)

    @classmethod
    def next_round(cls, player_id: str) -> Action:
        return cls(action_type=ActionType.NEXT_ROUND, player_id=player_id)

    @classmethod
    def from_dict(cls, player_id: str, data: dict[str, Any]) -> Action:
        """Build an action from the transport shape {"type": ..., ...}."""
        action_type = ActionType(data["type"])
        return cls(
            action_type=action_type,
            player_id=player_id,
            payload=ActionPayload(
                card_index=data.get("cardIndex"),
                field_index=data.get("fieldIndex"),
                selection_id=data.get("selectionId"),
                selected_card_ids=data.get("selectedCardIds"),
                event_ids=data.get("eventIds"),
                redraw=bool(data.get("redraw", False)),
            ),
        )


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - The state to keep (the new state, or the original plus an error event)
    - The error kind on failure
    - Human-readable changes for logs and UI
    """
    success: bool
    new_state: Any | None = None  # MatchState
    error: str | None = None
    error_code: ErrorKind | None = None

    state_changes: list[str] = field(default_factory=list)
    pending_selection: Any | None = None  # Selection created by this action

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: ErrorKind | None = None,
        state: Any | None = None,
    ) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, new_state=state, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
            pending_selection=getattr(state, "pending_selection", None),
        )
