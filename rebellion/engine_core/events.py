"""
Event Bus - Short-lived, numbered notifications for the presenter.

Events are appended to MatchState.events with a monotonic id. They never
carry logical state: expiring or purging an event changes nothing about
the match except what the presenter can still animate.

Purge policy:
- acknowledged and expired -> purged
- not requiring acknowledgement and expired -> purged
- requiring acknowledgement and not yet acknowledged -> kept
"""

from __future__ import annotations
from typing import Any, Iterable
import logging
import time

from .state import GameEvent, MatchState
from .action import ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 3000

# Event types
GAME_STARTED = "GAME_STARTED"
INITIAL_HAND_DEALT = "INITIAL_HAND_DEALT"
PLAYER_READY = "PLAYER_READY"
HAND_REDRAWN = "HAND_REDRAWN"
CARD_PLAYED = "CARD_PLAYED"
ZONE_FILLED = "ZONE_FILLED"
CARD_EFFECT_TRIGGERED = "CARD_EFFECT_TRIGGERED"
CARD_SELECTION_REQUIRED = "CARD_SELECTION_REQUIRED"
CARD_SELECTION_COMPLETED = "CARD_SELECTION_COMPLETED"
CARD_MOVED_TO_HAND = "CARD_MOVED_TO_HAND"
CARD_MOVED_TO_SP_ZONE = "CARD_MOVED_TO_SP_ZONE"
CARD_MOVED_TO_HELP_ZONE = "CARD_MOVED_TO_HELP_ZONE"
CARD_DISCARDED = "CARD_DISCARDED"
CARDS_DRAWN = "CARDS_DRAWN"
ALL_MAIN_ZONES_FILLED = "ALL_MAIN_ZONES_FILLED"
ALL_SP_ZONES_FILLED = "ALL_SP_ZONES_FILLED"
PHASE_CHANGE = "PHASE_CHANGE"
TURN_SWITCH = "TURN_SWITCH"
TURN_SKIPPED = "TURN_SKIPPED"
DRAW_PHASE_COMPLETE = "DRAW_PHASE_COMPLETE"
SP_CARDS_REVEALED = "SP_CARDS_REVEALED"
BATTLE_RESULT = "BATTLE_RESULT"
LEADER_CHANGED = "LEADER_CHANGED"
GAME_END = "GAME_END"


def now_ms() -> int:
    """Wall clock in milliseconds."""
    return int(time.time() * 1000)


def emit(
    state: MatchState,
    event_type: str,
    data: dict[str, Any] | None = None,
    *,
    now: int,
    requires_ack: bool = False,
    ttl_ms: int = DEFAULT_TTL_MS,
) -> GameEvent:
    """Append an event and return it."""
    payload = dict(data or {})
    if requires_ack:
        payload.setdefault("requiresAcknowledgment", True)
    event = GameEvent(
        event_id=state.next_event_id,
        type=event_type,
        data=payload,
        created_at=now,
        expires_at=now + ttl_ms,
        requires_ack=requires_ack,
    )
    state.next_event_id += 1
    state.events.append(event)
    logger.debug("game %s event #%d %s", state.game_id, event.event_id, event_type)
    return event


def emit_error(
    state: MatchState,
    kind: ErrorKind,
    message: str,
    *,
    player_id: str | None,
    now: int,
    ttl_ms: int = DEFAULT_TTL_MS,
) -> GameEvent:
    """Push an ERROR_<kind> event describing a rejected action."""
    return emit(
        state,
        f"ERROR_{kind.value}",
        {"errorType": kind.value, "message": message, "playerId": player_id},
        now=now,
        ttl_ms=ttl_ms,
    )


def acknowledge(state: MatchState, event_ids: Iterable[int], player_id: str | None = None) -> list[GameEvent]:
    """
    Mark events acknowledged. Unknown ids are ignored.

    An event that requires acknowledgement and names a player can only be
    acknowledged by that player.
    """
    wanted = set(event_ids)
    acked = []
    for event in state.events:
        addressee = event.data.get("playerId")
        if event.requires_ack and player_id is not None and addressee not in (None, player_id):
            continue
        if event.event_id in wanted and not event.acknowledged:
            event.acknowledged = True
            acked.append(event)
    return acked


def is_purgeable(event: GameEvent, now: int) -> bool:
    expired = now >= event.expires_at
    if not expired:
        return False
    return event.acknowledged or not event.requires_ack


def purge(state: MatchState, now: int) -> int:
    """Drop purgeable events; returns how many were removed."""
    before = len(state.events)
    state.events = [e for e in state.events if not is_purgeable(e, now)]
    return before - len(state.events)


def visible_events(state: MatchState, now: int) -> list[GameEvent]:
    """
    Events the presenter should still see.

    Unacknowledged events that require acknowledgement stay visible past
    their expiry, otherwise the gate they guard could never be opened.
    """
    return [
        e for e in state.events
        if not e.acknowledged and (e.requires_ack or now < e.expires_at)
    ]


def pending_ack(state: MatchState, event_type: str, player_id: str) -> GameEvent | None:
    """Newest unacknowledged event of a type addressed to a player."""
    for event in reversed(state.events):
        if (
            event.type == event_type
            and event.requires_ack
            and not event.acknowledged
            and event.data.get("playerId") == player_id
        ):
            return event
    return None
