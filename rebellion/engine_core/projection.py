"""
Projection - The per-player view of a match.

project() is the only way match state leaves the engine for a player:
- The opponent's hand and every main deck are reduced to counts
- The opponent's face-down cards show only {"faceDown": true}
- Cards discarded face-down after a battle stay scrubbed in the discard pile
- Card ids the viewer may not know are scrubbed from the play sequence,
  events and the pending selection
- Only events that are still visible are included
- Seed and RNG position are never exposed
"""

from __future__ import annotations
from typing import Any

from .events import now_ms, visible_events
from .state import MatchState

HIDDEN = None


def hidden_card_ids(state: MatchState, viewer_id: str) -> set[str]:
    """Card ids the viewer is not allowed to see."""
    hidden: set[str] = set()
    for player in state.players:
        hidden.update(player.main_deck)
        if player.player_id == viewer_id:
            continue
        hidden.update(player.hand)
        hidden.update(player.hidden_discards)
        zones = state.zones.get(player.player_id)
        if zones is not None:
            hidden.update(fc.card_id for _, fc in zones.all_cards() if fc.face_down)
    return hidden


def _scrub(value: Any, hidden: set[str]) -> Any:
    if isinstance(value, str):
        return HIDDEN if value in hidden else value
    if isinstance(value, list):
        return [_scrub(v, hidden) for v in value]
    if isinstance(value, dict):
        return {k: _scrub(v, hidden) for k, v in value.items()}
    return value


def project(state: MatchState, viewer_id: str, now: int | None = None) -> dict[str, Any]:
    """Build the scrubbed gameEnv document for one player."""
    now = now_ms() if now is None else now
    data = state.to_dict()
    data.pop("rngState", None)
    data.pop("seed", None)
    hidden = hidden_card_ids(state, viewer_id)

    players = []
    for raw in data["players"]:
        own = raw["playerId"] == viewer_id
        raw["mainDeckCount"] = len(raw.pop("mainDeck"))
        if not own:
            raw["handCount"] = len(raw.pop("hand"))
            raw.pop("hiddenDiscards")
            raw["discardPile"] = _scrub(raw["discardPile"], hidden)
            powers = raw["fieldEffects"]["calculatedPowers"]
            raw["fieldEffects"]["calculatedPowers"] = {k: v for k, v in powers.items() if k not in hidden}
        raw["turnActions"] = _scrub(raw["turnActions"], hidden) if not own else raw["turnActions"]
        players.append(raw)
    data["players"] = players

    for pid, zones in data["zones"].items():
        if pid == viewer_id:
            continue
        for key, cards in zones.items():
            if key == "leader":
                continue
            zones[key] = [{"faceDown": True} if fc["faceDown"] else fc for fc in cards]

    data["playSequence"] = _scrub(data["playSequence"], hidden)
    data["events"] = [_scrub(e.to_dict(), hidden) for e in visible_events(state, now)]

    selection = data.get("pendingSelection")
    if selection is not None:
        if selection["playerId"] == viewer_id:
            data["pendingSelection"] = selection
        else:
            selection["eligibleCardIds"] = []
            selection["searchedCardIds"] = []
            data["pendingSelection"] = _scrub(selection, hidden)

    data["viewerId"] = viewer_id
    return data
