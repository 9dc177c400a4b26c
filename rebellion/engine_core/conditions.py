"""
Rule Conditions - Evaluate "only while ..." clauses of card rules.

Conditions are evaluated against the live match (hands, fields, leaders)
from the point of view of the rule owner. Name checks are substring
matches over face-up cards. Unknown condition types are logged and
treated as unmet.
"""

from __future__ import annotations
from typing import Any, Callable, Iterable
import logging
import operator

from .catalog import CardCatalog
from .state import MatchState

logger = logging.getLogger(__name__)

_OPERATORS: dict[str, Callable[[int, int], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    "=": operator.eq,
    "==": operator.eq,
    ">": operator.gt,
    "<": operator.lt,
}


def _face_up_names(state: MatchState, catalog: CardCatalog, player_id: str,
                   characters_only: bool = False) -> list[str]:
    zones = state.zones.get(player_id)
    if zones is None:
        return []
    names = []
    for _, fc in zones.all_cards():
        if fc.face_down:
            continue
        card = catalog.get(fc.card_id)
        if characters_only and not card.is_character:
            continue
        names.append(card.name)
    return names


def _leader_name(state: MatchState, catalog: CardCatalog, player_id: str) -> str | None:
    zones = state.zones.get(player_id)
    if zones is None or zones.leader is None:
        return None
    return catalog.get(zones.leader).name


def _contains(names: Iterable[str], needle: str) -> bool:
    return any(needle in name for name in names)


def check_condition(cond: dict[str, Any], state: MatchState, catalog: CardCatalog, owner_id: str) -> bool:
    """Evaluate a single condition dict."""
    ctype = cond.get("type")
    value = cond.get("value")
    opponent_id = state.opponent_id(owner_id)

    if ctype == "or":
        return any(check_condition(c, state, catalog, owner_id) for c in cond.get("conditions", []))

    if ctype == "allyFieldContainsName":
        return _contains(_face_up_names(state, catalog, owner_id), str(value))
    if ctype == "opponentFieldContainsName":
        return _contains(_face_up_names(state, catalog, opponent_id), str(value))
    if ctype == "selfHasCharacterWithName":
        return _contains(_face_up_names(state, catalog, owner_id, characters_only=True), str(value))
    if ctype == "opponentHasCharacterWithName":
        return _contains(_face_up_names(state, catalog, opponent_id, characters_only=True), str(value))

    if ctype == "selfHasLeader":
        return _leader_name(state, catalog, owner_id) == value
    if ctype in ("opponentLeader", "opponentHasLeader"):
        return _leader_name(state, catalog, opponent_id) == value

    if ctype == "opponentHandCount":
        op = _OPERATORS.get(cond.get("operator", ">="))
        if op is None:
            logger.warning("Unknown operator %r in condition", cond.get("operator"))
            return False
        return op(len(state.require_player(opponent_id).hand), int(value))
    if ctype == "opponentHandCardCountMoreThan":
        return len(state.require_player(opponent_id).hand) > int(value)

    if ctype == "zoneEmpty":
        who = opponent_id if cond.get("owner") == "opponent" else owner_id
        return len(state.zones[who].get(cond.get("zone", "help"))) == 0

    logger.warning("Unknown condition type %r treated as unmet", ctype)
    return False


def conditions_met(conditions: Iterable[dict[str, Any]], state: MatchState,
                   catalog: CardCatalog, owner_id: str) -> bool:
    """All conditions must hold; an empty list always holds."""
    return all(check_condition(c, state, catalog, owner_id) for c in conditions)
