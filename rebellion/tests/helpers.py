"""
Shared helpers for driving matches in tests.
"""

from ..engine_core import events
from ..engine_core.action import Action, ActionResult
from ..engine_core.reducer import Reducer
from ..engine_core.state import ZONE_ORDER, MatchState, Phase

FIXED_NOW = 1_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = FIXED_NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def start_match(
    reducer: Reducer,
    p1_leaders=("s-1",),
    p2_leaders=("s-4",),
    p1_hand=(),
    p2_hand=(),
    p1_deck=(),
    p2_deck=(),
    game_id: str = "g-test",
    ack: bool = True,
) -> MatchState:
    """
    Create a match, replace the dealt hands with fixed ones, and ready both seats.

    Decks list the top card first. With ack=True the first player's
    DRAW_PHASE_COMPLETE is acknowledged, so the match sits in MAIN_PHASE.
    """
    decks = [
        {"leaders": list(p1_leaders), "cards": list(p1_hand) + list(p1_deck)},
        {"leaders": list(p2_leaders), "cards": list(p2_hand) + list(p2_deck)},
    ]
    state = reducer.create_match(game_id, ["p1", "p2"], decks)
    for pid, hand, deck in (("p1", p1_hand, p1_deck), ("p2", p2_hand, p2_deck)):
        player = state.require_player(pid)
        player.hand = list(hand)
        player.main_deck = list(deck)
    for pid in ("p1", "p2"):
        state = must(reducer.apply(state, Action.start_ready(pid)))
    if ack:
        state = ack_draw(reducer, state, state.current_player)
    return state


def must(result: ActionResult) -> MatchState:
    """Unwrap a successful result."""
    assert result.success, f"{result.error_code}: {result.error}"
    return result.new_state


def ack_draw(reducer: Reducer, state: MatchState, player_id: str) -> MatchState:
    event = events.pending_ack(state, events.DRAW_PHASE_COMPLETE, player_id)
    assert event is not None, f"no DRAW_PHASE_COMPLETE pending for {player_id}"
    return must(reducer.apply(state, Action.acknowledge(player_id, [event.event_id])))


def play(reducer: Reducer, state: MatchState, player_id: str, card_id: str, zone: str,
         face_down: bool = False) -> ActionResult:
    """Submit a placement of a hand card by id."""
    index = state.require_player(player_id).hand.index(card_id)
    factory = Action.play_card_back if face_down else Action.play_card
    return reducer.apply(state, factory(player_id, index, ZONE_ORDER.index(zone)))


def take_turn(reducer: Reducer, state: MatchState, player_id: str, card_id: str, zone: str,
              face_down: bool = False) -> MatchState:
    """Acknowledge the draw phase if needed, then place a card."""
    assert state.current_player == player_id
    if state.phase == Phase.DRAW_PHASE:
        state = ack_draw(reducer, state, player_id)
    return must(play(reducer, state, player_id, card_id, zone, face_down))


def total_cards(state: MatchState) -> int:
    """Every physical card in the match, wherever it is."""
    count = 0
    for player in state.players:
        count += len(player.hand) + len(player.main_deck) + len(player.discard_pile) + len(player.leader_list)
    for zones in state.zones.values():
        count += len(zones.all_cards())
    return count


def effects_by_source(state: MatchState, source: str):
    return [e for p in state.players for e in p.field_effects.active_effects if e.source == source]
