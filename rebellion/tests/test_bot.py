"""
Tests for the forwarding bot.

Tests:
- Queued actions are applied in order
- A rejection stops the run and keeps the rest of the queue
"""

import pytest

from ..bots import ForwardingBot
from ..engine_core import events
from ..engine_core.action import Action, ErrorKind
from ..engine_core.state import Phase


class TestForwardingBot:
    """Tests for ForwardingBot."""

    def test_rejects_other_seats_actions(self):
        bot = ForwardingBot(player_id="p1")
        with pytest.raises(ValueError):
            bot.push(Action.pass_sp("p2"))

    def test_empty_queue_has_no_decision(self, match_factory):
        assert ForwardingBot(player_id="p1").select_action(match_factory()) is None

    def test_runs_queue(self, reducer, match_factory):
        state = match_factory(p1_hand=["c-1", "c-2"], p2_hand=["c-6"], ack=False)
        event = events.pending_ack(state, events.DRAW_PHASE_COMPLETE, "p1")

        bot = ForwardingBot(player_id="p1")
        bot.extend([Action.acknowledge("p1", [event.event_id]), Action.play_card("p1", 0, 1)])
        state, results = bot.run(reducer, state)

        assert [r.success for r in results] == [True, True]
        assert state.zones["p1"].left[0].card_id == "c-1"
        assert state.current_player == "p2"
        assert state.phase == Phase.DRAW_PHASE

    def test_stops_on_rejection(self, reducer, match_factory):
        state = match_factory(p1_hand=["c-1", "c-2"], p2_hand=["c-6"])
        bot = ForwardingBot(player_id="p1")
        bot.push(Action.play_card("p1", 0, 1), Action.play_card("p1", 0, 0), Action.pass_sp("p1"))

        state, results = bot.run(reducer, state)

        assert [r.success for r in results] == [True, False]
        assert results[-1].error_code == ErrorKind.NOT_YOUR_TURN
        assert len(bot.queue) == 1
