"""
Tests for the event bus.

Tests:
- Monotonic ids and error events
- Acknowledgement rules
- Purge policy and visibility
"""

from ..engine_core import events
from ..engine_core.action import ErrorKind
from ..engine_core.state import MatchState


def _state():
    return MatchState(game_id="g-events")


class TestEmit:
    """Tests for appending events."""

    def test_ids_are_monotonic(self):
        state = _state()
        first = events.emit(state, events.CARD_PLAYED, {}, now=0)
        second = events.emit(state, events.ZONE_FILLED, {}, now=0)
        assert (first.event_id, second.event_id) == (1, 2)
        assert state.next_event_id == 3

    def test_ttl_sets_expiry(self):
        event = events.emit(_state(), events.CARD_PLAYED, {}, now=100, ttl_ms=50)
        assert event.expires_at == 150

    def test_error_event(self):
        state = _state()
        event = events.emit_error(state, ErrorKind.NOT_YOUR_TURN, "wait", player_id="p2", now=0)
        assert event.type == "ERROR_NOT_YOUR_TURN"
        assert event.data == {"errorType": "NOT_YOUR_TURN", "message": "wait", "playerId": "p2"}

    def test_requires_ack_is_marked_in_payload(self):
        event = events.emit(_state(), events.DRAW_PHASE_COMPLETE, {"playerId": "p1"}, now=0, requires_ack=True)
        assert event.data["requiresAcknowledgment"] is True


class TestAcknowledge:
    """Tests for acknowledgement."""

    def test_only_addressee_can_acknowledge(self):
        state = _state()
        event = events.emit(state, events.DRAW_PHASE_COMPLETE, {"playerId": "p1"}, now=0, requires_ack=True)

        assert events.acknowledge(state, [event.event_id], player_id="p2") == []
        assert not event.acknowledged
        assert events.acknowledge(state, [event.event_id], player_id="p1") == [event]
        assert event.acknowledged

    def test_unknown_ids_are_ignored(self):
        state = _state()
        events.emit(state, events.CARD_PLAYED, {}, now=0)
        assert events.acknowledge(state, [99], player_id="p1") == []

    def test_pending_ack_finds_newest(self):
        state = _state()
        events.emit(state, events.DRAW_PHASE_COMPLETE, {"playerId": "p1"}, now=0, requires_ack=True)
        newest = events.emit(state, events.DRAW_PHASE_COMPLETE, {"playerId": "p1"}, now=1, requires_ack=True)
        assert events.pending_ack(state, events.DRAW_PHASE_COMPLETE, "p1") is newest
        assert events.pending_ack(state, events.DRAW_PHASE_COMPLETE, "p2") is None


class TestPurge:
    """Tests for expiry and purging."""

    def test_purge_policy(self):
        state = _state()
        plain = events.emit(state, events.CARD_PLAYED, {}, now=0, ttl_ms=10)
        gated = events.emit(state, events.DRAW_PHASE_COMPLETE, {"playerId": "p1"}, now=0,
                            ttl_ms=10, requires_ack=True)
        fresh = events.emit(state, events.ZONE_FILLED, {}, now=0, ttl_ms=1000)

        assert events.purge(state, now=20) == 1
        assert state.events == [gated, fresh]
        assert plain not in state.events

        events.acknowledge(state, [gated.event_id], player_id="p1")
        assert events.purge(state, now=20) == 1
        assert state.events == [fresh]

    def test_nothing_purged_before_expiry(self):
        state = _state()
        events.emit(state, events.CARD_PLAYED, {}, now=0, ttl_ms=10)
        assert events.purge(state, now=9) == 0

    def test_visible_events(self):
        state = _state()
        expired = events.emit(state, events.CARD_PLAYED, {}, now=0, ttl_ms=10)
        gated = events.emit(state, events.DRAW_PHASE_COMPLETE, {"playerId": "p1"}, now=0,
                            ttl_ms=10, requires_ack=True)
        visible = events.visible_events(state, now=50)
        assert gated in visible
        assert expired not in visible
