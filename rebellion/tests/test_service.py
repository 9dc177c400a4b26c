"""
Tests for the API service layer.

Tests:
- Starting games, rooms and joining
- Running actions and reading projections
- Error responses for unknown games and players
- The state injection hook and fatal errors
"""

import pytest

from ..api.schemas import (
    AcknowledgeEventsRequest,
    InjectGameStateRequest,
    JoinRoomRequest,
    PlayAction,
    PlayActionType,
    PlayerActionRequest,
    StartGameRequest,
    StartReadyRequest,
)
from ..api.service import GAME_EXISTS, INVALID_GAME_STATE, TEST_ROUTES_DISABLED, APIService
from ..config import Settings
from ..engine_core.state import MatchState
from .helpers import start_match


@pytest.fixture
def service():
    return APIService(settings=Settings(force_first_player=0))


def _ready_both(service, game_id):
    service.start_ready(StartReadyRequest(game_id=game_id, player_id="p1"))
    return service.start_ready(StartReadyRequest(game_id=game_id, player_id="p2"))


def _draw_event_id(response, player_id):
    for event in response["gameEnv"]["events"]:
        if event["type"] == "DRAW_PHASE_COMPLETE" and event["data"]["playerId"] == player_id:
            return event["id"]
    raise AssertionError(f"no DRAW_PHASE_COMPLETE for {player_id}")


class TestLobby:
    """Tests for starting and joining games."""

    def test_start_game(self, service):
        response = service.start_game(StartGameRequest(player_ids=["p1", "p2"], game_id="g1"))

        assert response["success"]
        assert response["gameId"] == "g1"
        env = response["gameEnv"]
        assert env["phase"] == "START_REDRAW"
        assert env["viewerId"] == "p1"
        assert "g1" in service.list_games()

    def test_generated_game_id(self, service):
        response = service.start_game(StartGameRequest(player_ids=["p1", "p2"]))
        assert response["success"]
        assert response["gameId"]

    def test_duplicate_game(self, service):
        service.start_game(StartGameRequest(player_ids=["p1", "p2"], game_id="g1"))
        response = service.start_game(StartGameRequest(player_ids=["p1", "p2"], game_id="g1"))
        assert not response["success"]
        assert response["error"] == GAME_EXISTS

    def test_unknown_deck_name(self, service):
        request = StartGameRequest(player_ids=["p1", "p2"], deck_names=["patriots", "nope"], game_id="g1")
        response = service.start_game(request)
        assert response["error"] == "INVALID_DECK"

    def test_room_and_join(self, service):
        service.start_game(StartGameRequest(player_ids=["p1"], game_id="room"))
        early = service.start_ready(StartReadyRequest(game_id="room", player_id="p1"))
        assert early["error"] == "GAME_NOT_STARTED"

        response = service.join_room(JoinRoomRequest(game_id="room", player_id="p2"))
        assert response["success"]
        p2 = next(p for p in response["gameEnv"]["players"] if p["playerId"] == "p2")
        assert p2["leaderList"] == ["s-2", "s-3", "s-6"]

    def test_join_unknown_room(self, service):
        response = service.join_room(JoinRoomRequest(game_id="nope", player_id="p2"))
        assert response["error"] == "GAME_NOT_FOUND"


class TestActions:
    """Tests for running actions through the service."""

    @pytest.fixture
    def started(self, service):
        service.start_game(StartGameRequest(player_ids=["p1", "p2"], game_id="g1"))
        return _ready_both(service, "g1")

    def test_match_begins_after_both_ready(self, started):
        env = started["gameEnv"]
        assert env["phase"] == "DRAW_PHASE"
        assert env["currentPlayer"] == "p1"

    def test_face_down_play_is_hidden(self, service, started):
        event_id = _draw_event_id(service.get_player("g1", "p1"), "p1")
        ack = service.acknowledge_events(AcknowledgeEventsRequest(game_id="g1", player_id="p1", event_ids=[event_id]))
        assert ack["gameEnv"]["phase"] == "MAIN_PHASE"

        action = PlayAction(type=PlayActionType.PLAY_CARD_BACK, card_index=0, field_index=0)
        response = service.player_action(PlayerActionRequest(game_id="g1", player_id="p1", action=action))
        assert response["success"]

        seen_by_p2 = service.get_player("g1", "p2")["gameEnv"]
        assert seen_by_p2["zones"]["p1"]["top"] == [{"faceDown": True}]

    def test_rule_error_returns_projection(self, service, started):
        action = PlayAction(type=PlayActionType.PLAY_CARD, card_index=0, field_index=0)
        response = service.player_action(PlayerActionRequest(game_id="g1", player_id="p2", action=action))

        assert not response["success"]
        assert response["error"] == "NOT_YOUR_TURN"
        assert response["gameEnv"]["viewerId"] == "p2"

    def test_unknown_game_and_player(self, service, started):
        assert service.get_player("nope", "p1")["error"] == "GAME_NOT_FOUND"
        assert service.get_player("g1", "p9")["error"] == "PLAYER_NOT_FOUND"
        request = PlayerActionRequest(game_id="g1", player_id="p9", action=PlayAction(type=PlayActionType.PASS_SP))
        assert service.player_action(request)["error"] == "PLAYER_NOT_FOUND"


class TestInjection:
    """Tests for the state injection hook."""

    def _document(self, service, **hands):
        return start_match(service.reducer, game_id="inj", **hands).to_dict()

    def test_disabled_outside_tests(self):
        service = APIService(settings=Settings(enable_test_routes=False))
        response = service.inject_game_state(InjectGameStateRequest(game_id="g1", game_env={}))
        assert response["error"] == TEST_ROUTES_DISABLED

    def test_bad_document(self, service):
        request = InjectGameStateRequest(game_id="g1", game_env={"phase": "NOT_A_PHASE"})
        assert service.inject_game_state(request)["error"] == INVALID_GAME_STATE

    def test_inject_and_continue(self, service):
        document = self._document(service, p1_hand=["c-1"], p2_hand=["c-6"])
        response = service.inject_game_state(InjectGameStateRequest(game_id="inj", game_env=document))
        assert response["success"]
        assert response["gameEnv"]["phase"] == "MAIN_PHASE"

        action = PlayAction(type=PlayActionType.PLAY_CARD, card_index=0, field_index=1)
        played = service.player_action(PlayerActionRequest(game_id="inj", player_id="p1", action=action))
        assert played["success"]
        assert played["gameEnv"]["zones"]["p1"]["left"][0]["cardId"] == "c-1"

    def test_game_created_meanwhile_conflicts(self, service, monkeypatch):
        document = self._document(service, p1_hand=["c-1"], p2_hand=["c-6"])
        add = service.session_manager.add

        def add_after_other_request(match):
            add(MatchState.from_dict(document))
            return add(match)

        monkeypatch.setattr(service.session_manager, "add", add_after_other_request)
        response = service.inject_game_state(InjectGameStateRequest(game_id="inj", game_env=document))

        assert response["success"] is False
        assert response["error"] == GAME_EXISTS
        assert service.list_games() == ["inj"]

    def test_fatal_error_ends_match(self, service):
        document = self._document(service, p1_hand=["c-1"], p2_hand=["c-6"])
        document["players"][0]["hand"] = ["zz-1"]
        service.inject_game_state(InjectGameStateRequest(game_id="inj", game_env=document))

        action = PlayAction(type=PlayActionType.PLAY_CARD, card_index=0, field_index=0)
        response = service.player_action(PlayerActionRequest(game_id="inj", player_id="p1", action=action))

        assert response["error"] == "CATALOG_CORRUPT"
        assert response["gameEnv"]["phase"] == "GAME_END"
        assert response["gameEnv"]["fatalError"] == "CATALOG_CORRUPT"
        assert "inj" not in service.list_games()


class TestHousekeeping:
    """Tests for ending games and health."""

    def test_end_game(self, service):
        service.start_game(StartGameRequest(player_ids=["p1", "p2"], game_id="g1"))
        assert service.end_game("g1")
        assert not service.end_game("g1")
        assert service.get_player("g1", "p1")["error"] == "GAME_NOT_FOUND"

    def test_health(self, service):
        service.start_game(StartGameRequest(player_ids=["p1", "p2"], game_id="g1"))
        health = service.health()
        assert health["status"] == "healthy"
        assert health["service"] == "rebellion"
        assert health["activeGames"] == 1
