"""
Tests for the HTTP layer.

Tests:
- Routes answer with camelCase GameResponse bodies
- Lookup, conflict, test-route and fatal errors map to HTTP status codes
- Rule errors stay 200 with success=false
- Request validation
"""

import pytest
from fastapi.testclient import TestClient

from ..api.app import create_app
from ..api.service import APIService
from ..config import Settings
from .helpers import start_match


@pytest.fixture
def service():
    return APIService(settings=Settings(force_first_player=0))


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


def _start(client, game_id="g1"):
    return client.post("/api/v1/games", json={"playerIds": ["p1", "p2"], "gameId": game_id})


class TestLobbyRoutes:
    """Tests for starting and reading games."""

    def test_start_game(self, client):
        response = _start(client)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["gameId"] == "g1"
        assert body["gameEnv"]["phase"] == "START_REDRAW"

    def test_duplicate_game_conflicts(self, client):
        _start(client)
        response = _start(client)
        assert response.status_code == 409
        assert response.json()["error"] == "GAME_EXISTS"

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/v1/games", json={})
        assert response.status_code == 422

    def test_unknown_game(self, client):
        response = client.get("/api/v1/games/nope/players/p1")
        assert response.status_code == 404
        assert response.json()["error"] == "GAME_NOT_FOUND"

    def test_get_player(self, client):
        _start(client)
        response = client.get("/api/v1/games/g1/players/p2")
        assert response.status_code == 200
        assert response.json()["gameEnv"]["viewerId"] == "p2"

    def test_ready(self, client):
        _start(client)
        client.post("/api/v1/games/ready", json={"gameId": "g1", "playerId": "p1"})
        response = client.post("/api/v1/games/ready", json={"gameId": "g1", "playerId": "p2", "redraw": True})
        assert response.status_code == 200
        assert response.json()["gameEnv"]["phase"] == "DRAW_PHASE"


class TestGameRoutes:
    """Tests for action routes."""

    def test_rule_error_is_200(self, client):
        _start(client)
        response = client.post("/api/v1/games/action", json={
            "gameId": "g1",
            "playerId": "p1",
            "action": {"type": "PlayCard", "cardIndex": 0, "fieldIndex": 0},
        })
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "INVALID_PHASE_FOR_ACTION"

    def test_unknown_action_type(self, client):
        _start(client)
        response = client.post("/api/v1/games/action", json={
            "gameId": "g1", "playerId": "p1", "action": {"type": "Shuffle"},
        })
        assert response.status_code == 422

    def test_end_game(self, client):
        _start(client)
        assert client.delete("/api/v1/games/g1").status_code == 200
        assert client.delete("/api/v1/games/g1").status_code == 404


class TestTestRoutes:
    """Tests for the injection route."""

    def test_disabled(self):
        client = TestClient(create_app(APIService(settings=Settings(enable_test_routes=False))))
        response = client.post("/api/v1/test/inject-game-state", json={"gameId": "g1", "gameEnv": {}})
        assert response.status_code == 403

    def test_fatal_error_is_500(self, client, service):
        document = start_match(service.reducer, game_id="inj", p1_hand=["c-1"], p2_hand=["c-6"]).to_dict()
        document["players"][0]["hand"] = ["zz-1"]
        injected = client.post("/api/v1/test/inject-game-state", json={"gameId": "inj", "gameEnv": document})
        assert injected.status_code == 200

        response = client.post("/api/v1/games/action", json={
            "gameId": "inj",
            "playerId": "p1",
            "action": {"type": "PlayCard", "cardIndex": 0, "fieldIndex": 0},
        })
        assert response.status_code == 500
        assert response.json()["error"] == "CATALOG_CORRUPT"


class TestSystemRoutes:
    """Tests for health and root."""

    def test_health(self, client):
        _start(client)
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["activeGames"] == 1

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/health"
