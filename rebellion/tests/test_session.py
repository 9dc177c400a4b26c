"""
Tests for session management and settings.

Tests:
- Session lifecycle states
- Locked access and cleanup
- Environment-driven settings
"""

import pytest

from ..config import load_settings
from ..engine_core.state import MatchState, Phase, PlayerState
from ..session import SessionManager, SessionState


def _match(game_id="g1", seats=2, phase=Phase.START_REDRAW):
    players = [PlayerState(player_id=f"p{i + 1}") for i in range(seats)]
    return MatchState(game_id=game_id, players=players, phase=phase)


class TestSessionManager:
    """Tests for SessionManager."""

    def test_states_follow_the_match(self):
        manager = SessionManager()
        session = manager.add(_match(seats=1))
        assert session.state == SessionState.WAITING

        session.replace(_match())
        assert session.state == SessionState.ACTIVE
        session.replace(_match(phase=Phase.GAME_END))
        assert session.state == SessionState.GAME_OVER
        assert manager.list_active_sessions() == []

    def test_duplicate_id(self):
        manager = SessionManager()
        manager.add(_match())
        with pytest.raises(ValueError):
            manager.add(_match())

    def test_locked_missing_session(self):
        with SessionManager().locked("nope") as session:
            assert session is None

    def test_end_session(self):
        manager = SessionManager()
        session = manager.add(_match())
        manager.end_session("g1", reason="user_ended")
        assert session.state == SessionState.ABANDONED
        assert manager.get_session("g1") is None

    def test_cleanup_only_finished_sessions(self):
        manager = SessionManager()
        manager.add(_match("live"))
        done = manager.add(_match("done", phase=Phase.GAME_END))
        done.created_at -= 7200
        manager.get_session("live").created_at -= 7200

        assert manager.cleanup_stale_sessions(max_age_seconds=3600) == 1
        assert manager.get_session("done") is None
        assert manager.get_session("live") is not None


class TestSettings:
    """Tests for load_settings."""

    def test_defaults(self, monkeypatch):
        for name in ("REBELLION_ENV", "REBELLION_FORCE_FIRST_PLAYER", "REBELLION_ENABLE_TEST_ROUTES",
                     "REBELLION_VICTORY_POINTS"):
            monkeypatch.delenv(name, raising=False)
        settings = load_settings()
        assert settings.force_first_player is None
        assert settings.enable_test_routes
        assert settings.victory_points_to_win == 50

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("REBELLION_ENV", "production")
        monkeypatch.setenv("REBELLION_FORCE_FIRST_PLAYER", "1")
        monkeypatch.setenv("REBELLION_AUTO_ADVANCE", "false")
        monkeypatch.setenv("REBELLION_VICTORY_POINTS", "120")
        settings = load_settings()

        assert settings.is_production
        assert not settings.enable_test_routes
        assert settings.force_first_player == 1
        assert not settings.auto_advance
        assert settings.victory_points_to_win == 120

    def test_bad_first_player(self, monkeypatch):
        monkeypatch.setenv("REBELLION_FORCE_FIRST_PLAYER", "2")
        with pytest.raises(ValueError):
            load_settings()
