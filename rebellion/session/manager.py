"""
Session Manager - In-memory store of running matches.

LIFECYCLE:
1. startGame creates a session holding a fresh MatchState (one or two seats)
2. joinRoom fills the second seat of a room
3. Every action runs under the session lock, so actions on one match are
   totally ordered while distinct matches proceed independently
4. GAME_END (or an explicit end) destroys the session

PERSISTENCE RULES:
- No database: sessions live in process memory only
- A host that wants persistence snapshots MatchState.to_dict(); reloading
  and re-simulating reproduces identical field effects
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator
import logging
import threading
import time
import uuid

from ..engine_core.state import MatchState

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a match session."""
    WAITING = "waiting"  # Room open, one seat filled
    ACTIVE = "active"  # Both seats filled
    GAME_OVER = "game_over"  # Match concluded
    ABANDONED = "abandoned"  # Torn down before the end


@dataclass
class Session:
    """
    One running match.

    Holds the canonical MatchState plus a lock serialising every action
    on it. The session is removed when the match is ended.
    """
    session_id: str
    match: MatchState
    created_at: float
    state: SessionState = SessionState.WAITING
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def game_id(self) -> str:
        return self.session_id

    def is_active(self) -> bool:
        """Check if the session still accepts actions."""
        return self.state in {SessionState.WAITING, SessionState.ACTIVE}

    def has_player(self, player_id: str) -> bool:
        return self.match.get_player(player_id) is not None

    def replace(self, match: MatchState) -> None:
        """Swap in the state produced by the last action."""
        self.match = match
        if match.is_over:
            self.state = SessionState.GAME_OVER
        elif len(match.players) == 2:
            self.state = SessionState.ACTIVE
        else:
            self.state = SessionState.WAITING


class SessionManager:
    """
    Manages match sessions.

    Responsibilities:
    - Create sessions with fresh match ids
    - Serialise actions per match (Session.lock)
    - Clean up finished sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._guard = threading.Lock()

    @staticmethod
    def new_game_id() -> str:
        return str(uuid.uuid4())

    def add(self, match: MatchState) -> Session:
        """Register a freshly created match."""
        session = Session(session_id=match.game_id, match=match, created_at=time.time())
        session.replace(match)
        with self._guard:
            if match.game_id in self._sessions:
                raise ValueError(f"Game {match.game_id} already exists")
            self._sessions[match.game_id] = session
        logger.info("session %s opened (%s)", session.session_id, session.state.value)
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        with self._guard:
            return self._sessions.get(session_id)

    @contextmanager
    def locked(self, session_id: str) -> Iterator[Session | None]:
        """Hold a session's lock for the duration of one action."""
        session = self.get_session(session_id)
        if session is None:
            yield None
            return
        with session.lock:
            yield session

    def end_session(self, session_id: str, reason: str = "completed") -> None:
        """
        End a session and drop its state.

        Called when the match is over, abandoned, or torn down by the host.
        """
        with self._guard:
            session = self._sessions.pop(session_id, None)
        if session:
            session.state = SessionState.GAME_OVER if reason == "completed" else SessionState.ABANDONED
            logger.info("session %s ended (%s)", session_id, reason)

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        with self._guard:
            return [sid for sid, session in self._sessions.items() if session.is_active()]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """
        Remove finished sessions older than max_age.

        Called periodically by the host to free memory.
        """
        current_time = time.time()
        with self._guard:
            stale = [
                sid for sid, session in self._sessions.items()
                if current_time - session.created_at > max_age_seconds and not session.is_active()
            ]
        for session_id in stale:
            self.end_session(session_id, reason="stale")
        return len(stale)
