"""
Session Module - In-memory store of running matches.

A session represents one match:
- Created by startGame (or opened as a room and joined later)
- Holds the canonical MatchState
- Serialises actions through a per-match lock
- Destroyed when the match is ended

Sessions are EPHEMERAL: nothing is written to a database. Hosts that need
persistence snapshot MatchState.to_dict().
"""

from .manager import SessionManager, Session, SessionState

__all__ = [
    "SessionManager",
    "Session",
    "SessionState",
]
