"""
API Module - Game client interface.

Exposes the engine via REST API. The client:
1. Starts a match (or opens a room and lets a second player join)
2. Keeps or redraws the opening hand
3. Plays cards, completes selections and acknowledges events
4. Reads its own scrubbed view of the match after every call

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    StartGameRequest,
    JoinRoomRequest,
    StartReadyRequest,
    PlayerActionRequest,
    SelectCardRequest,
    AcknowledgeEventsRequest,
    NextRoundRequest,
    InjectGameStateRequest,
    # Responses
    GameResponse,
    ErrorResponse,
    HealthResponse,
    # Shared
    DeckModel,
    PlayAction,
    PlayActionType,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "StartGameRequest",
    "JoinRoomRequest",
    "StartReadyRequest",
    "PlayerActionRequest",
    "SelectCardRequest",
    "AcknowledgeEventsRequest",
    "NextRoundRequest",
    "InjectGameStateRequest",
    # Responses
    "GameResponse",
    "ErrorResponse",
    "HealthResponse",
    # Shared
    "DeckModel",
    "PlayAction",
    "PlayActionType",
    # Service
    "APIService",
    "create_app",
]
