"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between the game client and the
engine. JSON field names are camelCase (gameId, selectedCardIds, gameEnv);
Python attributes stay snake_case.

Every game call answers with GameResponse: {success, gameEnv?, error?}.
Rule violations are 200 responses with success=false and error set to an
ErrorKind; unknown games or players are 404.

Error Codes (besides the rule ErrorKinds):
- GAME_NOT_FOUND: Match does not exist or has been removed
- PLAYER_NOT_FOUND: Player is not seated in the match
- GAME_NOT_STARTED: The room is still waiting for a second player
- INVALID_DECK: Submitted decks are malformed or share cards
- VALIDATION_ERROR: Request body failed validation
- INTERNAL_ERROR: Fatal engine error; the match has been ended
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting either spelling."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Enums
# =============================================================================

class PlayActionType(str, Enum):
    """Actions accepted by playerAction."""
    PLAY_CARD = "PlayCard"
    PLAY_CARD_BACK = "PlayCardBack"
    PASS_SP = "PassSp"


# =============================================================================
# Shared Models
# =============================================================================

class DeckModel(CamelModel):
    """A deck: ordered leaders plus the main deck card ids."""
    leaders: list[str] = Field(..., min_length=1, description="Leader card ids in battle order")
    cards: list[str] = Field(default_factory=list, description="Main deck card ids")


class PlayAction(CamelModel):
    """A placement or SP pass."""
    type: PlayActionType
    card_index: Optional[int] = Field(None, description="Index into the hand")
    field_index: Optional[int] = Field(None, description="0=top 1=left 2=right 3=help 4=sp")


# =============================================================================
# Request Models
# =============================================================================

class StartGameRequest(CamelModel):
    """Create a match. One player id opens a room for joinRoom."""
    player_ids: list[str] = Field(..., min_length=1, max_length=2)
    decks: Optional[list[DeckModel]] = Field(None, description="Explicit decks, one per player")
    deck_names: Optional[list[str]] = Field(None, description="Packaged deck names, one per player")
    game_id: Optional[str] = Field(None, description="Match id; generated when omitted")


class JoinRoomRequest(CamelModel):
    """Take the second seat of an open room."""
    game_id: str
    player_id: str
    deck: Optional[DeckModel] = None
    deck_name: Optional[str] = None


class StartReadyRequest(CamelModel):
    """Finish the opening hand, optionally redrawing it once."""
    game_id: str
    player_id: str
    redraw: bool = False


class PlayerActionRequest(CamelModel):
    game_id: str
    player_id: str
    action: PlayAction


class SelectCardRequest(CamelModel):
    """Complete the pending selection."""
    game_id: str
    player_id: str
    selection_id: str
    selected_card_ids: list[str]


class AcknowledgeEventsRequest(CamelModel):
    game_id: str
    player_id: str
    event_ids: list[int]


class NextRoundRequest(CamelModel):
    game_id: str
    player_id: str


class InjectGameStateRequest(CamelModel):
    """Test hook: replace a match state wholesale."""
    game_id: str
    game_env: dict[str, Any] = Field(..., description="Full MatchState document")
    player_id: Optional[str] = Field(None, description="Viewer for the returned projection")


# =============================================================================
# Response Models
# =============================================================================

class GameResponse(CamelModel):
    """Standard game response."""
    success: bool
    game_id: Optional[str] = None
    game_env: Optional[dict[str, Any]] = Field(None, description="Scrubbed match projection")
    error: Optional[str] = Field(None, description="ErrorKind on failure")
    message: Optional[str] = Field(None, description="Human-readable detail")


class ErrorResponse(CamelModel):
    """Error response for non-rule failures (404, 500)."""
    success: bool = False
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class HealthResponse(CamelModel):
    """Health check response."""
    status: str
    service: str
    version: str
    active_games: int = 0
