"""
FastAPI Application - REST API for the game client.

Endpoints:
    POST   /api/v1/games                      startGame
    POST   /api/v1/games/join                 joinRoom
    POST   /api/v1/games/ready                startReady
    GET    /api/v1/games/{id}/players/{pid}   getPlayer
    POST   /api/v1/games/action               playerAction (PlayCard, PlayCardBack, PassSp)
    POST   /api/v1/games/select               selectCard
    POST   /api/v1/games/acknowledge          acknowledgeEvents
    POST   /api/v1/games/next-round           nextRound
    DELETE /api/v1/games/{id}                 End a match
    POST   /api/v1/test/inject-game-state     injectGameState (test routes only)
    GET    /health                            health

Status codes:
    200  Call completed; rule violations answer success=false with an ErrorKind
    404  Unknown game, or player not seated in it
    409  startGame with an id already in use
    403  Test route called while test routes are disabled
    422  Request body failed validation
    500  Fatal engine error; the match has been ended

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union
import logging

from ..config import configure_logging, load_settings

logger = logging.getLogger(__name__)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .. import __version__
    from ..engine_core import ErrorKind
    from ..engine_core.action import FATAL_ERRORS
    from .service import APIService, GAME_EXISTS, TEST_ROUTES_DISABLED
    from .schemas import (
        # Request models
        StartGameRequest,
        JoinRoomRequest,
        StartReadyRequest,
        PlayerActionRequest,
        SelectCardRequest,
        AcknowledgeEventsRequest,
        NextRoundRequest,
        InjectGameStateRequest,
        # Response models
        GameResponse,
        ErrorResponse,
        HealthResponse,
    )

    if service is None:
        settings = load_settings()
        configure_logging(settings.log_level)
        service = APIService(settings=settings)
    api_service = service

    app = FastAPI(
        title="Rebellion Engine API",
        description="""
Two-player card duel engine for Revolution and Rebellion.

Every game call answers `{success, gameEnv?, error?}`. `gameEnv` is the match
as the calling player may see it: the opponent's hand and face-down cards are
hidden, decks are reduced to counts.

## Error Codes

| Code | Description |
|------|-------------|
| `GAME_NOT_FOUND` | Match does not exist |
| `PLAYER_NOT_FOUND` | Player is not seated in the match |
| `NOT_YOUR_TURN` | Another player is to act |
| `PHASE_RESTRICTION_ERROR` | Action not allowed in the current phase |
| `CARD_SELECTION_PENDING` | Complete the pending selection first |
| `INVALID_SELECTION` | Selected cards do not satisfy the selection |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # CORS for browser clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_service.settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    status_for_error = {
        ErrorKind.GAME_NOT_FOUND.value: 404,
        ErrorKind.PLAYER_NOT_FOUND.value: 404,
        GAME_EXISTS: 409,
        TEST_ROUTES_DISABLED: 403,
        **{kind.value: 500 for kind in FATAL_ERRORS},
    }

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: str,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=error_code,
                message=message,
                details=details,
            ).model_dump(by_alias=True, exclude_none=True),
        )

    def respond(result: dict) -> Union[GameResponse, JSONResponse]:
        """Rule errors stay 200; lookup and fatal errors get their own status."""
        status_code = status_for_error.get(result.get("error"))
        if status_code is not None:
            details = {"gameId": result["gameId"]} if result.get("gameId") else None
            return make_error_response(result["error"], result.get("message", ""), status_code, details)
        return GameResponse.model_validate(result)

    # =========================================================================
    # Lobby Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games",
        response_model=GameResponse,
        responses={409: {"model": ErrorResponse}},
        tags=["Lobby"],
        summary="Start a match or open a room",
    )
    async def start_game(request: StartGameRequest) -> Union[GameResponse, JSONResponse]:
        """
        Create a match.

        With two `playerIds` the match starts in START_REDRAW. With one, the
        match waits for `joinRoom`. Decks default to the packaged decks.
        """
        return respond(api_service.start_game(request))

    @app.post(
        "/api/v1/games/join",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Lobby"],
        summary="Join an open room",
    )
    async def join_room(request: JoinRoomRequest) -> Union[GameResponse, JSONResponse]:
        return respond(api_service.join_room(request))

    @app.post(
        "/api/v1/games/ready",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Lobby"],
        summary="Keep or redraw the opening hand",
    )
    async def start_ready(request: StartReadyRequest) -> Union[GameResponse, JSONResponse]:
        """Each player calls this once; the match begins when both are ready."""
        return respond(api_service.start_ready(request))

    @app.get(
        "/api/v1/games/{game_id}/players/{player_id}",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Get the match as one player sees it",
    )
    async def get_player(game_id: str, player_id: str) -> Union[GameResponse, JSONResponse]:
        return respond(api_service.get_player(game_id, player_id))

    @app.delete(
        "/api/v1/games/{game_id}",
        tags=["Games"],
        summary="End a match",
    )
    async def end_game(game_id: str):
        """End a match and release its session."""
        if not api_service.end_game(game_id):
            return make_error_response(ErrorKind.GAME_NOT_FOUND.value, f"Game {game_id} not found", 404)
        return {"success": True, "gameId": game_id}

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games/action",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Play a card face-up, face-down, or pass the SP phase",
    )
    async def player_action(request: PlayerActionRequest) -> Union[GameResponse, JSONResponse]:
        """
        Submit a placement.

        `fieldIndex` maps 0=top, 1=left, 2=right, 3=help, 4=sp. Rule
        violations answer 200 with `success=false` and an ErrorKind.
        """
        return respond(api_service.player_action(request))

    @app.post(
        "/api/v1/games/select",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Complete the pending card selection",
    )
    async def select_card(request: SelectCardRequest) -> Union[GameResponse, JSONResponse]:
        return respond(api_service.select_card(request))

    @app.post(
        "/api/v1/games/acknowledge",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Acknowledge events",
    )
    async def acknowledge_events(request: AcknowledgeEventsRequest) -> Union[GameResponse, JSONResponse]:
        """Acknowledging DRAW_PHASE_COMPLETE opens the main phase."""
        return respond(api_service.acknowledge_events(request))

    @app.post(
        "/api/v1/games/next-round",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Advance to the next leader battle",
    )
    async def next_round(request: NextRoundRequest) -> Union[GameResponse, JSONResponse]:
        return respond(api_service.next_round(request))

    # =========================================================================
    # Test Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/test/inject-game-state",
        response_model=GameResponse,
        responses={403: {"model": ErrorResponse}},
        tags=["Test"],
        summary="Replace a match state wholesale",
    )
    async def inject_game_state(request: InjectGameStateRequest) -> Union[GameResponse, JSONResponse]:
        """Only available while test routes are enabled."""
        return respond(api_service.inject_game_state(request))

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse.model_validate(api_service.health())

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Rebellion Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn rebellion.api.app:app
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
