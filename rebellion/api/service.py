"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine actions
2. Manages sessions and serialises actions per match
3. Projects the resulting state for the calling player
4. Formats responses as {success, gameEnv?, error?}

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging

from .schemas import (
    AcknowledgeEventsRequest,
    DeckModel,
    InjectGameStateRequest,
    JoinRoomRequest,
    NextRoundRequest,
    PlayActionType,
    PlayerActionRequest,
    SelectCardRequest,
    StartGameRequest,
    StartReadyRequest,
)
from .. import __version__
from ..config import Settings, load_settings
from ..engine_core import Action, ActionResult, CardCatalog, EngineError, ErrorKind, Reducer, default_catalog, project
from ..engine_core.deck import DeckError
from ..engine_core.state import MatchState
from ..session import Session, SessionManager

logger = logging.getLogger(__name__)

# Service-level codes that are not rule errors
GAME_EXISTS = "GAME_EXISTS"
INVALID_GAME_STATE = "INVALID_GAME_STATE"
TEST_ROUTES_DISABLED = "TEST_ROUTES_DISABLED"


def error_response(error: str, message: str | None = None, game_id: str | None = None,
                   game_env: dict[str, Any] | None = None) -> dict[str, Any]:
    response: dict[str, Any] = {"success": False, "error": error, "message": message or error}
    if game_id is not None:
        response["gameId"] = game_id
    if game_env is not None:
        response["gameEnv"] = game_env
    return response


@dataclass
class APIService:
    """
    Main API service for the game client.

    Usage:
        service = APIService()

        # Open a match
        response = service.start_game(StartGameRequest(player_ids=["p1", "p2"]))

        # Act
        response = service.start_ready(StartReadyRequest(game_id=gid, player_id="p1"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    settings: Settings = field(default_factory=load_settings)
    catalog: CardCatalog | None = None
    reducer: Reducer | None = None

    def __post_init__(self):
        if self.catalog is None:
            self.catalog = default_catalog(self.settings.card_data_dir)
        if self.reducer is None:
            self.reducer = Reducer(catalog=self.catalog, settings=self.settings)

    # =========================================================================
    # Lobby
    # =========================================================================

    def start_game(self, request: StartGameRequest) -> dict[str, Any]:
        """
        Create a new match.

        Two player ids start a match straight away; one opens a room that
        joinRoom completes.
        """
        game_id = request.game_id or self.session_manager.new_game_id()
        if self.session_manager.get_session(game_id) is not None:
            return error_response(GAME_EXISTS, f"Game {game_id} already exists", game_id)

        try:
            decks = self._resolve_decks(request.player_ids, request.decks, request.deck_names)
            match = self.reducer.create_match(game_id, list(request.player_ids), decks)
            session = self.session_manager.add(match)
        except DeckError as e:
            return error_response(ErrorKind.INVALID_DECK.value, str(e), game_id)
        except ValueError as e:
            return error_response(GAME_EXISTS, str(e), game_id)

        return self._ok(session, request.player_ids[0])

    def join_room(self, request: JoinRoomRequest) -> dict[str, Any]:
        """Seat a second player into an open room."""
        with self.session_manager.locked(request.game_id) as session:
            if session is None:
                return self._not_found(request.game_id)
            try:
                taken = {c for p in session.match.players for c in p.leader_list}
                deck = self._resolve_join_deck(request.deck, request.deck_name, taken)
            except DeckError as e:
                return error_response(ErrorKind.INVALID_DECK.value, str(e), request.game_id)
            result = self.reducer.join(session.match, request.player_id, deck)
            return self._store(session, result, request.player_id)

    def get_player(self, game_id: str, player_id: str) -> dict[str, Any]:
        """Read-only projection of a match for one seated player."""
        session = self.session_manager.get_session(game_id)
        if session is None:
            return self._not_found(game_id)
        with session.lock:
            if not session.has_player(player_id):
                return self._player_not_found(game_id, player_id)
            return self._ok(session, player_id)

    # =========================================================================
    # Actions
    # =========================================================================

    def start_ready(self, request: StartReadyRequest) -> dict[str, Any]:
        action = Action.start_ready(request.player_id, redraw=request.redraw)
        return self._dispatch(request.game_id, action)

    def player_action(self, request: PlayerActionRequest) -> dict[str, Any]:
        """PlayCard, PlayCardBack or PassSp."""
        play = request.action
        if play.type == PlayActionType.PASS_SP:
            action = Action.pass_sp(request.player_id)
        elif play.type == PlayActionType.PLAY_CARD_BACK:
            action = Action.play_card_back(request.player_id, play.card_index, play.field_index)
        else:
            action = Action.play_card(request.player_id, play.card_index, play.field_index)
        return self._dispatch(request.game_id, action)

    def select_card(self, request: SelectCardRequest) -> dict[str, Any]:
        action = Action.select_card(request.player_id, request.selection_id, request.selected_card_ids)
        return self._dispatch(request.game_id, action)

    def acknowledge_events(self, request: AcknowledgeEventsRequest) -> dict[str, Any]:
        action = Action.acknowledge(request.player_id, request.event_ids)
        return self._dispatch(request.game_id, action)

    def next_round(self, request: NextRoundRequest) -> dict[str, Any]:
        return self._dispatch(request.game_id, Action.next_round(request.player_id))

    # =========================================================================
    # Test hook and housekeeping
    # =========================================================================

    def inject_game_state(self, request: InjectGameStateRequest) -> dict[str, Any]:
        """
        Replace a match state wholesale (tests only).

        The document is reloaded with MatchState.from_dict and re-simulated,
        so fieldEffects always reflect the injected play sequence.
        """
        if not self.settings.enable_test_routes:
            return error_response(TEST_ROUTES_DISABLED, "Test routes are disabled", request.game_id)
        try:
            match = MatchState.from_dict({**request.game_env, "gameId": request.game_id})
            self.reducer.simulate(match)
        except (EngineError, KeyError, TypeError, ValueError) as e:
            return error_response(INVALID_GAME_STATE, f"Cannot load game state: {e}", request.game_id)

        viewer = request.player_id or (match.player_ids[0] if match.players else "")
        with self.session_manager.locked(request.game_id) as session:
            if session is not None:
                session.replace(match)
                logger.info("game %s state injected", request.game_id)
                return self._ok(session, viewer)
        try:
            session = self.session_manager.add(match)
        except ValueError as e:
            return error_response(GAME_EXISTS, str(e), request.game_id)
        logger.info("game %s created from injected state", request.game_id)
        return self._ok(session, viewer)

    def end_game(self, game_id: str, reason: str = "user_ended") -> bool:
        """Tear a match down."""
        if self.session_manager.get_session(game_id) is None:
            return False
        self.session_manager.end_session(game_id, reason)
        return True

    def list_games(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    def health(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "service": "rebellion",
            "version": __version__,
            "activeGames": len(self.session_manager.list_active_sessions()),
        }

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _dispatch(self, game_id: str, action: Action) -> dict[str, Any]:
        """Run one action under the match lock and project the outcome."""
        with self.session_manager.locked(game_id) as session:
            if session is None:
                return self._not_found(game_id)
            if not session.has_player(action.player_id):
                return self._player_not_found(game_id, action.player_id)
            try:
                result = self.reducer.apply(session.match, action)
            except EngineError as e:
                if e.state is not None:
                    session.replace(e.state)
                return error_response(e.kind.value, str(e), game_id,
                                      self._project(session.match, action.player_id))
            return self._store(session, result, action.player_id)

    def _store(self, session: Session, result: ActionResult, player_id: str) -> dict[str, Any]:
        if result.new_state is not None:
            session.replace(result.new_state)
        if not result.success:
            kind = result.error_code or ErrorKind.INVALID_PHASE_FOR_ACTION
            return error_response(kind.value, result.error, session.game_id,
                                  self._project(session.match, player_id))
        return self._ok(session, player_id)

    def _ok(self, session: Session, player_id: str) -> dict[str, Any]:
        return {
            "success": True,
            "gameId": session.game_id,
            "gameEnv": self._project(session.match, player_id),
        }

    def _project(self, match: MatchState, player_id: str) -> dict[str, Any]:
        return project(match, player_id, now=self.reducer.clock())

    def _not_found(self, game_id: str) -> dict[str, Any]:
        return error_response(ErrorKind.GAME_NOT_FOUND.value, f"Game {game_id} not found", game_id)

    def _player_not_found(self, game_id: str, player_id: str) -> dict[str, Any]:
        return error_response(ErrorKind.PLAYER_NOT_FOUND.value,
                              f"Player {player_id} is not seated in {game_id}", game_id)

    def _resolve_decks(
        self,
        player_ids: list[str],
        decks: list[DeckModel] | None,
        deck_names: list[str] | None,
    ) -> list[dict[str, Any]]:
        """Explicit decks win, then named decks, then the packaged decks in order."""
        if decks is not None:
            if len(decks) != len(player_ids):
                raise DeckError("One deck per player is required")
            return [d.model_dump() for d in decks]
        names = deck_names if deck_names is not None else self.catalog.deck_names[:len(player_ids)]
        if len(names) != len(player_ids):
            raise DeckError("One deck per player is required")
        return [self._named_deck(name) for name in names]

    def _resolve_join_deck(self, deck: DeckModel | None, deck_name: str | None,
                           taken: set[str]) -> dict[str, Any]:
        if deck is not None:
            return deck.model_dump()
        if deck_name is not None:
            return self._named_deck(deck_name)
        for name in self.catalog.deck_names:
            if not taken & set(self.catalog.deck(name)["leaders"]):
                return self._named_deck(name)
        raise DeckError("No packaged deck left for the second seat")

    def _named_deck(self, name: str) -> dict[str, Any]:
        try:
            return {**self.catalog.deck(name), "name": name}
        except KeyError as e:
            raise DeckError(str(e)) from e
