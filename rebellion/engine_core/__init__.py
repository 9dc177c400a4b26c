"""
Engine Core - Deterministic rules kernel for Revolution and Rebellion.

The engine is the runtime that:
1. Looks up card definitions in the CardCatalog
2. Manages MatchState (decks, zones, play sequence, events)
3. Applies actions via the reducer
4. Rebuilds field effects by replaying the play sequence
5. Resolves selections and leader battles
"""

from .state import (
    MatchState, PlayerState, PlayerZones, FieldCard, FieldEffects, ActiveEffect,
    PlayRecord, Selection, GameEvent, Phase, RecordAction,
)
from .action import Action, ActionType, ActionPayload, ActionResult, ErrorKind, EngineError, CardNotFound
from .catalog import CardCatalog, CardDef, CardKind, default_catalog
from .simulator import EffectSimulator
from .selection import SelectionManager
from .battle import BattleResolver
from .reducer import Reducer, apply_action
from .projection import project

__all__ = [
    "MatchState",
    "PlayerState",
    "PlayerZones",
    "FieldCard",
    "FieldEffects",
    "ActiveEffect",
    "PlayRecord",
    "Selection",
    "GameEvent",
    "Phase",
    "RecordAction",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "ErrorKind",
    "EngineError",
    "CardNotFound",
    "CardCatalog",
    "CardDef",
    "CardKind",
    "default_catalog",
    "EffectSimulator",
    "SelectionManager",
    "BattleResolver",
    "Reducer",
    "apply_action",
    "project",
]
