"""Engine exports: game contract, state, actions, log, reducer, and the authority."""

from .actions import Action, ActionPayload, ActionType, game_event, make_move, redo, reset, sync, undo, update
from .errors import (
    ActionRejectedError,
    BotError,
    ConfigurationError,
    GameNotFoundError,
    ProtocolError,
    StaleStateError,
    SyncError,
    UnauthorizedActionError,
)
from .flow import TurnFlow
from .game import INVALID_MOVE, Game, MoveSpec, PlayerId
from .log import LogEntry, redact_log
from .master import GameMetadata, GameRecord, InMemoryStorage, Master, PlayerMetadata
from .reducer import GameReducer
from .state import Ctx, GameState, Snapshot, initialize_game

__all__ = [
    "INVALID_MOVE",
    "Action",
    "ActionPayload",
    "ActionRejectedError",
    "ActionType",
    "BotError",
    "ConfigurationError",
    "Ctx",
    "Game",
    "GameMetadata",
    "GameNotFoundError",
    "GameRecord",
    "GameReducer",
    "GameState",
    "InMemoryStorage",
    "LogEntry",
    "Master",
    "MoveSpec",
    "PlayerId",
    "PlayerMetadata",
    "ProtocolError",
    "Snapshot",
    "StaleStateError",
    "SyncError",
    "TurnFlow",
    "UnauthorizedActionError",
    "game_event",
    "initialize_game",
    "make_move",
    "redact_log",
    "redo",
    "reset",
    "sync",
    "undo",
    "update",
]
