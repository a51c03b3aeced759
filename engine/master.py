"""Authoritative game master: validates relayed actions and rebroadcasts results."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NoReturn

from .actions import Action, ActionType
from .errors import (
    ActionRejectedError,
    GameNotFoundError,
    StaleStateError,
    UnauthorizedActionError,
)
from .log import LogEntry, redact_log
from .reducer import GameReducer
from .state import GameState, initialize_game

if TYPE_CHECKING:
    from .game import Game

logger = logging.getLogger(__name__)

MESSAGE_SYNC = "sync"
MESSAGE_UPDATE = "update"
MESSAGE_METADATA = "metadata"

SendFn = Callable[[str, str | None, str, dict[str, Any]], None]
MessageBuilder = Callable[[str | None], tuple[str, dict[str, Any]]]
SendAllFn = Callable[[str, MessageBuilder], None]
StateListener = Callable[[str, GameState, Action | None], None]

RELAYABLE_ACTIONS = {ActionType.MAKE_MOVE, ActionType.GAME_EVENT, ActionType.UNDO, ActionType.REDO}


@dataclass
class PlayerMetadata:
    """Seat information tracked by the authority."""

    id: str
    credentials: str | None = None
    is_connected: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the public view of the seat (credentials are never exposed)."""
        return {"id": self.id, "is_connected": self.is_connected}


@dataclass(frozen=True)
class GameMetadata:
    """Connection status of every seat in one game, as pushed to clients."""

    game_id: str
    players: tuple[PlayerMetadata, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameMetadata":
        return cls(
            game_id=str(data["game_id"]),
            players=tuple(
                PlayerMetadata(id=str(player["id"]), is_connected=bool(player.get("is_connected", False)))
                for player in data.get("players", ())
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"game_id": self.game_id, "players": [player.to_dict() for player in self.players]}


@dataclass
class GameRecord:
    """Authoritative state, full log, and seats for one game id."""

    game_id: str
    state: GameState
    log: list[LogEntry] = field(default_factory=list)
    players: dict[str, PlayerMetadata] = field(default_factory=dict)

    def metadata(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "players": [self.players[player_id].to_dict() for player_id in sorted(self.players)],
        }


class InMemoryStorage:
    """In-memory game dictionary keyed by game ID."""

    def __init__(self) -> None:
        self._games: dict[str, GameRecord] = {}

    def has(self, game_id: str) -> bool:
        return game_id in self._games

    def get(self, game_id: str) -> GameRecord:
        if game_id not in self._games:
            raise KeyError(game_id)
        return self._games[game_id]

    def set(self, record: GameRecord) -> None:
        self._games[record.game_id] = record

    def remove(self, game_id: str) -> None:
        self._games.pop(game_id, None)

    def game_ids(self) -> list[str]:
        return sorted(self._games)


def _noop_send(game_id: str, player_id: str | None, message_type: str, data: dict[str, Any]) -> None:
    return None


def _noop_send_all(game_id: str, build: MessageBuilder) -> None:
    return None


class Master:
    """Single source of truth for every game id it hosts.

    All entry points hold one re-entrant lock, so actions arriving from
    several clients (or several socket threads) are applied one at a time.
    ``send``/``send_all`` are supplied by the hosting transport; ``send_all``
    receives a builder that produces the per-player message so that state and
    log can be filtered for each recipient.
    """

    def __init__(
        self,
        game: "Game",
        storage: InMemoryStorage | None = None,
        send: SendFn | None = None,
        send_all: SendAllFn | None = None,
        auth: bool = True,
    ):
        self.game = game
        self.storage = storage or InMemoryStorage()
        self.send = send or _noop_send
        self.send_all = send_all or _noop_send_all
        self.auth = auth
        self._reducer = GameReducer(game, multiplayer=False)
        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []

    def subscribe(self, callback: StateListener) -> Callable[[], None]:
        """Observe every committed authoritative state; returns an unsubscribe handle."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def on_sync(
        self,
        game_id: str,
        player_id: str | None,
        num_players: int = 2,
        credentials: str | None = None,
    ) -> None:
        """Send the full filtered state and log to one player, creating the game on demand."""
        with self._lock:
            if not self.storage.has(game_id):
                state = initialize_game(self.game, num_players)
                self.storage.set(GameRecord(game_id=game_id, state=state))
                logger.info("Created game %s:%s with %d players", self.game.name, game_id, num_players)
                self._notify(game_id, state, None)

            record = self.storage.get(game_id)
            if player_id is not None:
                seat = record.players.setdefault(player_id, PlayerMetadata(id=player_id))
                if seat.credentials is None and credentials is not None:
                    seat.credentials = credentials
                seat.is_connected = True

            self._send_sync(record, player_id)
            self._broadcast_metadata(record)

    def on_update(self, action: Action, state_id: int, game_id: str, player_id: str | None) -> GameState:
        """Validate and apply a relayed action, then broadcast the result.

        Raises an ``ActionRejectedError`` subclass when the action is refused;
        the sender is resynced first so its optimistic state is corrected.
        """
        with self._lock:
            if not self.storage.has(game_id):
                logger.error("game not found, game_id=[%s]", game_id)
                raise GameNotFoundError(f"game not found: {game_id}", player_id=player_id, action_type=action.type.value)

            record = self.storage.get(game_id)
            self._validate(record, action, state_id, player_id)

            state = record.state
            next_state = self._reducer(state, action)
            assert next_state is not None
            if next_state.state_id == state.state_id:
                self._reject(
                    record,
                    player_id,
                    ActionRejectedError("action not applied by reducer", player_id=player_id, action_type=action.type.value),
                )

            deltalog = next_state.deltalog
            record.state = next_state.evolve(deltalog=())
            record.log.extend(deltalog)
            self._notify(game_id, next_state, action)

            def _build(recipient: str | None) -> tuple[str, dict[str, Any]]:
                return MESSAGE_UPDATE, {
                    "game_id": game_id,
                    "state": self._filtered_state(record.state, recipient),
                    "deltalog": redact_log(deltalog, recipient),
                }

            self.send_all(game_id, _build)
            return record.state

    def disconnect(self, game_id: str, player_id: str | None) -> None:
        """Mark a seat as disconnected and rebroadcast metadata."""
        with self._lock:
            if player_id is None or not self.storage.has(game_id):
                return
            record = self.storage.get(game_id)
            seat = record.players.get(player_id)
            if seat is None:
                return
            seat.is_connected = False
            self._broadcast_metadata(record)

    def game_ids(self) -> list[str]:
        with self._lock:
            return self.storage.game_ids()

    def get_state(self, game_id: str) -> GameState:
        with self._lock:
            return self.storage.get(game_id).state

    def get_log(self, game_id: str, player_id: str | None = None) -> list[LogEntry]:
        """Return the authoritative log as ``player_id`` is allowed to see it."""
        with self._lock:
            return redact_log(self.storage.get(game_id).log, player_id)

    def metadata(self, game_id: str) -> dict[str, Any]:
        with self._lock:
            return self.storage.get(game_id).metadata()

    def _validate(self, record: GameRecord, action: Action, state_id: int, player_id: str | None) -> None:
        state = record.state
        action_type = action.type.value

        if action.type not in RELAYABLE_ACTIONS:
            self._reject(record, player_id, ActionRejectedError(
                f"action type {action_type} is not accepted by the master", player_id=player_id, action_type=action_type,
            ))

        if self.auth and not self._is_authentic(record, action, player_id):
            self._reject(record, player_id, UnauthorizedActionError(
                "unauthorized action", player_id=player_id, action_type=action_type,
            ))

        if action.type in (ActionType.UNDO, ActionType.REDO):
            if state.ctx.current_player != player_id or state.ctx.active_players is not None:
                self._reject(record, player_id, ActionRejectedError(
                    "undo/redo is only allowed for the sole current player", player_id=player_id, action_type=action_type,
                ))

        if state.ctx.gameover is not None:
            self._reject(record, player_id, ActionRejectedError(
                "game is over", player_id=player_id, action_type=action_type,
            ))

        if not self.game.flow.is_player_active(state.G, state.ctx, player_id):
            self._reject(record, player_id, ActionRejectedError(
                "player not active", player_id=player_id, action_type=action_type,
            ))

        if action.type is ActionType.MAKE_MOVE:
            assert action.payload is not None
            if self.game.get_move(action.payload.type) is None:
                self._reject(record, player_id, ActionRejectedError(
                    f"move not processed: {action.payload.type}", player_id=player_id, action_type=action_type,
                ))

        if state.state_id != state_id:
            self._reject(record, player_id, StaleStateError(
                state_id, state.state_id, player_id=player_id, action_type=action_type,
            ))

    def _is_authentic(self, record: GameRecord, action: Action, player_id: str | None) -> bool:
        if action.payload is not None and action.payload.player_id != player_id:
            return False
        if player_id is None:
            return True
        seat = record.players.get(player_id)
        if seat is None or seat.credentials is None:
            return True
        supplied = action.payload.credentials if action.payload is not None else None
        return supplied == seat.credentials

    def _reject(self, record: GameRecord, player_id: str | None, error: ActionRejectedError) -> NoReturn:
        logger.warning("Rejected action for %s:%s: %s", self.game.name, record.game_id, error)
        self._send_sync(record, player_id)
        raise error

    def _filtered_state(self, state: GameState, player_id: str | None) -> GameState:
        return state.evolve(
            G=self.game.player_view(state.G, state.ctx, player_id),
            deltalog=(),
            undo_stack=(),
            redo_stack=(),
        )

    def _send_sync(self, record: GameRecord, player_id: str | None) -> None:
        self.send(
            record.game_id,
            player_id,
            MESSAGE_SYNC,
            {
                "game_id": record.game_id,
                "state": self._filtered_state(record.state, player_id),
                "log": redact_log(record.log, player_id),
            },
        )

    def _broadcast_metadata(self, record: GameRecord) -> None:
        metadata = record.metadata()
        self.send_all(record.game_id, lambda _recipient: (MESSAGE_METADATA, metadata))

    def _notify(self, game_id: str, state: GameState, action: Action | None) -> None:
        for listener in list(self._listeners):
            listener(game_id, state, action)
