"""In-process transport backed by a shared, reference-counted authority."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from engine.actions import Action, reset, sync, update
from engine.errors import ActionRejectedError
from engine.master import MESSAGE_METADATA, MESSAGE_SYNC, MESSAGE_UPDATE, GameMetadata, InMemoryStorage, Master

from .base import Transport

if TYPE_CHECKING:
    from engine.game import Game

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, dict[str, Any]], None]


class LocalMaster(Master):
    """Authority that delivers pushes by calling attached client callbacks directly."""

    def __init__(self, game: "Game", storage: InMemoryStorage | None = None, auth: bool = True):
        self._callbacks: dict[tuple[str, str | None], list[MessageCallback]] = {}
        super().__init__(game, storage=storage, send=self._deliver, send_all=self._deliver_all, auth=auth)

    def attach(self, game_id: str, player_id: str | None, callback: MessageCallback) -> None:
        with self._lock:
            self._callbacks.setdefault((game_id, player_id), []).append(callback)

    def detach(self, game_id: str, player_id: str | None, callback: MessageCallback) -> None:
        """Remove one client callback; the seat is marked disconnected when none remain."""
        with self._lock:
            callbacks = self._callbacks.get((game_id, player_id), [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._callbacks.pop((game_id, player_id), None)
                self.disconnect(game_id, player_id)

    def _deliver(self, game_id: str, player_id: str | None, message_type: str, data: dict[str, Any]) -> None:
        for callback in list(self._callbacks.get((game_id, player_id), [])):
            callback(message_type, data)

    def _deliver_all(self, game_id: str, build: Callable[[str | None], tuple[str, dict[str, Any]]]) -> None:
        for (target_game_id, player_id), callbacks in list(self._callbacks.items()):
            if target_game_id != game_id:
                continue
            message_type, data = build(player_id)
            for callback in list(callbacks):
                callback(message_type, data)


@dataclass
class _RegistryEntry:
    game: "Game"
    master: LocalMaster
    refs: int = 0


class MasterRegistry:
    """Shares one ``LocalMaster`` per (game definition, game id) while it is referenced."""

    def __init__(self) -> None:
        self._entries: dict[tuple[int, str], _RegistryEntry] = {}
        self._lock = threading.Lock()

    def acquire(self, game: "Game", game_id: str) -> LocalMaster:
        with self._lock:
            key = (id(game), game_id)
            entry = self._entries.get(key)
            if entry is None:
                entry = _RegistryEntry(game=game, master=LocalMaster(game))
                self._entries[key] = entry
                logger.debug("Created local master for %s:%s", game.name, game_id)
            entry.refs += 1
            return entry.master

    def release(self, game: "Game", game_id: str) -> None:
        with self._lock:
            key = (id(game), game_id)
            entry = self._entries.get(key)
            if entry is None:
                return
            entry.refs -= 1
            if entry.refs <= 0:
                del self._entries[key]
                logger.debug("Dropped local master for %s:%s", game.name, game_id)

    def refcount(self, game: "Game", game_id: str) -> int:
        with self._lock:
            entry = self._entries.get((id(game), game_id))
            return entry.refs if entry is not None else 0

    def masters(self) -> list[LocalMaster]:
        with self._lock:
            return [entry.master for entry in self._entries.values()]


default_registry = MasterRegistry()


class LocalTransport(Transport):
    """Talks to a ``LocalMaster`` in the same process.

    Pushes are delivered synchronously on the dispatching thread, so an
    action's UPDATE echo is reconciled before ``dispatch`` returns.
    """

    def __init__(self, *, game: "Game", registry: MasterRegistry | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.game = game
        self.registry = registry or default_registry
        self.master = self.registry.acquire(game, self.game_id)
        self._attached = False
        self._released = False

    def connect(self) -> None:
        self._attach()
        self.is_connected = True
        self.request_sync()
        self._callback()

    def close(self) -> None:
        if self._released:
            return
        self._detach()
        self.registry.release(self.game, self.game_id)
        self._released = True
        self.is_connected = False
        self._callback()

    def request_sync(self) -> None:
        self.master.on_sync(self.game_id, self.player_id, self.num_players, self.credentials)

    def on_action(self, state: Any, action: Action) -> None:
        if state is None:
            logger.warning("Not relaying %s before the first sync.", action.type.value)
            return
        try:
            self.master.on_update(action, state.state_id, self.game_id, self.player_id)
        except ActionRejectedError as exc:
            logger.warning("Authority rejected %s from player %r: %s", action.type.value, self.player_id, exc)

    def update_game_id(self, game_id: str) -> None:
        self._detach()
        if not self._released:
            self.registry.release(self.game, self.game_id)
        self.game_id = game_id
        self.master = self.registry.acquire(self.game, game_id)
        self._released = False
        self._rebind()

    def update_player_id(self, player_id: str | None) -> None:
        self._detach()
        self.player_id = player_id
        self._rebind()

    def _rebind(self) -> None:
        if self.store is not None:
            self.store.dispatch(reset(None))
        if self.is_connected:
            self._attach()
            self.request_sync()

    def _attach(self) -> None:
        if not self._attached:
            self.master.attach(self.game_id, self.player_id, self._on_message)
            self._attached = True

    def _detach(self) -> None:
        if self._attached:
            self.master.detach(self.game_id, self.player_id, self._on_message)
            self._attached = False

    def _on_message(self, message_type: str, data: dict[str, Any]) -> None:
        if message_type == MESSAGE_METADATA:
            self._metadata_callback(GameMetadata.from_dict(data))
            return
        if self.store is None:
            return
        if message_type == MESSAGE_SYNC:
            self.store.dispatch(sync(data["state"], data["log"]))
        elif message_type == MESSAGE_UPDATE:
            self.store.dispatch(update(data["state"], data["deltalog"]))
