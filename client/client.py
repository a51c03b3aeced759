"""Client facade: one store, one transport, and the dispatchers bound to them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping

from engine.actions import redo, reset, undo
from engine.bots.bot import Bot, BotResult
from engine.errors import ConfigurationError
from engine.log import LogEntry
from engine.master import GameMetadata
from engine.reducer import GameReducer
from engine.state import initialize_game

from .config import MultiplayerConfig, parse_multiplayer
from .dispatchers import DispatcherSet, create_event_dispatchers, create_move_dispatchers
from .middleware import LogInterceptor, SubscriptionInterceptor, TraceInterceptor, TransportInterceptor
from .store import Enhancer, apply_interceptors, compose, create_store
from .transport.base import NullTransport, Transport
from .transport.local_transport import LocalTransport, MasterRegistry
from .transport.socket_transport import SocketTransport
from .view import ClientState, project_state

if TYPE_CHECKING:
    from engine.game import Game

logger = logging.getLogger(__name__)

Subscriber = Callable[[ClientState | None], None]
BotFactory = Callable[..., Bot]


def _noop() -> None:
    return None


class Client:
    """Game client holding local state and reconciling it with an authority.

    Single-player clients (``multiplayer=None``) start from a locally
    initialized state and never talk to an authority. Multiplayer clients
    start with no state and wait for the first SYNC after ``connect()``.
    """

    def __init__(
        self,
        game: "Game",
        *,
        ai: Bot | BotFactory | None = None,
        debug: bool = False,
        num_players: int = 2,
        multiplayer: Any = None,
        socket_opts: Mapping[str, Any] | None = None,
        game_id: str = "default",
        player_id: str | None = None,
        credentials: str | None = None,
        enhancer: Enhancer | None = None,
        resync_on_gap: bool = True,
        registry: MasterRegistry | None = None,
    ):
        self.game = game
        self.debug = debug
        self.num_players = num_players
        self.game_id = game_id
        self.player_id = player_id
        self.credentials = credentials
        self.game_metadata: GameMetadata | None = None
        self._subscription: Callable[[], None] = _noop

        config: MultiplayerConfig | None = None
        config_error = False
        try:
            config = parse_multiplayer(multiplayer)
        except ConfigurationError as exc:
            logger.error("invalid multiplayer spec: %s", exc)
            config_error = True
        self.multiplayer = config is not None or config_error

        self.reducer = GameReducer(game, num_players, multiplayer=self.multiplayer)
        self.initial_state = None if self.multiplayer else initialize_game(game, num_players)

        self._log = LogInterceptor(on_gap=self._on_log_gap if resync_on_gap else None)
        interceptors = [
            SubscriptionInterceptor(self._notify),
            TransportInterceptor(self._relay),
            self._log,
        ]
        if debug:
            interceptors.insert(0, TraceInterceptor(f"{game.name}:{game_id}:{player_id}"))
        pipeline = apply_interceptors(*interceptors)
        self.store = create_store(
            self.reducer,
            self.initial_state,
            compose(pipeline, enhancer) if enhancer is not None else pipeline,
        )

        self.transport = self._create_transport(config, config_error, socket_opts, registry)
        self.transport.subscribe(self._notify)
        self.transport.subscribe_game_metadata(self._receive_metadata)

        self.bot: Bot | None = None
        if ai is not None and not self.multiplayer:
            self.bot = ai if isinstance(ai, Bot) else ai(bot_id=f"{game.name}-ai", game=game)

        self.moves = DispatcherSet()
        self.events = DispatcherSet()
        self._create_dispatchers()

    def _create_transport(
        self,
        config: MultiplayerConfig | None,
        config_error: bool,
        socket_opts: Mapping[str, Any] | None,
        registry: MasterRegistry | None,
    ) -> Transport:
        common: dict[str, Any] = {
            "store": self.store,
            "game_name": self.game.name,
            "game_id": self.game_id,
            "player_id": self.player_id,
            "credentials": self.credentials,
            "num_players": self.num_players,
        }
        if config_error:
            return NullTransport(is_connected=False, **common)
        if config is None:
            return NullTransport(**common)
        if config.transport is not None:
            return config.transport(**common)
        if config.local:
            return LocalTransport(game=self.game, registry=registry, **common)
        try:
            return SocketTransport(server=config.server, socket_opts=socket_opts, **common)
        except ConfigurationError as exc:
            logger.error("invalid multiplayer spec: %s", exc)
            return NullTransport(is_connected=False, **common)

    def _create_dispatchers(self) -> None:
        with self.store.lock:
            self.moves = create_move_dispatchers(
                self.game.move_names, self.store, self.player_id, self.credentials, self.multiplayer
            )
            self.events = create_event_dispatchers(
                self.game.flow.enabled_event_names, self.store, self.player_id, self.credentials, self.multiplayer
            )

    @property
    def log(self) -> list[LogEntry]:
        """The client-held log, reconciled against authority pushes."""
        return self._log.log

    def get_state(self) -> ClientState | None:
        """Return the current view for this client's player, or ``None`` before the first state."""
        return project_state(
            self.store.get_state(),
            game=self.game,
            player_id=self.player_id,
            multiplayer=self.multiplayer,
            log=self._log.log,
            is_connected=self.transport.is_connected,
        )

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Call ``fn(state)`` now and after every change; returns a handle restoring the previous chain."""
        previous = self._subscription

        def _callback() -> None:
            fn(self.get_state())

        def _chained() -> None:
            previous()
            _callback()

        self._subscription = _chained
        _callback()

        def _unsubscribe() -> None:
            self._subscription = previous

        return _unsubscribe

    def connect(self) -> None:
        self.transport.connect()

    def close(self) -> None:
        self.transport.close()

    def reset(self) -> None:
        self.store.dispatch(reset(self.initial_state))

    def undo(self) -> None:
        self.store.dispatch(undo(self.player_id, self.credentials))

    def redo(self) -> None:
        self.store.dispatch(redo(self.player_id, self.credentials))

    def update_player_id(self, player_id: str | None) -> None:
        with self.store.lock:
            self.player_id = player_id
            self._create_dispatchers()
            self.transport.update_player_id(player_id)
        self._notify()

    def update_game_id(self, game_id: str) -> None:
        with self.store.lock:
            self.game_id = game_id
            self._create_dispatchers()
            self.transport.update_game_id(game_id)
        self._notify()

    def update_credentials(self, credentials: str | None) -> None:
        with self.store.lock:
            self.credentials = credentials
            self._create_dispatchers()
            self.transport.update_credentials(credentials)
        self._notify()

    async def step(self) -> BotResult | None:
        """Ask the bot for one action and dispatch it; ``None`` when there is nothing to do."""
        if self.bot is None:
            return None
        state = self.store.get_state()
        if state is None or state.ctx.gameover is not None:
            return None

        player_id = state.ctx.current_player
        if state.ctx.active_players:
            player_id = next(iter(state.ctx.active_players))

        result = await self.bot.play(state, player_id)
        action = result.action.with_metadata(result.metadata) if result.metadata else result.action
        self.store.dispatch(action)
        return result

    def _notify(self) -> None:
        self._subscription()

    def _relay(self, state: Any, action: Any) -> None:
        self.transport.on_action(state, action)

    def _on_log_gap(self, last_state_id: int, next_state_id: int) -> None:
        logger.info("Requesting resync after log gap (%d -> %d)", last_state_id, next_state_id)
        self.transport.request_sync()

    def _receive_metadata(self, metadata: GameMetadata) -> None:
        self.game_metadata = metadata
        self._notify()
