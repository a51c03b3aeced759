"""Transport contract between a client store and an authority."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable

from engine.actions import Action
from engine.master import GameMetadata

if TYPE_CHECKING:
    from client.store import Store

ConnectionCallback = Callable[[], None]
MetadataCallback = Callable[[GameMetadata], None]


def _noop() -> None:
    return None


def _noop_metadata(metadata: GameMetadata) -> None:
    return None


class Transport(ABC):
    """Base interface for the channel a client uses to reach its authority.

    Concrete transports are constructed with keyword arguments only:
    ``store``, ``game_name``, ``game_id``, ``player_id``, ``credentials`` and
    ``num_players``.
    """

    def __init__(
        self,
        *,
        store: "Store | None" = None,
        game_name: str = "default",
        game_id: str = "default",
        player_id: str | None = None,
        credentials: str | None = None,
        num_players: int = 2,
    ):
        self.store = store
        self.game_name = game_name
        self.game_id = game_id
        self.player_id = player_id
        self.credentials = credentials
        self.num_players = num_players
        self.is_connected = False
        self._callback: ConnectionCallback = _noop
        self._metadata_callback: MetadataCallback = _noop_metadata

    @abstractmethod
    def on_action(self, state: Any, action: Action) -> None:
        """Relay ``action``, produced against ``state``, to the authority."""

    @abstractmethod
    def connect(self) -> None:
        """Open the channel and request the initial SYNC."""

    def subscribe(self, callback: ConnectionCallback) -> None:
        """Register the callback run when connection status changes."""
        self._callback = callback

    def subscribe_game_metadata(self, callback: MetadataCallback) -> None:
        self._metadata_callback = callback

    def update_game_id(self, game_id: str) -> None:
        self.game_id = game_id

    def update_player_id(self, player_id: str | None) -> None:
        self.player_id = player_id

    def update_credentials(self, credentials: str | None) -> None:
        self.credentials = credentials

    def request_sync(self) -> None:
        """Ask the authority for a full SYNC. No-op unless the transport has an authority."""

    def close(self) -> None:
        """Release the channel. No-op by default."""


class NullTransport(Transport):
    """Transport with no authority: single-player clients and invalid configurations."""

    def __init__(self, *, is_connected: bool = True, **kwargs: Any):
        super().__init__(**kwargs)
        self.is_connected = is_connected

    def on_action(self, state: Any, action: Action) -> None:
        return None

    def connect(self) -> None:
        return None
