"""Client exports: facade, store pipeline, view, and transports."""

from .client import Client
from .config import MultiplayerConfig, parse_multiplayer
from .dispatchers import DispatcherSet, create_dispatchers, create_event_dispatchers, create_move_dispatchers
from .middleware import LogInterceptor, SubscriptionInterceptor, TraceInterceptor, TransportInterceptor
from .store import Interceptor, Store, apply_interceptors, compose, create_store
from .transport import LocalMaster, LocalTransport, MasterRegistry, NullTransport, SocketTransport, Transport
from .view import ClientState, project_state

__all__ = [
    "Client",
    "ClientState",
    "DispatcherSet",
    "Interceptor",
    "LocalMaster",
    "LocalTransport",
    "LogInterceptor",
    "MasterRegistry",
    "MultiplayerConfig",
    "NullTransport",
    "SocketTransport",
    "Store",
    "SubscriptionInterceptor",
    "TraceInterceptor",
    "Transport",
    "TransportInterceptor",
    "apply_interceptors",
    "compose",
    "create_dispatchers",
    "create_event_dispatchers",
    "create_move_dispatchers",
    "create_store",
    "parse_multiplayer",
    "project_state",
]
