"""Transports connecting a client store to an authority."""

from .base import NullTransport, Transport
from .local_transport import LocalMaster, LocalTransport, MasterRegistry, default_registry
from .socket_transport import SocketTransport

__all__ = [
    "LocalMaster",
    "LocalTransport",
    "MasterRegistry",
    "NullTransport",
    "SocketTransport",
    "Transport",
    "default_registry",
]
