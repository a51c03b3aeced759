"""Multiplayer configuration parsing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from engine.errors import ConfigurationError

_KNOWN_KEYS = {"local", "server", "transport"}


@dataclass(frozen=True)
class MultiplayerConfig:
    """Which transport a client should build."""

    local: bool = False
    server: str | None = None
    transport: type | None = None


def parse_multiplayer(spec: Any) -> MultiplayerConfig | None:
    """Normalize a ``multiplayer=`` argument.

    ``None``/``False`` mean single-player, ``True`` means the default socket
    server, and a mapping selects exactly one of ``local``, ``server`` or
    ``transport``.
    """
    if spec is None or spec is False:
        return None
    if spec is True:
        return MultiplayerConfig(server="")
    if not isinstance(spec, Mapping):
        raise ConfigurationError(f"expected a mapping or bool, got {type(spec).__name__}")

    unknown = set(spec) - _KNOWN_KEYS
    if unknown:
        raise ConfigurationError(f"unknown keys {sorted(unknown)}")
    selected = [key for key in ("transport", "local", "server") if spec.get(key) not in (None, False)]
    if len(selected) != 1:
        raise ConfigurationError(f"expected exactly one of {sorted(_KNOWN_KEYS)}")

    key = selected[0]
    value = spec[key]
    if key == "transport":
        if not isinstance(value, type):
            raise ConfigurationError("'transport' must be a class")
        return MultiplayerConfig(transport=value)
    if key == "local":
        if value is not True:
            raise ConfigurationError("'local' must be True")
        return MultiplayerConfig(local=True)
    if not isinstance(value, str):
        raise ConfigurationError("'server' must be a host:port string")
    return MultiplayerConfig(server=value)
