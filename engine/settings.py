"""Environment-backed defaults for transports and the authority server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7777
DEFAULT_API_PORT = 8000
DEFAULT_SOCKET_TIMEOUT = 10.0

ENV_FILE_VAR = "BOARDSYNC_ENV_FILE"

_loaded_env_files: set[Path] = set()


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    line = line.removeprefix("export ").strip()
    key, sep, value = line.partition("=")
    if not sep or not key.strip():
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return key.strip(), value


def load_dotenv(path: str | Path | None = None) -> None:
    """Seed ``BOARDSYNC_*`` defaults from an env file.

    The file is ``path``, else ``$BOARDSYNC_ENV_FILE``, else ``./.env``. Values
    already present in the process environment win, and each file is read once.
    """
    env_path = Path(path or os.environ.get(ENV_FILE_VAR) or ".env")
    if env_path in _loaded_env_files:
        return
    _loaded_env_files.add(env_path)
    if not env_path.is_file():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_env_line(raw_line)
        if parsed is not None:
            os.environ.setdefault(*parsed)


def getenv_any(*names: str, default: str | None = None) -> str | None:
    """Return the first non-empty ``BOARDSYNC_*`` setting among ``names``."""
    load_dotenv()
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def parse_address(address: str | None) -> tuple[str, int]:
    """Split a ``host:port`` server address, filling blanks from the environment."""
    raw = (address or "").strip()
    if not raw:
        raw = getenv_any("BOARDSYNC_SERVER", default="") or ""
    if not raw:
        return DEFAULT_HOST, DEFAULT_PORT

    for prefix in ("tcp://", "http://", "https://"):
        if raw.startswith(prefix):
            raw = raw[len(prefix):]
    raw = raw.rstrip("/")

    host, sep, port_text = raw.rpartition(":")
    if not sep:
        return raw, DEFAULT_PORT
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid port in server address {address!r}.") from exc
    if not 0 <= port <= 65535:
        raise ConfigurationError(f"Port out of range in server address {address!r}.")
    return host or DEFAULT_HOST, port


@dataclass(frozen=True)
class ServerConfig:
    """Runtime configuration for the network authority."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    api_port: int = DEFAULT_API_PORT
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Build a config from ``BOARDSYNC_*`` environment variables."""
        try:
            return cls(
                host=getenv_any("BOARDSYNC_HOST", default="0.0.0.0") or "0.0.0.0",
                port=int(getenv_any("BOARDSYNC_PORT", default=str(DEFAULT_PORT)) or DEFAULT_PORT),
                api_port=int(getenv_any("BOARDSYNC_API_PORT", default=str(DEFAULT_API_PORT)) or DEFAULT_API_PORT),
                socket_timeout=float(
                    getenv_any("BOARDSYNC_SOCKET_TIMEOUT", default=str(DEFAULT_SOCKET_TIMEOUT))
                    or DEFAULT_SOCKET_TIMEOUT
                ),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid BOARDSYNC_* environment value: {exc}") from exc
