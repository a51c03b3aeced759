"""TCP authority host: one ``Master`` per game definition, newline-delimited JSON on the wire."""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Sequence

from engine.errors import ActionRejectedError, ProtocolError, SyncError
from engine.game import Game
from engine.master import Master
from engine.protocol import SyncRequest, UpdateRequest, decode_message, encode_message, parse_data
from engine.serialize import split_lines
from engine.settings import DEFAULT_PORT, ServerConfig

logger = logging.getLogger(__name__)

MAX_CLIENTS = 32
BUFFER_SIZE = 4096


@dataclass
class _Connection:
    client_id: str
    sock: socket.socket
    send_lock: threading.Lock = field(default_factory=threading.Lock)
    game_name: str | None = None
    game_id: str | None = None
    player_id: str | None = None

    def bound_to(self, game_name: str, game_id: str) -> bool:
        return self.game_name == game_name and self.game_id == game_id


class SocketServer:
    """Accepts client sockets and routes their requests to the matching ``Master``."""

    def __init__(
        self,
        games: Sequence[Game],
        host: str = "0.0.0.0",
        port: int = DEFAULT_PORT,
        max_clients: int = MAX_CLIENTS,
        auth: bool = True,
    ):
        self.host = host
        self.port = port
        self.max_clients = max_clients
        self.games = {game.name: game for game in games}
        self.masters: dict[str, Master] = {
            name: Master(
                game,
                send=partial(self._send, name),
                send_all=partial(self._send_all, name),
                auth=auth,
            )
            for name, game in self.games.items()
        }
        self.running = False
        self._server_socket: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None
        self._threads: list[threading.Thread] = []
        self._connections: dict[str, _Connection] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, games: Sequence[Game], config: ServerConfig, auth: bool = True) -> "SocketServer":
        return cls(games, host=config.host, port=config.port, auth=auth)

    def start(self) -> None:
        """Bind, listen, and start accepting connections in a daemon thread."""
        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server_socket.bind((self.host, self.port))
        server_socket.listen(self.max_clients)
        self.port = server_socket.getsockname()[1]
        self._server_socket = server_socket
        self.running = True
        logger.info("Socket server listening on %s:%d (games: %s)", self.host, self.port, ", ".join(self.games))

        self._accept_thread = threading.Thread(target=self._accept_connections, daemon=True)
        self._accept_thread.start()

    def stop(self) -> None:
        self.running = False
        with self._lock:
            connections = list(self._connections.values())
        for connection in connections:
            self._close_socket(connection.sock)

        if self._server_socket is not None:
            self._close_socket(self._server_socket)
            self._server_socket = None

        for thread in self._threads:
            if thread.is_alive():
                thread.join(1.0)
        self._threads.clear()
        if self._accept_thread is not None and self._accept_thread.is_alive():
            self._accept_thread.join(1.0)
        logger.info("Socket server stopped")

    def serve_forever(self) -> None:
        """Block the calling thread until the accept loop exits."""
        if self._accept_thread is not None:
            self._accept_thread.join()

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def _accept_connections(self) -> None:
        while self.running and self._server_socket is not None:
            try:
                client_socket, addr = self._server_socket.accept()
            except OSError as exc:
                if self.running:
                    logger.error("Error accepting connection: %s", exc)
                break

            client_id = f"{addr[0]}:{addr[1]}"
            connection = _Connection(client_id=client_id, sock=client_socket)
            with self._lock:
                self._connections[client_id] = connection
            logger.info("Client connected: %s", client_id)

            thread = threading.Thread(target=self._handle_client, args=(connection,), daemon=True)
            thread.start()
            self._threads = [existing for existing in self._threads if existing.is_alive()]
            self._threads.append(thread)

    def _handle_client(self, connection: _Connection) -> None:
        buffer = b""
        try:
            while self.running:
                try:
                    data = connection.sock.recv(BUFFER_SIZE)
                except OSError:
                    break
                if not data:
                    break
                lines, buffer = split_lines(buffer + data)
                for line in lines:
                    self._process_line(connection, line)
        finally:
            self._drop(connection)

    def _process_line(self, connection: _Connection, line: bytes) -> None:
        try:
            envelope = decode_message(line)
            if envelope.type == "sync":
                self._on_sync(connection, parse_data(SyncRequest, envelope.data))
            elif envelope.type == "update":
                self._on_update(connection, parse_data(UpdateRequest, envelope.data))
            else:
                raise ProtocolError(f"Unexpected message type from client: {envelope.type}")
        except ActionRejectedError as exc:
            self._send_error(connection, exc)
        except ProtocolError as exc:
            logger.warning("Malformed message from %s: %s", connection.client_id, exc)
            self._send_error(connection, exc)

    def _on_sync(self, connection: _Connection, request: SyncRequest) -> None:
        master = self._master_for(request.game_name)
        previous = (connection.game_name, connection.game_id, connection.player_id)
        with self._lock:
            connection.game_name = request.game_name
            connection.game_id = request.game_id
            connection.player_id = request.player_id
        if previous[0] is not None and previous != (request.game_name, request.game_id, request.player_id):
            self._release_seat(*previous)

        logger.debug("sync from %s: %s:%s player=%r", connection.client_id, request.game_name, request.game_id, request.player_id)
        master.on_sync(request.game_id, request.player_id, request.num_players, request.credentials)

    def _on_update(self, connection: _Connection, request: UpdateRequest) -> None:
        if connection.game_name is None or connection.game_id is None:
            raise ProtocolError("update received before sync")
        if not connection.bound_to(request.game_name, request.game_id) or request.player_id != connection.player_id:
            raise ProtocolError("update does not match the connection's sync binding")
        try:
            action = request.to_action()
        except (KeyError, TypeError, ValueError) as exc:
            raise ProtocolError(f"Invalid action: {exc}") from exc

        master = self._master_for(connection.game_name)
        master.on_update(action, request.state_id, connection.game_id, connection.player_id)

    def _master_for(self, game_name: str) -> Master:
        master = self.masters.get(game_name)
        if master is None:
            raise ProtocolError(f"Unknown game: {game_name}")
        return master

    def _send(self, game_name: str, game_id: str, player_id: str | None, message_type: str, data: dict[str, Any]) -> None:
        payload = encode_message(message_type, data)
        for connection in self._bound_connections(game_name, game_id):
            if connection.player_id == player_id:
                self._write(connection, payload)

    def _send_all(
        self,
        game_name: str,
        game_id: str,
        build: Callable[[str | None], tuple[str, dict[str, Any]]],
    ) -> None:
        for connection in self._bound_connections(game_name, game_id):
            message_type, data = build(connection.player_id)
            self._write(connection, encode_message(message_type, data))

    def _send_error(self, connection: _Connection, error: SyncError) -> None:
        self._write(connection, encode_message("error", error.to_dict()))

    def _bound_connections(self, game_name: str, game_id: str) -> list[_Connection]:
        with self._lock:
            return [connection for connection in self._connections.values() if connection.bound_to(game_name, game_id)]

    def _write(self, connection: _Connection, payload: bytes) -> None:
        try:
            with connection.send_lock:
                connection.sock.sendall(payload)
        except OSError as exc:
            logger.warning("Send to %s failed: %s", connection.client_id, exc)
            self._close_socket(connection.sock)

    def _drop(self, connection: _Connection) -> None:
        with self._lock:
            self._connections.pop(connection.client_id, None)
        self._close_socket(connection.sock)
        logger.info("Client disconnected: %s", connection.client_id)
        if connection.game_name is not None and connection.game_id is not None:
            self._release_seat(connection.game_name, connection.game_id, connection.player_id)

    def _release_seat(self, game_name: str | None, game_id: str | None, player_id: str | None) -> None:
        if game_name is None or game_id is None or player_id is None:
            return
        with self._lock:
            still_seated = any(
                connection.bound_to(game_name, game_id) and connection.player_id == player_id
                for connection in self._connections.values()
            )
        if not still_seated and game_name in self.masters:
            self.masters[game_name].disconnect(game_id, player_id)

    @staticmethod
    def _close_socket(sock: socket.socket) -> None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            logger.debug("Socket already shut down")
        sock.close()
