"""TCP transport speaking newline-delimited JSON envelopes to a ``SocketServer``."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Any, Mapping

from engine.actions import Action, reset, sync, update
from engine.errors import ProtocolError
from engine.master import GameMetadata
from engine.protocol import (
    ErrorPush,
    MetadataPush,
    SyncPush,
    SyncRequest,
    UpdatePush,
    UpdateRequest,
    decode_message,
    encode_message,
    parse_data,
)
from engine.serialize import split_lines
from engine.settings import DEFAULT_SOCKET_TIMEOUT, parse_address

from .base import Transport

logger = logging.getLogger(__name__)

BUFFER_SIZE = 4096


class SocketTransport(Transport):
    """Reaches a remote authority over TCP.

    A daemon thread reads pushes and dispatches them into the store; sends
    from the caller thread are serialized by a per-socket lock. There is no
    reconnect loop: EOF or a socket error flips ``is_connected`` to ``False``.
    """

    def __init__(self, *, server: str | None = "", socket_opts: Mapping[str, Any] | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.host, self.port = parse_address(server)
        opts = dict(socket_opts or {})
        self.timeout = float(opts.get("timeout", DEFAULT_SOCKET_TIMEOUT))
        self.buffer_size = int(opts.get("buffer_size", BUFFER_SIZE))
        self._socket: socket.socket | None = None
        self._send_lock = threading.Lock()
        self._receive_thread: threading.Thread | None = None
        self._stop = threading.Event()

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def connect(self) -> None:
        if self._socket is not None:
            return
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as exc:
            logger.warning("Could not connect to %s: %s", self.address, exc)
            self.is_connected = False
            self._callback()
            return

        sock.settimeout(None)
        self._socket = sock
        self._stop.clear()
        self.is_connected = True
        logger.info("Connected to %s as player %r (game %s)", self.address, self.player_id, self.game_id)

        self._receive_thread = threading.Thread(target=self._receive_loop, args=(sock,), daemon=True)
        self._receive_thread.start()
        self.request_sync()
        self._callback()

    def close(self) -> None:
        self._stop.set()
        sock = self._socket
        self._socket = None
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                logger.debug("Socket already shut down")
            sock.close()
        if self._receive_thread is not None and self._receive_thread is not threading.current_thread():
            self._receive_thread.join(timeout=self.timeout)
        self._receive_thread = None
        if self.is_connected:
            self.is_connected = False
            self._callback()

    def request_sync(self) -> None:
        self._send(
            "sync",
            SyncRequest(
                game_name=self.game_name,
                game_id=self.game_id,
                player_id=self.player_id,
                num_players=self.num_players,
                credentials=self.credentials,
            ),
        )

    def on_action(self, state: Any, action: Action) -> None:
        if state is None:
            logger.warning("Not relaying %s before the first sync.", action.type.value)
            return
        self._send(
            "update",
            UpdateRequest(
                game_name=self.game_name,
                game_id=self.game_id,
                player_id=self.player_id,
                state_id=state.state_id,
                action=action.to_dict(),
            ),
        )

    def update_game_id(self, game_id: str) -> None:
        self.game_id = game_id
        self._rebind()

    def update_player_id(self, player_id: str | None) -> None:
        self.player_id = player_id
        self._rebind()

    def _rebind(self) -> None:
        if self.store is not None:
            self.store.dispatch(reset(None))
        if self.is_connected:
            self.request_sync()

    def _send(self, message_type: str, data: Any) -> bool:
        sock = self._socket
        if sock is None or not self.is_connected:
            logger.debug("Dropping %s message: not connected", message_type)
            return False
        payload = encode_message(message_type, data)
        try:
            with self._send_lock:
                sock.sendall(payload)
        except OSError as exc:
            logger.warning("Send to %s failed: %s", self.address, exc)
            self._mark_disconnected()
            return False
        logger.debug("Sent %s message (%d bytes)", message_type, len(payload))
        return True

    def _receive_loop(self, sock: socket.socket) -> None:
        buffer = b""
        try:
            while not self._stop.is_set():
                try:
                    data = sock.recv(self.buffer_size)
                except OSError as exc:
                    if not self._stop.is_set():
                        logger.warning("Receive from %s failed: %s", self.address, exc)
                    break
                if not data:
                    logger.info("Connection closed by %s", self.address)
                    break
                lines, buffer = split_lines(buffer + data)
                for line in lines:
                    self._handle_line(line)
        finally:
            if not self._stop.is_set():
                self._mark_disconnected()

    def _handle_line(self, line: bytes) -> None:
        try:
            envelope = decode_message(line)
            if envelope.type == "error":
                error = parse_data(ErrorPush, envelope.data)
                logger.warning("Authority error (%s): %s", error.type, error.message)
                return
            if envelope.type == "metadata":
                metadata = parse_data(MetadataPush, envelope.data)
                if metadata.game_id == self.game_id:
                    self._metadata_callback(GameMetadata.from_dict(metadata.model_dump()))
                return
            if envelope.type == "sync":
                push = parse_data(SyncPush, envelope.data)
                action = sync(push.to_state(), push.to_log())
            else:
                push = parse_data(UpdatePush, envelope.data)
                action = update(push.to_state(), push.to_deltalog())
        except (ProtocolError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Dropping malformed push from %s: %s", self.address, exc)
            return

        if push.game_id != self.game_id:
            logger.debug("Ignoring %s push for game %s", envelope.type, push.game_id)
            return
        if self.store is not None:
            self.store.dispatch(action)

    def _mark_disconnected(self) -> None:
        if not self.is_connected:
            return
        self.is_connected = False
        self._callback()
