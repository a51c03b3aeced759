"""Tests for the in-process transport and its shared authority registry."""

from __future__ import annotations

import logging

from client.client import Client
from client.transport.local_transport import LocalTransport, MasterRegistry
from tictactoe.tictactoe_game import TicTacToeGame


def _local_client(game, registry, player_id, **kwargs) -> Client:
    client = Client(game, multiplayer={"local": True}, player_id=player_id, registry=registry, **kwargs)
    client.connect()
    return client


def test_registry_shares_one_master_per_game_and_id_and_drops_it_at_zero() -> None:
    game = TicTacToeGame()
    registry = MasterRegistry()

    first = _local_client(game, registry, "0")
    second = _local_client(game, registry, "1")
    other_game = _local_client(TicTacToeGame(), registry, "0")

    assert isinstance(first.transport, LocalTransport)
    assert first.transport.master is second.transport.master
    assert other_game.transport.master is not first.transport.master
    assert registry.refcount(game, "default") == 2

    first.close()
    assert registry.refcount(game, "default") == 1

    second.close()
    other_game.close()
    assert registry.refcount(game, "default") == 0
    assert registry.masters() == []


def test_connect_syncs_initial_state_and_metadata() -> None:
    client = _local_client(TicTacToeGame(), MasterRegistry(), "0")

    state = client.get_state()
    assert state is not None
    assert state.state_id == 0
    assert state.is_connected
    assert state.is_active
    assert client.game_metadata is not None
    assert [(player.id, player.is_connected) for player in client.game_metadata.players] == [("0", True)]


def test_move_is_confirmed_and_broadcast_to_every_client() -> None:
    game = TicTacToeGame()
    registry = MasterRegistry()
    player_zero = _local_client(game, registry, "0")
    player_one = _local_client(game, registry, "1")

    player_zero.moves.click_cell(4)

    for client in (player_zero, player_one):
        state = client.get_state()
        assert state.G["cells"][4] == "0"
        assert state.state_id == 1
        assert state.ctx.current_player == "1"
        assert [entry.state_id for entry in client.log] == [0]

    assert player_zero.get_state().is_active is False
    assert player_one.get_state().is_active is True
    assert player_zero.transport.master.get_state("default").state_id == 1


def test_move_reaches_the_other_clients_subscriber() -> None:
    game = TicTacToeGame()
    registry = MasterRegistry()
    player_zero = _local_client(game, registry, "0")
    player_one = _local_client(game, registry, "1")
    seen = []
    player_one.subscribe(seen.append)

    player_zero.moves.click_cell(4)

    assert len(seen) >= 2
    last = seen[-1]
    assert last is not None
    assert last.G["cells"][4] == "0"
    assert last.state_id == 1
    assert last.is_active is True


def test_out_of_turn_move_is_rejected_and_logged(caplog) -> None:
    caplog.set_level(logging.WARNING)
    game = TicTacToeGame()
    registry = MasterRegistry()
    _local_client(game, registry, "0")
    player_one = _local_client(game, registry, "1")

    player_one.moves.click_cell(0)

    assert player_one.get_state().state_id == 0
    assert player_one.get_state().G["cells"][0] is None
    assert player_one.transport.master.get_state("default").state_id == 0
    assert "player not active" in caplog.text


def test_wrong_credentials_are_rejected_and_sender_is_resynced(caplog) -> None:
    caplog.set_level(logging.WARNING)
    game = TicTacToeGame()
    registry = MasterRegistry()
    _local_client(game, registry, "0", credentials="s3cret")
    impostor = _local_client(game, registry, "0", credentials="guess")

    impostor.moves.click_cell(4)

    assert impostor.get_state().state_id == 0
    assert impostor.get_state().G["cells"][4] is None
    assert impostor.log == []
    assert "unauthorized action" in caplog.text


def test_full_game_over_local_transport() -> None:
    game = TicTacToeGame()
    registry = MasterRegistry()
    players = {"0": _local_client(game, registry, "0"), "1": _local_client(game, registry, "1")}

    for player_id, cell in [("0", 0), ("1", 3), ("0", 1), ("1", 4), ("0", 2)]:
        players[player_id].moves.click_cell(cell)

    for client in players.values():
        state = client.get_state()
        assert state.ctx.gameover == {"winner": "0"}
        assert state.is_active is False
        assert [entry.state_id for entry in client.log] == [0, 1, 2, 3, 4]


def test_update_game_id_moves_client_to_a_fresh_match() -> None:
    game = TicTacToeGame()
    registry = MasterRegistry()
    client = _local_client(game, registry, "0")
    client.moves.click_cell(4)

    client.update_game_id("rematch")

    state = client.get_state()
    assert state.state_id == 0
    assert state.G["cells"][4] is None
    assert client.log == []
    assert registry.refcount(game, "default") == 0
    assert registry.refcount(game, "rematch") == 1


def test_update_player_id_resyncs_under_new_seat() -> None:
    game = TicTacToeGame()
    registry = MasterRegistry()
    client = _local_client(game, registry, "0")
    client.moves.click_cell(4)

    client.update_player_id("1")

    state = client.get_state()
    assert state.state_id == 1
    assert state.is_active is True
    assert [entry.state_id for entry in client.log] == [0]
    seats = {player.id: player.is_connected for player in client.game_metadata.players}
    assert seats == {"0": False, "1": True}
