"""Tests for the client facade: identity, activity, subscriptions, and configuration."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from client.client import Client
from client.store import Store
from client.transport.base import NullTransport, Transport
from engine.actions import ActionType, sync
from engine.bots import RandomBot
from engine.game import Game
from engine.state import Ctx, initialize_game
from tictactoe.tictactoe_game import TicTacToeGame


class _RecordingTransport(Transport):
    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.init_kwargs = kwargs
        self.actions: list[tuple[Any, Any]] = []
        self.connect_calls = 0

    def on_action(self, state: Any, action: Any) -> None:
        self.actions.append((state, action))

    def connect(self) -> None:
        self.connect_calls += 1
        self.is_connected = True
        self._callback()


def _increment(G: Mapping[str, Any], ctx: Ctx) -> dict[str, Any]:
    return {**G, "count": G["count"] + 1}


class _CounterGame(Game):
    name = "counter"

    def setup(self, ctx: Ctx) -> dict[str, Any]:
        return {"count": 0}

    @property
    def moves(self) -> Mapping[str, Any]:
        return {"increment": _increment}


def _play(client: Client, cells: list[int]) -> None:
    for cell in cells:
        client.moves.click_cell(cell)


def test_single_player_resolves_current_player_at_call_time() -> None:
    client = Client(TicTacToeGame())

    _play(client, [0, 1])

    state = client.get_state()
    assert state.G["cells"][:2] == ["0", "1"]
    assert state.state_id == 2
    assert state.is_active
    assert state.is_connected


def test_bound_player_is_inactive_out_of_turn() -> None:
    client = Client(TicTacToeGame(), player_id="1")

    assert client.get_state().is_active is False

    client.moves.click_cell(0)

    assert client.get_state().state_id == 0
    assert client.log == []


def test_gameover_makes_client_inactive() -> None:
    client = Client(TicTacToeGame())

    _play(client, [0, 3, 1, 4, 2])

    state = client.get_state()
    assert state.ctx.gameover == {"winner": "0"}
    assert state.is_active is False


def test_moves_and_events_are_exposed_by_name() -> None:
    client = Client(TicTacToeGame())

    assert set(client.moves) == {"click_cell"}
    assert {"end_turn", "end_game"} <= set(client.events)
    assert client.moves.click_cell is client.moves["click_cell"]


def test_events_dispatch_game_events() -> None:
    client = Client(_CounterGame())

    client.events.end_turn()

    assert client.get_state().ctx.current_player == "1"
    assert client.log[0].action.type is ActionType.GAME_EVENT


def test_subscribe_chains_callbacks_and_unsubscribe_restores_previous_chain() -> None:
    client = Client(TicTacToeGame())
    calls: list[str] = []

    client.subscribe(lambda state: calls.append("a"))
    unsubscribe_b = client.subscribe(lambda state: calls.append("b"))
    assert calls == ["a", "b"]

    client.moves.click_cell(0)
    assert calls == ["a", "b", "a", "b"]

    unsubscribe_b()
    client.moves.click_cell(1)
    assert calls == ["a", "b", "a", "b", "a"]


def test_subscribers_receive_projected_state() -> None:
    client = Client(TicTacToeGame())
    seen: list[Any] = []

    client.subscribe(seen.append)
    client.moves.click_cell(4)

    assert seen[-1].G["cells"][4] == "0"
    assert seen[-1].state_id == 1


def test_multiplayer_state_is_none_until_first_sync() -> None:
    client = Client(TicTacToeGame(), multiplayer={"transport": _RecordingTransport}, player_id="0")

    assert client.get_state() is None

    client.store.dispatch(sync(initialize_game(client.game), []))

    state = client.get_state()
    assert state.state_id == 0
    assert state.is_active is True


def test_multiplayer_client_without_player_is_never_active() -> None:
    client = Client(TicTacToeGame(), multiplayer={"transport": _RecordingTransport})
    client.store.dispatch(sync(initialize_game(client.game), []))

    assert client.get_state().is_active is False


def test_custom_transport_receives_binding_kwargs() -> None:
    client = Client(
        TicTacToeGame(),
        multiplayer={"transport": _RecordingTransport},
        game_id="match-1",
        player_id="0",
        credentials="secret",
        num_players=2,
    )

    assert isinstance(client.transport, _RecordingTransport)
    assert client.transport.init_kwargs == {
        "store": client.store,
        "game_name": "tictactoe",
        "game_id": "match-1",
        "player_id": "0",
        "credentials": "secret",
        "num_players": 2,
    }


def test_actions_are_relayed_with_pre_action_state_except_client_only() -> None:
    client = Client(TicTacToeGame(), multiplayer={"transport": _RecordingTransport}, player_id="0", credentials="secret")
    client.store.dispatch(sync(initialize_game(client.game), []))

    client.moves.click_cell(4)
    client.reset()

    assert len(client.transport.actions) == 1
    state, action = client.transport.actions[0]
    assert state.state_id == 0
    assert action.type is ActionType.MAKE_MOVE
    assert action.payload.player_id == "0"
    assert action.payload.credentials == "secret"


def test_connect_notifies_subscribers() -> None:
    client = Client(TicTacToeGame(), multiplayer={"transport": _RecordingTransport}, player_id="0")
    calls: list[Any] = []
    client.subscribe(calls.append)

    client.connect()

    assert client.transport.connect_calls == 1
    assert len(calls) == 2


def test_invalid_multiplayer_spec_is_logged_and_disconnected(caplog) -> None:
    caplog.set_level(logging.ERROR, logger="client.client")

    for spec in ({"bogus": True}, {"local": True, "server": "x:1"}, "remote", {"transport": "not-a-class"}):
        client = Client(TicTacToeGame(), multiplayer=spec)
        assert isinstance(client.transport, NullTransport)
        assert client.transport.is_connected is False
        assert client.get_state() is None

    messages = [record.getMessage() for record in caplog.records if record.levelno == logging.ERROR]
    assert len(messages) == 4
    assert all("invalid multiplayer spec" in message for message in messages)


def test_invalid_server_address_falls_back_to_disconnected_transport(caplog) -> None:
    caplog.set_level(logging.ERROR, logger="client.client")

    client = Client(TicTacToeGame(), multiplayer={"server": "localhost:not-a-port"})

    assert isinstance(client.transport, NullTransport)
    assert client.transport.is_connected is False
    assert "invalid multiplayer spec" in caplog.text


def test_enhancer_wraps_the_store() -> None:
    seen: list[ActionType] = []

    def _recording_enhancer(create):
        def _create(reducer, initial_state) -> Store:
            store = create(reducer, initial_state)

            def _wrap(inner):
                def _dispatch(action):
                    seen.append(action.type)
                    return inner(action)

                return _dispatch

            store.wrap_dispatch(_wrap)
            return store

        return _create

    client = Client(TicTacToeGame(), enhancer=_recording_enhancer)
    client.moves.click_cell(0)
    client.reset()

    assert seen == [ActionType.MAKE_MOVE, ActionType.RESET]
    assert client.log == []


def test_update_player_id_rebinds_dispatchers_and_transport() -> None:
    client = Client(TicTacToeGame(), multiplayer={"transport": _RecordingTransport}, player_id="0")
    client.store.dispatch(sync(initialize_game(client.game), []))

    client.update_player_id("1")
    client.moves.click_cell(0)

    assert client.transport.player_id == "1"
    assert client.get_state().is_active is False
    _, action = client.transport.actions[-1]
    assert action.payload.player_id == "1"


def test_update_credentials_and_game_id_reach_transport_and_dispatchers() -> None:
    client = Client(TicTacToeGame(), multiplayer={"transport": _RecordingTransport}, player_id="0")
    client.store.dispatch(sync(initialize_game(client.game), []))

    client.update_credentials("fresh")
    client.update_game_id("match-2")
    client.moves.click_cell(0)

    assert client.transport.credentials == "fresh"
    assert client.transport.game_id == "match-2"
    _, action = client.transport.actions[-1]
    assert action.payload.credentials == "fresh"


def test_undo_and_redo_in_single_player() -> None:
    client = Client(_CounterGame())
    client.moves.increment()
    client.moves.increment()

    client.undo()
    assert client.get_state().G == {"count": 1}

    client.redo()
    assert client.get_state().G == {"count": 2}
    assert [entry.state_id for entry in client.log] == [0, 1]


def test_local_undo_leaves_the_log_unchanged() -> None:
    client = Client(_CounterGame())
    client.moves.increment()
    client.moves.increment()
    before = [(entry.state_id, entry.action.type.value) for entry in client.log]

    client.undo()

    assert client.get_state().G == {"count": 1}
    assert [(entry.state_id, entry.action.type.value) for entry in client.log] == before


def test_debug_client_traces_dispatched_actions(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="client.middleware")
    client = Client(TicTacToeGame(), debug=True)

    client.moves.click_cell(4)

    assert any("dispatch MAKE_MOVE" in record.getMessage() for record in caplog.records)


def test_step_lets_bot_move_and_attaches_metadata() -> None:
    client = Client(TicTacToeGame(), ai=lambda bot_id, game: RandomBot(bot_id, game, seed=3))

    result = asyncio.run(client.step())

    assert result is not None
    assert client.get_state().state_id == 1
    assert client.log[0].action.payload.metadata["bot_id"] == "tictactoe-ai"


def test_step_is_a_no_op_without_bot_or_in_multiplayer() -> None:
    single = Client(TicTacToeGame())
    multi = Client(TicTacToeGame(), multiplayer={"transport": _RecordingTransport}, ai=RandomBot("b", TicTacToeGame()))

    assert asyncio.run(single.step()) is None
    assert multi.bot is None
    assert asyncio.run(multi.step()) is None
