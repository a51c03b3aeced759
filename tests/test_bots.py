"""Tests for bots and the async bot loop."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

import pytest

from client.client import Client
from engine.actions import ActionType, make_move
from engine.bots import BotResult, RandomBot, ScriptedBot, run_bot_loop
from engine.errors import BotError
from engine.game import Game
from engine.state import Ctx, initialize_game
from tictactoe.tictactoe_game import TicTacToeGame


class _NoEnumerateGame(Game):
    name = "opaque"

    def setup(self, ctx: Ctx) -> dict[str, Any]:
        return {}

    @property
    def moves(self) -> Mapping[str, Any]:
        return {"noop": lambda G, ctx: G}


def test_random_bot_picks_an_enumerated_move() -> None:
    game = TicTacToeGame()
    state = initialize_game(game)
    bot = RandomBot("random-0", game, seed=11)

    result = asyncio.run(bot.play(state, "0"))

    assert result.action.type is ActionType.MAKE_MOVE
    assert result.action.payload.type == "click_cell"
    assert result.action.payload.player_id == "0"
    assert result.action.payload.args[0] in range(9)
    assert result.metadata == {"bot_id": "random-0", "options": 9}


def test_random_bot_reset_is_deterministic() -> None:
    game = TicTacToeGame()
    state = initialize_game(game)
    first = RandomBot("random", game)
    second = RandomBot("random", game)
    first.reset("match", seed=5)
    second.reset("match", seed=5)

    picks_first = [asyncio.run(first.play(state, "0")).action.payload.args for _ in range(5)]
    picks_second = [asyncio.run(second.play(state, "0")).action.payload.args for _ in range(5)]

    assert picks_first == picks_second


def test_random_bot_errors_without_moves_or_enumerate() -> None:
    game = TicTacToeGame()
    full = initialize_game(game).evolve(G={"cells": ["0", "1"] * 4 + ["0"]})

    with pytest.raises(BotError, match="No moves available"):
        asyncio.run(RandomBot("r", game).play(full, "0"))

    opaque = _NoEnumerateGame()
    with pytest.raises(BotError) as exc_info:
        asyncio.run(RandomBot("r", opaque).play(initialize_game(opaque), "0"))
    assert exc_info.value.to_dict()["bot_id"] == "r"


def test_scripted_bot_supports_sync_and_async_policies() -> None:
    game = TicTacToeGame()
    state = initialize_game(game)

    sync_bot = ScriptedBot("s", game, policy=lambda state, player_id: make_move("click_cell", (0,), player_id))

    async def _async_policy(state, player_id):
        return BotResult(action=make_move("click_cell", (8,), player_id), metadata={"why": "corner"})

    async_bot = ScriptedBot("a", game, policy=_async_policy)

    sync_result = asyncio.run(sync_bot.play(state, "0"))
    async_result = asyncio.run(async_bot.play(state, "0"))

    assert sync_result.action.payload.args == (0,)
    assert sync_result.metadata == {"bot_id": "s"}
    assert async_result.action.payload.args == (8,)
    assert async_result.metadata == {"why": "corner"}


def test_scripted_bot_without_policy_raises() -> None:
    game = TicTacToeGame()

    with pytest.raises(NotImplementedError):
        asyncio.run(ScriptedBot("s", game).play(initialize_game(game), "0"))


def test_bot_loop_plays_tictactoe_to_completion() -> None:
    client = Client(TicTacToeGame(), ai=lambda bot_id, game: RandomBot(bot_id, game, seed=21))

    steps = asyncio.run(run_bot_loop(client, max_steps=20))

    state = client.get_state()
    assert state.ctx.gameover is not None
    assert 5 <= steps <= 9
    assert len(client.log) == steps
    assert [entry.state_id for entry in client.log] == list(range(steps))


def test_bot_loop_respects_max_steps() -> None:
    client = Client(TicTacToeGame(), ai=lambda bot_id, game: RandomBot(bot_id, game, seed=1))

    steps = asyncio.run(run_bot_loop(client, max_steps=2))

    assert steps == 2
    assert client.get_state().state_id == 2
