"""Scripted bot scaffold."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Callable

from ..actions import Action
from .bot import Bot, BotResult

if TYPE_CHECKING:
    from ..game import Game
    from ..state import GameState

Policy = Callable[["GameState", str], Any]


class ScriptedBot(Bot):
    """Runs a user-provided policy callable (sync or async)."""

    def __init__(self, bot_id: str, game: "Game", policy: Policy | None = None):
        super().__init__(bot_id=bot_id, game=game)
        self.policy = policy

    async def play(self, state: "GameState", player_id: str) -> BotResult:
        """Delegate to the configured scripted policy."""
        if self.policy is None:
            raise NotImplementedError("ScriptedBot requires a policy(state, player_id) callable.")
        result = self.policy(state, player_id)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, Action):
            return BotResult(action=result, metadata={"bot_id": self.bot_id})
        return result
