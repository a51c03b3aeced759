"""Bot interface used by ``Client.step`` and the bot loop."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..actions import Action

if TYPE_CHECKING:
    from client.client import Client

    from ..game import Game
    from ..state import GameState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotResult:
    """The action a bot chose plus optional diagnostics attached to its payload."""

    action: Action
    metadata: dict[str, Any] = field(default_factory=dict)


class Bot(ABC):
    """Base interface for automated players driving a client."""

    def __init__(self, bot_id: str, game: "Game"):
        self.bot_id = bot_id
        self.game = game

    def reset(self, game_id: str, seed: int) -> None:
        """Reset internal state before a new match."""

    @abstractmethod
    async def play(self, state: "GameState", player_id: str) -> BotResult:
        """Return the next action for ``player_id``."""


async def run_bot_loop(client: "Client", max_steps: int = 100) -> int:
    """Let ``client``'s bot play until the game ends; return the number of steps taken."""
    steps = 0
    while steps < max_steps:
        state = client.get_state()
        if state is None or state.ctx.gameover is not None:
            break
        result = await client.step()
        if result is None:
            break
        steps += 1
    logger.debug("Bot loop finished after %d step(s)", steps)
    return steps
