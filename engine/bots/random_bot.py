"""Random baseline bot."""

from __future__ import annotations

import hashlib
import random
from typing import TYPE_CHECKING

from ..actions import make_move
from ..errors import BotError
from .bot import Bot, BotResult

if TYPE_CHECKING:
    from ..game import Game
    from ..state import GameState


class RandomBot(Bot):
    """Chooses uniformly from the moves the game enumerates."""

    def __init__(self, bot_id: str, game: "Game", seed: int | None = None):
        super().__init__(bot_id=bot_id, game=game)
        self._rng = random.Random(seed)

    def reset(self, game_id: str, seed: int) -> None:
        """Reseed deterministically per match."""
        material = f"{seed}:{game_id}:{self.bot_id}".encode("utf-8")
        derived_seed = int.from_bytes(hashlib.sha256(material).digest()[:8], byteorder="big", signed=False)
        self._rng.seed(derived_seed)

    async def play(self, state: "GameState", player_id: str) -> BotResult:
        try:
            options = list(self.game.enumerate(state.G, state.ctx, player_id))
        except NotImplementedError as exc:
            raise BotError(self.bot_id, str(exc)) from exc
        if not options:
            raise BotError(self.bot_id, "No moves available.")

        name, args = self._rng.choice(options)
        return BotResult(
            action=make_move(name, args, player_id),
            metadata={"bot_id": self.bot_id, "options": len(options)},
        )
