"""Bot implementations."""

from .bot import Bot, BotResult, run_bot_loop
from .random_bot import RandomBot
from .scripted_bot import ScriptedBot

__all__ = ["Bot", "BotResult", "RandomBot", "ScriptedBot", "run_bot_loop"]
