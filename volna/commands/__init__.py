"""Command groups for Volna Bot.

Submodules hold the logic behind each chat command so bot.py only registers them.
Handlers receive the QueueManager / MediaResolver they need plus the command context.
"""

__all__ = [
    "help",
    "playback",
    "queue",
]
