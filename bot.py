#!/usr/bin/env python3

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any, Dict, Optional

import discord
from discord.ext import commands

from volna.config import load_env_file, load_config, get_token
from volna.exceptions import ConfigurationError
from volna.logging_setup import setup_logging
from volna.media import MediaResolver
from volna.messages import msg, set_language
from volna.metrics import metrics_snapshot
from volna.player import QueueManager
from volna.voice_manager import VoiceTransport
from volna.commands import help as cmd_help
from volna.commands import playback as cmd_playback
from volna.commands import queue as cmd_queue

VERSION: str = "v1.2.0"

logger = logging.getLogger("Volna")


class VolnaBot(commands.Bot):
    def __init__(self, config: Dict[str, Any], media: Optional[Any] = None, transport: Optional[Any] = None) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.voice_states = True
        super().__init__(
            command_prefix=config["prefix"],
            intents=intents,
            help_command=None,
            case_insensitive=True,
        )
        self.config = config
        self.media = media if media is not None else MediaResolver(
            user_agent=config["user_agent"],
            workers=config["ytdl_workers"],
        )
        self.manager = QueueManager(
            self.media,
            transport if transport is not None else VoiceTransport(),
            max_queue_size=config["max_queue_size"],
        )
        register_commands(self)

    async def on_ready(self) -> None:
        logger.info("Bot ready: %s (ID: %s) %s", self.user, self.user.id, VERSION)
        activity = discord.Activity(type=discord.ActivityType.listening, name=self.config["activity_text"])
        await self.change_presence(activity=activity)

    async def on_voice_state_update(self, member: discord.Member, before, after) -> None:
        if self.user is None or member.id != self.user.id:
            return
        # the bot itself left a channel without joining another one
        if before.channel is not None and after.channel is None:
            await self.manager.handle_disconnect(before.channel.guild.id)

    async def on_disconnect(self) -> None:
        logger.warning("Gateway connection lost")

    async def on_resumed(self) -> None:
        logger.info("Gateway session resumed")

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        if isinstance(error, commands.CommandNotFound):
            return
        logger.error("Command error: %s", error, exc_info=error)
        try:
            await ctx.reply(msg("COMMAND_ERROR"))
        except discord.HTTPException:
            logger.debug("Failed to send command error reply", exc_info=True)

    async def close(self) -> None:
        await self.manager.shutdown()
        await super().close()


def register_commands(bot: VolnaBot) -> None:
    @bot.command(name="play")
    @commands.guild_only()
    async def text_play(ctx, url: Optional[str] = None):
        await cmd_playback.handle_play(bot.manager, bot.media, ctx, url)

    @bot.command(name="pause")
    @commands.guild_only()
    async def text_pause(ctx):
        await cmd_playback.handle_pause(bot.manager, ctx)

    @bot.command(name="resume")
    @commands.guild_only()
    async def text_resume(ctx):
        await cmd_playback.handle_resume(bot.manager, ctx)

    @bot.command(name="stop")
    @commands.guild_only()
    async def text_stop(ctx):
        await cmd_playback.handle_stop(bot.manager, ctx)

    @bot.command(name="skip")
    @commands.guild_only()
    async def text_skip(ctx):
        await cmd_playback.handle_skip(bot.manager, ctx)

    @bot.command(name="queue")
    @commands.guild_only()
    async def text_queue(ctx):
        await cmd_queue.show_queue(bot.manager, ctx)

    @bot.command(name="help")
    async def text_help(ctx):
        await cmd_help.show_help(ctx, bot.config["prefix"])


async def run_with_reconnect(client, token: str, delay: float, stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the client, logging in again after a fixed delay whenever it dies with an error.

    Returns once the client shuts down cleanly or ``stop_event`` is set.
    """
    if stop_event is None:
        stop_event = asyncio.Event()
    while not stop_event.is_set():
        try:
            await client.start(token)
        except Exception:
            logger.exception("Client error; logging in again in %ss", delay)
        else:
            return
        if not client.is_closed():
            await client.close()
        client.clear()
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass


async def _serve(bot: VolnaBot, token: str) -> None:
    stop_event = asyncio.Event()

    def _request_shutdown():
        logger.info("Signal received: shutting down")
        stop_event.set()
        asyncio.ensure_future(bot.close())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown)
        except (NotImplementedError, RuntimeError):
            # Windows has no add_signal_handler
            pass
    try:
        await run_with_reconnect(bot, token, bot.config["reconnect_delay_seconds"], stop_event)
    finally:
        if not bot.is_closed():
            await bot.close()
        bot.media.shutdown()
        logger.info("Metrics at shutdown: %s", metrics_snapshot())


def main() -> int:
    load_env_file()
    config = load_config()
    setup_logging(config)
    set_language(config["language"])
    try:
        token = get_token()
    except ConfigurationError as e:
        logger.error("Token missing: %s", e)
        return 1
    bot = VolnaBot(config)
    asyncio.run(_serve(bot, token))
    return 0


if __name__ == "__main__":
    sys.exit(main())
