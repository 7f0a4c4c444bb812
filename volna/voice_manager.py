"""
Voice connection management.
Joins/leaves voice channels and reports when a connection is torn down.
"""

import asyncio
import logging
from typing import Callable, Optional

import discord

from volna.exceptions import ConnectionFailed
from volna.messages import msg
from volna.metrics import metric_inc

logger = logging.getLogger("Volna.VoiceManager")

DestroyedCallback = Callable[[discord.VoiceClient], None]


class GuildVoiceClient(discord.VoiceClient):
    """Voice client that reports its own destruction exactly once."""

    _on_destroyed: Optional[DestroyedCallback] = None
    _destroyed: bool = False

    def set_destroyed_callback(self, callback: Optional[DestroyedCallback]) -> None:
        self._on_destroyed = callback

    def cleanup(self) -> None:
        super().cleanup()
        if self._destroyed:
            return
        self._destroyed = True
        if self._on_destroyed is not None:
            try:
                self._on_destroyed(self)
            except Exception:
                logger.exception("Destroyed callback failed (guild: %s)", self.guild.id)


class VoiceTransport:
    """Thin wrapper over discord.py voice connect/disconnect."""

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    async def join(self, channel, on_destroyed: Optional[DestroyedCallback] = None):
        guild = channel.guild
        vc = guild.voice_client
        try:
            if vc is not None and vc.is_connected():
                if vc.channel.id != channel.id:
                    await vc.move_to(channel)
            else:
                vc = await channel.connect(timeout=self.timeout, cls=GuildVoiceClient, self_deaf=True)
        except (asyncio.TimeoutError, discord.DiscordException, OSError) as e:
            metric_inc("voice_connect_fail")
            logger.exception("Connect failed (guild: %s channel: %s)", guild.id, channel.id)
            raise ConnectionFailed(msg("VOICE_CONNECT_FAIL")) from e
        if isinstance(vc, GuildVoiceClient):
            vc.set_destroyed_callback(on_destroyed)
        logger.info("Connected to voice channel: %s (guild: %s)", channel.name, guild.id)
        return vc

    async def release(self, vc) -> None:
        if vc is None or not vc.is_connected():
            return
        try:
            await vc.disconnect(force=True)
        except (discord.DiscordException, OSError):
            logger.warning("Voice disconnect failed (guild: %s)", vc.guild.id, exc_info=True)
