import logging
from typing import Any, Awaitable, Optional

from volna.exceptions import VolnaBotError
from volna.messages import msg

logger = logging.getLogger("Volna.Commands")


# The functions below do not register commands themselves; bot.py calls them.

async def handle_play(manager: Any, media: Any, ctx: Any, url: Optional[str]) -> None:
    """Validate the request, fetch metadata and enqueue the track."""
    voice = getattr(ctx.author, "voice", None)
    if voice is None or voice.channel is None:
        await ctx.reply(msg("JOIN_VOICE_REQUIRED"))
        return
    url = (url or "").strip()
    if not media.validate(url):
        await ctx.reply(msg("INVALID_URL"))
        return
    try:
        track = await media.fetch_metadata(url, requested_by=getattr(ctx.author, "display_name", None))
        result = await manager.enqueue(ctx.guild.id, track, voice.channel, ctx.channel)
    except VolnaBotError as e:
        logger.info("Play rejected guild=%s kind=%s", ctx.guild.id, e.kind)
        await ctx.reply(str(e))
        return
    if result.started:
        await ctx.reply(msg("NOW_PLAYING", title=track.title))
    elif result.position:
        await ctx.reply(msg("ENQUEUED", title=track.title, position=result.position))


async def _run(ctx: Any, op: Awaitable, ok_key: str) -> None:
    try:
        await op
    except VolnaBotError as e:
        await ctx.reply(str(e))
        return
    await ctx.reply(msg(ok_key))


async def handle_pause(manager: Any, ctx: Any) -> None:
    await _run(ctx, manager.pause(ctx.guild.id), "PAUSED")


async def handle_resume(manager: Any, ctx: Any) -> None:
    await _run(ctx, manager.resume(ctx.guild.id), "RESUMED")


async def handle_stop(manager: Any, ctx: Any) -> None:
    await _run(ctx, manager.stop(ctx.guild.id), "STOPPED")


async def handle_skip(manager: Any, ctx: Any) -> None:
    await _run(ctx, manager.skip(ctx.guild.id), "SKIPPED")
