from typing import Any

from volna.messages import msg


async def show_help(ctx: Any, prefix: str) -> None:
    await ctx.reply(msg("HELP", prefix=prefix))
