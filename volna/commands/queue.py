from typing import Any, List

from volna.messages import msg
from volna.models import Track
from volna.utils import MESSAGE_LIMIT, truncate


def format_queue(tracks: List[Track], limit: int = MESSAGE_LIMIT) -> str:
    """Numbered listing of the queue, cut short to fit into one message."""
    if not tracks:
        return msg("QUEUE_EMPTY")
    lines = [msg("QUEUE_HEADER")]
    size = len(lines[0])
    for index, track in enumerate(tracks, start=1):
        line = f"{index}. {truncate(track.title, 80)}"
        more = msg("QUEUE_MORE", count=len(tracks) - index + 1)
        # keep room for the "and N more" trailer
        if size + len(line) + len(more) + 2 > limit:
            lines.append(more)
            break
        lines.append(line)
        size += len(line) + 1
    return "\n".join(lines)


async def show_queue(manager: Any, ctx: Any) -> None:
    await ctx.reply(format_queue(manager.snapshot(ctx.guild.id)))
