import types

import pytest

from volna.commands.help import show_help
from volna.commands.playback import handle_pause, handle_play, handle_resume, handle_skip, handle_stop
from volna.commands.queue import format_queue, show_queue
from volna.exceptions import MetadataFetchFailed
from volna.media import MediaResolver
from volna.messages import msg, set_language
from volna.models import PlaybackStatus, Track
from volna.player import QueueManager

from test_high_priority import FakeMedia, FakeTextChannel, FakeTransport, make_voice_channel

URL_A = "https://www.youtube.com/watch?v=aaaaaaaaaaa"
URL_B = "https://youtu.be/bbbbbbbbbbb"
URL_BROKEN = "https://www.youtube.com/watch?v=zzzzzzzzzzz"


class CommandMedia(FakeMedia):
    TITLES = {URL_A: "Song A", URL_B: "Song B"}

    validate = staticmethod(MediaResolver.validate)

    async def fetch_metadata(self, url, requested_by=None):
        if url not in self.TITLES:
            raise MetadataFetchFailed(msg("METADATA_FAILED"))
        return Track(self.TITLES[url], url, requested_by)


class FakeCtx:
    def __init__(self, in_voice=True, guild_id=1):
        voice = types.SimpleNamespace(channel=make_voice_channel(guild_id)) if in_voice else None
        self.author = types.SimpleNamespace(voice=voice, display_name="listener")
        self.guild = types.SimpleNamespace(id=guild_id)
        self.channel = FakeTextChannel()
        self.replies = []

    async def reply(self, content):
        self.replies.append(content)


@pytest.fixture(autouse=True)
def _russian():
    set_language("ru")
    yield
    set_language("ru")


@pytest.fixture
def manager():
    return QueueManager(CommandMedia(), FakeTransport())


@pytest.mark.asyncio
async def test_play_requires_voice_channel(manager):
    ctx = FakeCtx(in_voice=False)
    await handle_play(manager, manager._media, ctx, URL_A)
    assert ctx.replies == [msg("JOIN_VOICE_REQUIRED")]
    assert manager.status(1) is PlaybackStatus.ABSENT


@pytest.mark.asyncio
@pytest.mark.parametrize("url", [None, "", "not a url", "https://example.com/watch?v=aaaaaaaaaaa"])
async def test_play_rejects_invalid_url(manager, url):
    ctx = FakeCtx()
    await handle_play(manager, manager._media, ctx, url)
    assert ctx.replies == [msg("INVALID_URL")]


@pytest.mark.asyncio
async def test_play_then_enqueue_replies(manager):
    ctx = FakeCtx()
    await handle_play(manager, manager._media, ctx, URL_A)
    await handle_play(manager, manager._media, ctx, URL_B)
    assert ctx.replies == [
        msg("NOW_PLAYING", title="Song A"),
        msg("ENQUEUED", title="Song B", position=2),
    ]
    assert manager.snapshot(1)[0].requested_by == "listener"


@pytest.mark.asyncio
async def test_metadata_failure_creates_nothing(manager):
    ctx = FakeCtx()
    await handle_play(manager, manager._media, ctx, URL_BROKEN)
    assert ctx.replies == [msg("METADATA_FAILED")]
    assert manager.get(1) is None
    assert manager._transport.joined == []


@pytest.mark.asyncio
async def test_connection_failure_reply():
    manager = QueueManager(CommandMedia(), FakeTransport(fail=True))
    ctx = FakeCtx()
    await handle_play(manager, manager._media, ctx, URL_A)
    assert ctx.replies == [msg("VOICE_CONNECT_FAIL")]
    assert manager.status(1) is PlaybackStatus.ABSENT


@pytest.mark.asyncio
async def test_controls_without_session(manager):
    ctx = FakeCtx()
    await handle_pause(manager, ctx)
    await handle_resume(manager, ctx)
    await handle_stop(manager, ctx)
    await handle_skip(manager, ctx)
    assert ctx.replies == [
        msg("NOTHING_PLAYING"),
        msg("NOTHING_PLAYING"),
        msg("NOTHING_PLAYING"),
        msg("NOTHING_TO_SKIP"),
    ]


@pytest.mark.asyncio
async def test_controls_with_session(manager):
    ctx = FakeCtx()
    await handle_play(manager, manager._media, ctx, URL_A)
    await handle_play(manager, manager._media, ctx, URL_B)
    ctx.replies.clear()
    await handle_pause(manager, ctx)
    await handle_resume(manager, ctx)
    await handle_resume(manager, ctx)
    await handle_skip(manager, ctx)
    await handle_stop(manager, ctx)
    assert ctx.replies == [
        msg("PAUSED"),
        msg("RESUMED"),
        msg("ALREADY_PLAYING"),
        msg("SKIPPED"),
        msg("STOPPED"),
    ]
    assert manager.status(1) is PlaybackStatus.ABSENT


@pytest.mark.asyncio
async def test_queue_listing(manager):
    ctx = FakeCtx()
    await show_queue(manager, ctx)
    await handle_play(manager, manager._media, ctx, URL_A)
    await handle_play(manager, manager._media, ctx, URL_B)
    await show_queue(manager, ctx)
    assert ctx.replies[0] == msg("QUEUE_EMPTY")
    assert ctx.replies[-1] == "**Очередь:**\n1. Song A\n2. Song B"


def test_format_queue_fits_message_limit():
    tracks = [Track(f"Track number {i}", "u") for i in range(50)]
    text = format_queue(tracks, limit=200)
    assert len(text) <= 200
    lines = text.split("\n")
    assert lines[1] == "1. Track number 0"
    shown = len(lines) - 2
    assert lines[-1] == msg("QUEUE_MORE", count=50 - shown)


def test_format_queue_truncates_long_titles():
    text = format_queue([Track("x" * 200, "u")])
    assert text.split("\n")[1] == "1. " + "x" * 79 + "…"


@pytest.mark.asyncio
async def test_help_lists_commands():
    ctx = FakeCtx()
    await show_help(ctx, "!")
    (reply,) = ctx.replies
    for name in ("play", "pause", "resume", "stop", "queue", "skip"):
        assert f"`!{name}" in reply


@pytest.mark.asyncio
async def test_english_replies(manager):
    set_language("en")
    ctx = FakeCtx()
    await handle_skip(manager, ctx)
    assert ctx.replies == ["Queue is empty, nothing to skip!"]
