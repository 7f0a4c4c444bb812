import asyncio
import types

import discord
import pytest

from volna.exceptions import ConnectionFailed
from volna.messages import msg, set_language
from volna.metrics import metrics_snapshot, reset_metrics
from volna.voice_manager import GuildVoiceClient, VoiceTransport


class FakeGuildVoice:
    def __init__(self, channel, connected=True, disconnect_error=None):
        self.channel = channel
        self.guild = channel.guild
        self.connected = connected
        self.disconnect_error = disconnect_error
        self.moves = []
        self.disconnects = []

    def is_connected(self):
        return self.connected

    async def move_to(self, channel):
        self.moves.append(channel)
        self.channel = channel

    async def disconnect(self, force=False):
        self.disconnects.append(force)
        if self.disconnect_error is not None:
            raise self.disconnect_error
        self.connected = False


class FakeVoiceChannel:
    def __init__(self, channel_id, guild, connect_result=None, connect_error=None):
        self.id = channel_id
        self.name = f"voice-{channel_id}"
        self.guild = guild
        self.connect_result = connect_result
        self.connect_error = connect_error
        self.connect_calls = []

    async def connect(self, **kwargs):
        self.connect_calls.append(kwargs)
        if self.connect_error is not None:
            raise self.connect_error
        return self.connect_result


def make_guild(guild_id=1):
    return types.SimpleNamespace(id=guild_id, voice_client=None)


def bare_voice_client(channel):
    # skips VoiceClient.__init__, which needs a live gateway connection
    vc = GuildVoiceClient.__new__(GuildVoiceClient)
    vc.channel = channel
    return vc


@pytest.fixture(autouse=True)
def _reset():
    set_language("ru")
    reset_metrics()
    yield


@pytest.mark.asyncio
async def test_join_connects_with_guild_voice_client():
    guild = make_guild()
    channel = FakeVoiceChannel(10, guild)
    channel.connect_result = bare_voice_client(channel)
    destroyed = []

    vc = await VoiceTransport(timeout=5).join(channel, on_destroyed=destroyed.append)

    assert vc is channel.connect_result
    assert channel.connect_calls == [{"timeout": 5, "cls": GuildVoiceClient, "self_deaf": True}]
    assert vc._on_destroyed == destroyed.append


@pytest.mark.asyncio
async def test_join_reuses_or_moves_existing_client():
    guild = make_guild()
    here = FakeVoiceChannel(10, guild)
    there = FakeVoiceChannel(11, guild)
    existing = FakeGuildVoice(here)
    guild.voice_client = existing
    transport = VoiceTransport()

    assert await transport.join(here) is existing
    assert existing.moves == []

    assert await transport.join(there) is existing
    assert existing.moves == [there]
    assert here.connect_calls == [] and there.connect_calls == []


@pytest.mark.asyncio
async def test_join_replaces_stale_client():
    guild = make_guild()
    channel = FakeVoiceChannel(10, guild)
    guild.voice_client = FakeGuildVoice(channel, connected=False)
    channel.connect_result = bare_voice_client(channel)
    assert await VoiceTransport().join(channel) is channel.connect_result
    assert len(channel.connect_calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    asyncio.TimeoutError(),
    discord.ClientException("Already connected to a voice channel."),
    OSError("network unreachable"),
])
async def test_join_failure_raises_connection_failed(error):
    channel = FakeVoiceChannel(10, make_guild(), connect_error=error)
    with pytest.raises(ConnectionFailed) as exc:
        await VoiceTransport().join(channel)
    assert str(exc.value) == msg("VOICE_CONNECT_FAIL")
    assert exc.value.__cause__ is error
    assert metrics_snapshot()["voice_connect_fail"] == 1


@pytest.mark.asyncio
async def test_release_disconnects_only_live_clients():
    transport = VoiceTransport()
    channel = FakeVoiceChannel(10, make_guild())
    live = FakeGuildVoice(channel)
    dead = FakeGuildVoice(channel, connected=False)

    await transport.release(None)
    await transport.release(dead)
    await transport.release(live)

    assert dead.disconnects == []
    assert live.disconnects == [True]
    assert not live.is_connected()


@pytest.mark.asyncio
async def test_release_logs_disconnect_failure():
    vc = FakeGuildVoice(FakeVoiceChannel(10, make_guild()), disconnect_error=discord.ClientException("boom"))
    await VoiceTransport().release(vc)
    assert vc.disconnects == [True]


def test_cleanup_reports_destruction_once(monkeypatch):
    base_cleanups = []
    monkeypatch.setattr(discord.VoiceClient, "cleanup", lambda self: base_cleanups.append(self))
    vc = bare_voice_client(FakeVoiceChannel(10, make_guild()))
    destroyed = []
    vc.set_destroyed_callback(destroyed.append)

    vc.cleanup()
    vc.cleanup()

    assert destroyed == [vc]
    assert base_cleanups == [vc, vc]


def test_cleanup_survives_failing_callback(monkeypatch):
    monkeypatch.setattr(discord.VoiceClient, "cleanup", lambda self: None)
    vc = bare_voice_client(FakeVoiceChannel(10, make_guild()))

    def explode(client):
        raise RuntimeError("callback failed")

    vc.set_destroyed_callback(explode)
    vc.cleanup()
    # no callback configured is fine too
    other = bare_voice_client(FakeVoiceChannel(11, make_guild()))
    other.cleanup()
