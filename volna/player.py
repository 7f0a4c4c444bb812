import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import discord

from volna.exceptions import PlaybackError, PreconditionViolation, QueueFull, StreamOpenFailed, ConnectionFailed
from volna.messages import msg
from volna.metrics import metric_inc, gauge_set
from volna.models import GuildPlaybackState, PlaybackStatus, Track

logger = logging.getLogger("Volna.Player")

TrackEndCallback = Callable[[int, Optional[Exception]], Awaitable[None]]


class PlaybackDriver:
    """Audio driver bound to a single guild's voice client.

    discord.py calls ``after`` from its audio thread; the driver hops back onto
    the event loop and forwards the end of a track as ``on_end(generation, error)``.
    Every play/stop bumps ``generation`` so callbacks of superseded tracks are dropped.
    """

    def __init__(self, voice_client, on_end: TrackEndCallback, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.voice_client = voice_client
        self._on_end = on_end
        self._loop = loop or asyncio.get_running_loop()
        self._tasks: Set[asyncio.Task] = set()
        self.generation = 0

    def play(self, source: discord.AudioSource) -> None:
        self.generation += 1
        generation = self.generation
        vc = self.voice_client
        if vc.is_playing() or vc.is_paused():
            vc.stop()
        try:
            vc.play(source, after=lambda error: self._after(generation, error))
        except (discord.DiscordException, TypeError, OSError) as e:
            source.cleanup()
            raise PlaybackError(msg("PLAY_ERROR")) from e

    def pause(self) -> None:
        self.voice_client.pause()

    def resume(self) -> None:
        self.voice_client.resume()

    def stop(self) -> None:
        self.generation += 1
        self.voice_client.stop()

    def _after(self, generation: int, error: Optional[Exception]) -> None:
        # audio thread
        try:
            self._loop.call_soon_threadsafe(self._dispatch, generation, error)
        except RuntimeError:
            logger.debug("Event loop closed; dropping track end (generation %s)", generation)

    def _dispatch(self, generation: int, error: Optional[Exception]) -> None:
        if generation != self.generation:
            return
        task = self._loop.create_task(self._on_end(generation, error))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


@dataclass
class EnqueueResult:
    track: Track
    position: int
    started: bool


class QueueManager:
    """Per-guild FIFO playback queues.

    Each guild gets its own ``GuildPlaybackState`` and ``PlaybackDriver``. All
    operations on one guild run under that guild's lock, so commands and track-end
    notifications never interleave across an await.
    """

    def __init__(self, media, transport, max_queue_size: int = 100, driver_factory=PlaybackDriver) -> None:
        self._media = media
        self._transport = transport
        self.max_queue_size = max_queue_size
        self._driver_factory = driver_factory
        self._states: Dict[int, GuildPlaybackState] = {}
        # one lock per guild ever seen; a waiter may still hold a reference after the
        # session ends, so entries are kept and reused by the next session
        self._locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get(self, guild_id: int) -> Optional[GuildPlaybackState]:
        return self._states.get(guild_id)

    def status(self, guild_id: int) -> PlaybackStatus:
        state = self._states.get(guild_id)
        return state.status if state is not None else PlaybackStatus.ABSENT

    def snapshot(self, guild_id: int) -> List[Track]:
        state = self._states.get(guild_id)
        return list(state.queue) if state is not None else []

    @property
    def active_sessions(self) -> int:
        return len(self._states)

    async def enqueue(self, guild_id: int, track: Track, voice_channel, text_channel) -> EnqueueResult:
        async with self._locks[guild_id]:
            state = self._states.get(guild_id)
            if state is not None:
                if len(state.queue) >= self.max_queue_size:
                    raise QueueFull(msg("QUEUE_FULL", limit=self.max_queue_size))
                state.queue.append(track)
                metric_inc("queue_add")
                logger.info("Queued guild=%s position=%s title=%s", guild_id, len(state.queue), track.title)
                return EnqueueResult(track, len(state.queue), started=False)

            state = GuildPlaybackState(guild_id, voice_channel, text_channel)
            state.queue.append(track)
            self._states[guild_id] = state
            try:
                connection = await self._transport.join(
                    voice_channel, on_destroyed=partial(self.handle_destroyed, guild_id)
                )
            except ConnectionFailed:
                self._discard(state)
                raise
            state.connection = connection
            state.driver = self._driver_factory(connection, partial(self._on_track_end, guild_id))
            metric_inc("queue_add")
            metric_inc("session_start")
            gauge_set("active_sessions", len(self._states))
            logger.info("Session started guild=%s channel=%s", guild_id, getattr(voice_channel, "id", None))
            await self._advance(state)
            started = self._states.get(guild_id) is state and state.current is track
            return EnqueueResult(track, 1 if started else 0, started=started)

    async def pause(self, guild_id: int) -> None:
        async with self._locks[guild_id]:
            state = self._states.get(guild_id)
            if state is None or not state.playing or state.paused:
                raise PreconditionViolation(msg("NOTHING_PLAYING"))
            state.driver.pause()
            state.paused = True
            logger.info("Paused guild=%s", guild_id)

    async def resume(self, guild_id: int) -> None:
        async with self._locks[guild_id]:
            state = self._states.get(guild_id)
            if state is None:
                raise PreconditionViolation(msg("NOTHING_PLAYING"))
            if not state.paused:
                raise PreconditionViolation(msg("ALREADY_PLAYING"))
            state.driver.resume()
            state.paused = False
            logger.info("Resumed guild=%s", guild_id)

    async def stop(self, guild_id: int) -> None:
        async with self._locks[guild_id]:
            state = self._states.get(guild_id)
            if state is None:
                raise PreconditionViolation(msg("NOTHING_PLAYING"))
            await self._teardown(state)
            logger.info("Stopped guild=%s", guild_id)

    async def skip(self, guild_id: int) -> Track:
        async with self._locks[guild_id]:
            state = self._states.get(guild_id)
            if state is None or not state.queue:
                raise PreconditionViolation(msg("NOTHING_TO_SKIP"))
            skipped = state.queue.popleft()
            if state.driver is not None:
                state.driver.stop()
            state.playing = False
            state.paused = False
            metric_inc("skip")
            logger.info("Skipped guild=%s title=%s", guild_id, skipped.title)
            await self._advance(state)
            return skipped

    async def handle_disconnect(self, guild_id: int) -> None:
        """The voice connection was lost for good: end the session."""
        async with self._locks[guild_id]:
            state = self._states.get(guild_id)
            if state is None:
                return
            metric_inc("voice_disconnect")
            logger.info("Voice disconnected guild=%s", guild_id)
            await self._teardown(state)
            await self._notify(state, msg("DISCONNECTED"))

    def handle_destroyed(self, guild_id: int, connection: Any = None) -> None:
        """The voice connection is already gone; drop the entry without touching it."""
        state = self._states.get(guild_id)
        if state is None:
            return
        if connection is not None and state.connection is not connection:
            return
        state.queue.clear()
        self._discard(state)
        logger.info("Voice connection destroyed guild=%s", guild_id)

    async def shutdown(self) -> None:
        for guild_id in list(self._states):
            try:
                await self.stop(guild_id)
            except PreconditionViolation:
                pass

    async def _on_track_end(self, guild_id: int, generation: int, error: Optional[Exception]) -> None:
        async with self._locks[guild_id]:
            state = self._states.get(guild_id)
            if state is None or state.driver is None or state.driver.generation != generation:
                return
            finished = state.queue.popleft() if state.queue else None
            state.playing = False
            state.paused = False
            if error is not None:
                metric_inc("playback_error")
                logger.error("Playback error guild=%s title=%s: %s",
                             guild_id, getattr(finished, "title", None), error)
                await self._notify(state, msg("PLAY_ERROR"))
            else:
                metric_inc("playback_finish")
            await self._advance(state)

    async def _advance(self, state: GuildPlaybackState) -> None:
        # each failed attempt consumes one queue entry, so this ends after len(queue) tries
        while state.queue:
            track = state.queue[0]
            source = None
            try:
                source = await self._media.open_audio_stream(track)
                if self._states.get(state.guild_id) is not state:
                    source.cleanup()
                    return
                state.driver.play(source)
            except (StreamOpenFailed, PlaybackError) as e:
                logger.warning("Dropping track guild=%s title=%s: %s", state.guild_id, track.title, e)
                if state.queue and state.queue[0] is track:
                    state.queue.popleft()
                # a failed last track still gets its own notice before "queue finished"
                await self._notify(state, str(e))
                continue
            except Exception:
                logger.exception("Unrecoverable playback failure guild=%s title=%s", state.guild_id, track.title)
                metric_inc("playback_error")
                if source is not None:
                    source.cleanup()
                if self._states.get(state.guild_id) is state:
                    await self._teardown(state)
                    await self._notify(state, msg("PLAY_ERROR"))
                return
            state.playing = True
            state.paused = False
            metric_inc("playback_start")
            logger.info("Now playing guild=%s title=%s", state.guild_id, track.title)
            return
        await self._finish(state)

    async def _finish(self, state: GuildPlaybackState) -> None:
        if self._states.get(state.guild_id) is not state:
            return
        self._discard(state)
        await self._transport.release(state.connection)
        metric_inc("session_end")
        logger.info("Queue finished guild=%s", state.guild_id)
        await self._notify(state, msg("QUEUE_FINISHED"))

    async def _teardown(self, state: GuildPlaybackState) -> None:
        state.queue.clear()
        state.playing = False
        state.paused = False
        self._discard(state)
        if state.driver is not None:
            state.driver.stop()
        await self._transport.release(state.connection)
        metric_inc("session_end")

    def _discard(self, state: GuildPlaybackState) -> None:
        if self._states.get(state.guild_id) is state:
            del self._states[state.guild_id]
        gauge_set("active_sessions", len(self._states))

    async def _notify(self, state: GuildPlaybackState, text: str) -> None:
        try:
            await state.text_channel.send(text)
        except discord.HTTPException:
            logger.warning("Failed to send message (guild: %s)", state.guild_id, exc_info=True)
