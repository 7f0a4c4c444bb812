from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Optional


@dataclass(frozen=True)
class Track:
    """A playable item: display title plus the canonical video URL."""
    title: str
    url: str
    requested_by: Optional[str] = None

    def __str__(self) -> str:
        return self.title


class PlaybackStatus(Enum):
    ABSENT = "absent"
    CONNECTING = "connecting"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass
class GuildPlaybackState:
    """Playback session of one guild.

    ``queue[0]`` is the track currently streaming, or the one about to start.
    """
    guild_id: int
    voice_channel: Any
    text_channel: Any
    connection: Any = None
    driver: Any = None
    queue: Deque[Track] = field(default_factory=deque)
    playing: bool = False
    paused: bool = False

    @property
    def current(self) -> Optional[Track]:
        return self.queue[0] if self.queue else None

    @property
    def status(self) -> PlaybackStatus:
        if self.connection is None:
            return PlaybackStatus.CONNECTING
        if self.paused:
            return PlaybackStatus.PAUSED
        return PlaybackStatus.PLAYING
