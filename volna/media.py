"""
Media resolution: URL validation, metadata lookup and audio stream creation via yt-dlp.
"""
import asyncio
import logging
import concurrent.futures
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse, parse_qsl, urlencode, urlunparse

import discord
from yt_dlp import YoutubeDL
from yt_dlp.extractor.youtube import YoutubeIE

from volna.exceptions import MetadataFetchFailed, StreamOpenFailed
from volna.messages import msg
from volna.metrics import metric_inc
from volna.models import Track

logger = logging.getLogger("Volna.Media")

# ffmpeg must keep reading after transient HTTP drops of the googlevideo stream
FFMPEG_BEFORE_OPTIONS = "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5 -nostdin"
FFMPEG_OPTIONS = "-vn"


def build_ytdl_opts(user_agent: str) -> Dict[str, Any]:
    return {
        "format": "bestaudio/best",
        "quiet": True,
        "no_warnings": True,
        "noplaylist": True,
        "ignoreerrors": False,
        "socket_timeout": 15,
        "http_headers": {"User-Agent": user_agent},
    }


def sanitize_stream_url(url: Optional[str]) -> Optional[str]:
    """Strip byte-range hints that make ffmpeg start decoding mid-file."""
    if not url:
        return url
    pr = urlparse(url)
    q = parse_qsl(pr.query, keep_blank_values=True)
    bad_keys = {"range", "rn", "rbuf"}
    filtered = [(k, v) for (k, v) in q if k.lower() not in bad_keys]
    return urlunparse((pr.scheme, pr.netloc, pr.path, pr.params, urlencode(filtered), pr.fragment))


def pick_best_audio_url(info: Dict[str, Any]) -> Optional[str]:
    """Select the audio-only format with the highest bitrate.

    Falls back to the top-level ``url`` when the info dict has no usable formats.
    """
    direct = info.get("url")
    formats = info.get("formats") or []
    candidates = [
        f for f in formats
        if f.get("url") and f.get("acodec") not in (None, "none")
    ]
    if not candidates:
        return sanitize_stream_url(direct)

    def score(f):
        audio_only = f.get("vcodec") in (None, "none")
        return (audio_only, f.get("abr") or 0)

    best = max(candidates, key=score)
    return sanitize_stream_url(best["url"])


class MediaResolver:
    """Resolves YouTube URLs into tracks and playable audio sources.

    yt-dlp is blocking, so every extraction runs in a dedicated thread pool.
    """

    def __init__(
        self,
        user_agent: str = "Mozilla/5.0",
        workers: int = 2,
        ytdl: Optional[Any] = None,
        source_factory: Callable[..., discord.AudioSource] = discord.FFmpegPCMAudio,
    ) -> None:
        self._ytdl = ytdl if ytdl is not None else YoutubeDL(build_ytdl_opts(user_agent))
        self._source_factory = source_factory
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max(1, workers),
            thread_name_prefix="volna-ytdl",
        )

    @staticmethod
    def validate(url: Optional[str]) -> bool:
        if not url:
            return False
        pr = urlparse(url)
        if pr.scheme not in ("http", "https"):
            return False
        # YoutubeIE refuses watch URLs that carry a playlist; only the video is played
        query = [(k, v) for (k, v) in parse_qsl(pr.query, keep_blank_values=True) if k not in ("list", "index")]
        return bool(YoutubeIE.suitable(urlunparse(pr._replace(query=urlencode(query)))))

    async def _extract(self, url: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        info = await loop.run_in_executor(
            self._executor, lambda: self._ytdl.extract_info(url, download=False)
        )
        if not info:
            raise ValueError("empty extractor result")
        if "entries" in info:
            entries = [e for e in info["entries"] or [] if e]
            if not entries:
                raise ValueError("no entries in extractor result")
            info = entries[0]
        return info

    async def fetch_metadata(self, url: str, requested_by: Optional[str] = None) -> Track:
        try:
            info = await self._extract(url)
        except Exception as e:
            metric_inc("metadata_fetch_fail")
            logger.warning("Metadata fetch failed url=%s: %s", url, e)
            raise MetadataFetchFailed(msg("METADATA_FAILED")) from e
        title = info.get("title")
        if not title:
            metric_inc("metadata_fetch_fail")
            raise MetadataFetchFailed(msg("METADATA_FAILED"))
        return Track(
            title=title,
            url=info.get("webpage_url") or url,
            requested_by=requested_by,
        )

    async def open_audio_stream(self, track: Track) -> discord.AudioSource:
        try:
            info = await self._extract(track.url)
            stream_url = pick_best_audio_url(info)
            if not stream_url:
                raise ValueError("no audio format available")
            source = self._source_factory(
                stream_url,
                before_options=FFMPEG_BEFORE_OPTIONS,
                options=FFMPEG_OPTIONS,
            )
        except Exception as e:
            metric_inc("stream_open_fail")
            logger.warning("Stream open failed title=%s url=%s: %s", track.title, track.url, e)
            raise StreamOpenFailed(msg("STREAM_OPEN_FAILED", title=track.title)) from e
        logger.debug("Opened audio stream for %s", track.url)
        return source

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
