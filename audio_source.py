"""
Audio Source - Stream resolution for queued tracks
Resolves a page URL into a streamable source with yt-dlp and builds FFmpeg players for it.
"""

import asyncio
import logging
from typing import Optional

import discord
import yt_dlp

from config import BOT_CONFIG, FFMPEG_CONFIG, YTDL_CONFIG
from utils import format_duration

logger = logging.getLogger(__name__)

class SourceError(Exception):
    """Raised when a URL cannot be turned into a playable stream."""

class RestartableSource:
    """
    A resolved audio stream that can be replayed from the start.

    Every call to ``create_audio`` spawns a new FFmpeg process reading the
    stream from its beginning, so an interrupted track can simply be
    started again.
    """

    def __init__(self, url: str, stream_url: str, title: str = None, duration: int = 0,
                 volume: float = None):
        self.url = url
        self.stream_url = stream_url
        self.title = title or url
        self.duration = duration or 0
        self.volume = BOT_CONFIG['default_volume'] if volume is None else volume

    def create_audio(self) -> discord.AudioSource:
        """Build a fresh FFmpeg player positioned at the start of the stream."""
        return discord.PCMVolumeTransformer(
            discord.FFmpegPCMAudio(self.stream_url, **FFMPEG_CONFIG),
            volume=self.volume
        )

    def __repr__(self):
        return f"<RestartableSource title={self.title!r} duration={format_duration(self.duration)}>"

def _extract_info(url: str) -> Optional[dict]:
    with yt_dlp.YoutubeDL(YTDL_CONFIG) as ytdl:
        return ytdl.extract_info(url, download=False)

async def resolve_source(url: str) -> RestartableSource:
    """Resolve a page or media URL into a RestartableSource."""
    loop = asyncio.get_running_loop()
    try:
        info = await loop.run_in_executor(None, _extract_info, url)
    except yt_dlp.utils.DownloadError as e:
        raise SourceError(f"yt-dlp could not extract {url}: {e}") from e
    except Exception as e:
        raise SourceError(f"Error extracting {url}: {e!r}") from e

    if not info:
        raise SourceError(f"No media found at {url}")

    try:
        return _source_from_info(url, info)
    except SourceError:
        raise
    except Exception as e:
        raise SourceError(f"Unreadable media info for {url}: {e!r}") from e

def _source_from_info(url: str, info: dict) -> RestartableSource:
    if info.get('entries'):
        entry = next((e for e in info['entries'] if e), None)
        if entry is None:
            raise SourceError(f"No playable entries at {url}")
    else:
        entry = info

    stream_url = entry.get('url')
    if not stream_url:
        raise SourceError(f"No stream URL for {url}")

    source = RestartableSource(
        url=entry.get('webpage_url', url),
        stream_url=stream_url,
        title=entry.get('title'),
        duration=entry.get('duration') or 0,
    )
    logger.info(f"Resolved source: {source.title}")
    return source
