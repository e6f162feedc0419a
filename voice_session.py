"""
Voice Session - Per-guild voice connections and playback queues
Handles voice connections, queue management, and voice event callbacks.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Dict, List, Optional

import discord

from audio_source import RestartableSource
from config import VOICE_CONFIG

logger = logging.getLogger(__name__)

TrackEndCallback = Callable[[List[RestartableSource]], Awaitable[None]]
PeriodicCallback = Callable[[], Awaitable[None]]

class VoiceSessionError(Exception):
    """Base error for voice session operations."""

class SessionNotFound(VoiceSessionError):
    """No voice session exists for the guild."""

class JoinError(VoiceSessionError):
    """Connecting to a voice channel failed."""

class TrackQueue:
    """
    Ordered playback queue bound to one voice client.

    The first entry is the track currently playing. Adding to an empty
    queue starts playback immediately; when a track finishes the next
    one is started.
    """

    def __init__(self, voice_client: discord.VoiceClient,
                 on_complete: Callable[[RestartableSource, Optional[Exception]], None]):
        self.voice_client = voice_client
        self._on_complete = on_complete
        self._tracks = deque()

    def __len__(self):
        return len(self._tracks)

    @property
    def current(self) -> Optional[RestartableSource]:
        return self._tracks[0] if self._tracks else None

    def add(self, source: RestartableSource) -> int:
        """Append a track and return its 1-based position, 0 if it could not start."""
        self._tracks.append(source)
        if len(self._tracks) == 1:
            self._play_head()
        return len(self._tracks)

    def skip(self) -> Optional[RestartableSource]:
        """Drop the current track and start the next one."""
        if not self._tracks:
            return None

        skipped = self._tracks.popleft()
        self._halt()
        self._play_head()
        return skipped

    def stop(self):
        """Stop playback and clear the queue."""
        self._tracks.clear()
        self._halt()

    def finished(self, track: RestartableSource) -> bool:
        """Advance past ``track`` if it is still the head of the queue."""
        if not self._tracks or self._tracks[0] is not track:
            return False

        self._tracks.popleft()
        self._play_head()
        return True

    def _halt(self):
        if self.voice_client.is_playing() or self.voice_client.is_paused():
            self.voice_client.stop()

    def _play_head(self):
        while self._tracks:
            track = self._tracks[0]
            try:
                self.voice_client.play(
                    track.create_audio(),
                    after=lambda e, t=track: self._on_complete(t, e)
                )
                logger.info(f"Now playing: {track.title}")
                return
            except discord.DiscordException as e:
                logger.error(f"Error playing track {track.title}: {e}")
                self._tracks.popleft()

class Session:
    """Active voice connection, queue and event callbacks for one guild."""

    def __init__(self, guild: discord.Guild, voice_client: discord.VoiceClient):
        self.guild = guild
        self.voice_client = voice_client
        self.lock = asyncio.Lock()
        self.queue = TrackQueue(voice_client, self._on_track_complete)

        self._loop = asyncio.get_running_loop()
        self._closed = False
        self._track_end_callbacks: List[TrackEndCallback] = []
        self._periodic_callbacks: List[PeriodicCallback] = []
        self._periodic_tasks: List[asyncio.Task] = []

    @property
    def guild_id(self) -> int:
        return self.guild.id

    @property
    def channel(self):
        return self.voice_client.channel

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def track_end_callbacks(self) -> List[TrackEndCallback]:
        return list(self._track_end_callbacks)

    @property
    def periodic_callbacks(self) -> List[PeriodicCallback]:
        return list(self._periodic_callbacks)

    def __repr__(self):
        return (f"<Session guild_id={self.guild_id} "
                f"queue_len={len(self.queue)} closed={self._closed}>")

    def is_deaf(self) -> bool:
        me = self.guild.me
        return bool(me and me.voice and me.voice.self_deaf)

    async def deafen(self, deaf: bool = True):
        await self.guild.change_voice_state(channel=self.voice_client.channel, self_deaf=deaf)

    def enqueue(self, source: RestartableSource) -> int:
        return self.queue.add(source)

    def add_track_end_callback(self, callback: TrackEndCallback):
        self._track_end_callbacks.append(callback)

    def add_periodic_callback(self, interval: float, callback: PeriodicCallback) -> asyncio.Task:
        """Run ``callback`` every ``interval`` seconds, first after one interval."""
        task = self._loop.create_task(self._run_periodic(interval, callback))
        self._periodic_callbacks.append(callback)
        self._periodic_tasks.append(task)
        return task

    def remove_all_events(self):
        """Drop every registered callback and stop periodic tasks."""
        current = asyncio.current_task()
        for task in self._periodic_tasks:
            # A periodic callback may be the one tearing the session down
            if task is not current:
                task.cancel()
        self._periodic_tasks.clear()
        self._periodic_callbacks.clear()
        self._track_end_callbacks.clear()

    def shutdown(self):
        """Stop playback and events without touching the connection."""
        self._closed = True
        self.queue.stop()
        self.remove_all_events()

    async def close(self):
        self.shutdown()
        await self.voice_client.disconnect()

    async def _run_periodic(self, interval: float, callback: PeriodicCallback):
        while not self._closed:
            await asyncio.sleep(interval)
            if self._closed:
                break
            try:
                await callback()
            except Exception:
                logger.exception(f"Periodic voice event failed in guild {self.guild_id}")

    def _on_track_complete(self, track: RestartableSource, error: Optional[Exception]):
        # Called from the audio player thread
        if self._closed:
            return
        asyncio.run_coroutine_threadsafe(self._track_finished(track, error), self._loop)

    async def _track_finished(self, track: RestartableSource, error: Optional[Exception]):
        if error:
            logger.error(f"Playback error: {error}")

        async with self.lock:
            self.queue.finished(track)

        for callback in list(self._track_end_callbacks):
            try:
                await callback([track])
            except Exception:
                logger.exception(f"Track end callback failed in guild {self.guild_id}")

class SessionManager:
    """Creates, looks up and tears down voice sessions keyed by guild id."""

    def __init__(self):
        self._sessions: Dict[int, Session] = {}

    def __len__(self):
        return len(self._sessions)

    def get(self, guild_id: int) -> Optional[Session]:
        return self._sessions.get(guild_id)

    async def join(self, guild: discord.Guild, channel: discord.VoiceChannel) -> Session:
        """Connect to ``channel``, or move the guild's existing session there."""
        session = self._sessions.get(guild.id)
        if session and not session.voice_client.is_connected():
            # A reconnecting client stays registered on the guild and blocks connect()
            try:
                await session.voice_client.disconnect(force=True)
            except discord.DiscordException as e:
                logger.error(f"Failed to drop stale voice client in guild {guild.id}: {e}")
            self.discard(guild.id)
            session = None

        try:
            if session:
                if session.channel != channel:
                    await session.voice_client.move_to(channel)
                    logger.info(f"Moved to voice channel: {channel.name}")
                return session

            voice_client = await asyncio.wait_for(
                channel.connect(timeout=VOICE_CONFIG['connect_timeout']),
                timeout=VOICE_CONFIG['connect_wait']
            )
        except asyncio.TimeoutError as e:
            raise JoinError(f"Voice connection timed out for channel: {channel.name}") from e
        except discord.DiscordException as e:
            raise JoinError(f"Failed to connect to voice channel {channel.name}: {e}") from e

        session = Session(guild, voice_client)
        self._sessions[guild.id] = session
        logger.info(f"Connected to voice channel: {channel.name}")
        return session

    async def remove(self, guild_id: int):
        """Disconnect and forget the guild's session."""
        session = self._sessions.pop(guild_id, None)
        if session is None:
            raise SessionNotFound(f"No voice session for guild {guild_id}")

        try:
            await session.close()
        except discord.DiscordException as e:
            raise VoiceSessionError(f"Failed to disconnect: {e}") from e

        logger.info(f"Left voice in guild {guild_id}")

    def discard(self, guild_id: int) -> Optional[Session]:
        """Forget a session whose connection is already gone."""
        session = self._sessions.pop(guild_id, None)
        if session:
            session.shutdown()
            logger.info(f"Dropped voice session for guild {guild_id}")
        return session

    async def close_all(self):
        for guild_id in list(self._sessions):
            try:
                await self.remove(guild_id)
            except VoiceSessionError as e:
                logger.error(f"Failed to close voice session for guild {guild_id}: {e}")
