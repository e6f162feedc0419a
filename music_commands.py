"""
Music Commands - Prefix commands for voice and queue control
"""

import discord
from discord.ext import commands
import logging
from typing import List

from audio_source import RestartableSource, SourceError, resolve_source
from config import IDLE_CONFIG, MESSAGES
from idle_watchdog import IdleWatchdog
from utils import is_http_url, send_or_log
from voice_session import JoinError, Session, SessionManager, VoiceSessionError

logger = logging.getLogger(__name__)

class TrackEndNotifier:
    """Posts to a text channel whenever tracks finish playing."""

    def __init__(self, channel: discord.abc.Messageable):
        self.channel = channel

    async def __call__(self, tracks: List[RestartableSource]):
        await send_or_log(self.channel.send(MESSAGES['tracks_ended'].format(count=len(tracks))))

class MusicCommands(commands.Cog, name="Music"):
    """Join a voice channel and play audio from URLs."""

    def __init__(self, bot, resolver=resolve_source):
        self.bot = bot
        self.resolver = resolver

    async def cog_load(self):
        """Called when the cog is loaded."""
        logger.info("Music commands cog loaded")

    @property
    def sessions(self) -> SessionManager:
        return self.bot.sessions

    @commands.command()
    @commands.guild_only()
    async def join(self, ctx: commands.Context):
        """Adds Sunny to your current voice channel."""
        voice = ctx.author.voice
        if not voice or not voice.channel:
            await send_or_log(ctx.reply(MESSAGES['author_not_in_voice']))
            return

        channel = voice.channel
        try:
            session = await self.sessions.join(ctx.guild, channel)
        except JoinError as e:
            logger.error(f"Join failed in guild {ctx.guild.id}: {e}")
            await send_or_log(ctx.send(MESSAGES['join_failed']))
            return

        await send_or_log(ctx.send(MESSAGES['joined'].format(channel=channel.mention)))

        # Rejoining replaces the previous notifier and watchdog
        session.remove_all_events()
        session.add_track_end_callback(TrackEndNotifier(ctx.channel))
        watchdog = IdleWatchdog(self.sessions, session, ctx.channel, self.bot.user.id)
        session.add_periodic_callback(IDLE_CONFIG['check_interval'], watchdog.check)

        await self._deafen(session)

    async def _deafen(self, session: Session):
        if session.is_deaf():
            logger.info("Client already deafened")
            return

        try:
            await session.deafen(True)
        except discord.DiscordException as e:
            logger.error(f"Failed to deafen: {e}")

    @commands.command()
    @commands.guild_only()
    async def leave(self, ctx: commands.Context):
        """Removes Sunny from the voice channel and clears the queue."""
        if self.sessions.get(ctx.guild.id) is None:
            await send_or_log(ctx.reply(MESSAGES['not_in_voice']))
            return

        try:
            await self.sessions.remove(ctx.guild.id)
        except VoiceSessionError as e:
            await send_or_log(ctx.send(MESSAGES['leave_failed'].format(error=e)))
            return

        await send_or_log(ctx.send(MESSAGES['left']))

    @commands.command(aliases=['p'], usage='<url>')
    @commands.guild_only()
    async def play(self, ctx: commands.Context, *args: str):
        """
        Streams the given video or audio URL once Sunny is in a voice channel.

        Example: !play https://www.youtube.com/watch?v=dQw4w9WgXcQ
        """
        if len(args) != 1:
            await send_or_log(ctx.send(MESSAGES['missing_url']))
            return

        url = args[0]
        if not is_http_url(url):
            await send_or_log(ctx.send(MESSAGES['invalid_url']))
            return

        session = self.sessions.get(ctx.guild.id)
        if session is None:
            await send_or_log(ctx.send(MESSAGES['not_in_voice_to_play']))
            return

        try:
            source = await self.resolver(url)
        except SourceError as e:
            logger.error(f"Err starting source: {e}")
            await send_or_log(ctx.send(MESSAGES['source_error']))
            return

        if session.closed or self.sessions.get(ctx.guild.id) is not session:
            logger.info(f"Session for guild {ctx.guild.id} ended while resolving {url}")
            await send_or_log(ctx.send(MESSAGES['not_in_voice_to_play']))
            return

        async with session.lock:
            position = session.enqueue(source)

        if position == 0:
            await send_or_log(ctx.send(MESSAGES['source_error']))
            return

        await send_or_log(ctx.send(MESSAGES['track_added'].format(position=position)))

    @commands.command()
    @commands.guild_only()
    async def skip(self, ctx: commands.Context):
        """Skips the current song and moves to the next one in the queue."""
        session = self.sessions.get(ctx.guild.id)
        if session is None:
            await send_or_log(ctx.send(MESSAGES['not_in_voice']))
            return

        async with session.lock:
            session.queue.skip()
            remaining = len(session.queue)

        await send_or_log(ctx.send(MESSAGES['track_skipped'].format(remaining=remaining)))

    @commands.command()
    @commands.guild_only()
    async def stop(self, ctx: commands.Context):
        """Stops the current song and clears the queue."""
        session = self.sessions.get(ctx.guild.id)
        if session is None:
            await send_or_log(ctx.send(MESSAGES['not_in_voice']))
            return

        async with session.lock:
            session.queue.stop()

        await send_or_log(ctx.send(MESSAGES['queue_cleared']))

    @commands.command()
    @commands.guild_only()
    async def ping(self, ctx: commands.Context):
        """Pong"""
        await send_or_log(ctx.send(MESSAGES['pong']))
