"""
Discord Music Bot - Main Bot Class
Handles bot initialization, events, and command registration.
"""

import discord
from discord.ext import commands
import logging

from config import BOT_CONFIG, MESSAGES
from help_command import EmbedHelpCommand
from music_commands import MusicCommands
from utils import send_or_log
from voice_session import SessionManager

logger = logging.getLogger(__name__)

class MusicBot(commands.Bot):
    """Prefix-command music bot that streams URLs into voice channels."""

    def __init__(self):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.voice_states = True
        intents.guilds = True

        super().__init__(
            command_prefix=BOT_CONFIG['prefix'],
            intents=intents,
            description=BOT_CONFIG['description'],
            help_command=EmbedHelpCommand()
        )

        # One voice session per guild
        self.sessions = SessionManager()

    async def setup_hook(self):
        """Called when the bot is starting up."""
        logger.info("Setting up bot...")
        await self.add_cog(MusicCommands(self))

    async def on_ready(self):
        """Called when the bot is ready and connected to Discord."""
        logger.info(f"{self.user.name} is connected")
        logger.info(f"Bot is in {len(self.guilds)} guild(s)")

        activity = discord.Activity(
            type=discord.ActivityType.listening,
            name=BOT_CONFIG['activity_name']
        )
        await self.change_presence(activity=activity)

    async def on_guild_remove(self, guild):
        """Called when the bot leaves a guild."""
        logger.info(f"Left guild: {guild.name} (ID: {guild.id})")
        self.sessions.discard(guild.id)

    async def on_voice_state_update(self, member, before, after):
        """Forget the session when the bot is disconnected from outside."""
        if self.user is None or member.id != self.user.id:
            return

        if before.channel is not None and after.channel is None:
            if self.sessions.get(member.guild.id) is not None:
                logger.info(f"Disconnected from voice in guild {member.guild.id}")
                self.sessions.discard(member.guild.id)

    async def on_command_error(self, ctx, error):
        """Global error handler for commands."""
        if isinstance(error, commands.CommandNotFound):
            return

        if isinstance(error, commands.NoPrivateMessage):
            await send_or_log(ctx.send(MESSAGES['guild_only']))
            return

        logger.error(f"Command error in {ctx.command}: {error}")
        await send_or_log(ctx.send(MESSAGES['command_error'].format(error=error)))

    async def close(self):
        """Disconnect from every voice channel before shutting down."""
        logger.info("Shutting down...")
        await self.sessions.close_all()
        await super().close()
