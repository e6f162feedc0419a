"""
Idle Watchdog - Leaves voice when nobody is listening
"""

import logging
from typing import Iterable

import discord

from config import IDLE_CONFIG, MESSAGES
from utils import channel_is_empty, send_or_log
from voice_session import Session, SessionManager, VoiceSessionError

logger = logging.getLogger(__name__)

class IdleWatchdog:
    """
    Periodic occupancy check for one voice session.

    Each tick looks at who is in the bot's voice channel. A tick with
    nobody but the bot counts as idle; any listener resets the count.
    After ``max_idle_ticks`` consecutive idle ticks the session is
    removed and a note is posted to the text channel that started it.
    """

    def __init__(self, manager: SessionManager, session: Session,
                 text_channel: discord.abc.Messageable, bot_user_id: int,
                 max_idle_ticks: int = IDLE_CONFIG['max_idle_ticks']):
        self.manager = manager
        self.session = session
        self.text_channel = text_channel
        self.bot_user_id = bot_user_id
        self.max_idle_ticks = max_idle_ticks
        self.idle_ticks = 0

    def observe(self, members: Iterable) -> bool:
        """Record one roster snapshot; True when the bot should leave."""
        if channel_is_empty(members, self.bot_user_id):
            self.idle_ticks += 1
            return self.idle_ticks >= self.max_idle_ticks

        self.idle_ticks = 0
        return False

    async def check(self):
        channel = self.session.channel
        members = channel.members if channel else []

        if not self.observe(members):
            return

        guild_id = self.session.guild_id
        logger.info(f"Voice channel idle for {self.idle_ticks} checks in guild {guild_id}, leaving")

        try:
            await self.manager.remove(guild_id)
        except VoiceSessionError as e:
            logger.error(f"Failed: {e}")

        await send_or_log(self.text_channel.send(MESSAGES['idle_left']))
