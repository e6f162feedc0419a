"""
Utility Functions - Helper functions for the music bot
"""

import discord
import logging
from typing import Awaitable, Iterable, Optional

logger = logging.getLogger(__name__)

def format_duration(seconds: int) -> str:
    """Format duration in seconds to MM:SS or HH:MM:SS format."""
    if not seconds or seconds <= 0:
        return "00:00"

    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    seconds = seconds % 60

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    else:
        return f"{minutes:02d}:{seconds:02d}"

def is_http_url(text: str) -> bool:
    """Loose URL check used by the play command: a plain "http" prefix."""
    return text.startswith("http")

def channel_is_empty(members: Iterable, bot_id: int) -> bool:
    """True when nobody except the bot itself is in the voice channel."""
    return not any(member.id != bot_id for member in members)

async def send_or_log(message: Awaitable) -> Optional[discord.Message]:
    """
    Await an outbound chat message, logging delivery failures.

    Sending is best effort: a failure is reported in the log and the
    caller carries on.
    """
    try:
        return await message
    except discord.HTTPException as e:
        logger.error(f"Error sending message: {e}")
        return None
