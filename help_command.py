"""
Help Command - Embed-rendered help for prefix commands
"""

import discord
from discord.ext import commands

from utils import send_or_log

class EmbedHelpCommand(commands.MinimalHelpCommand):
    """MinimalHelpCommand that sends each page as an embed."""

    def __init__(self):
        super().__init__(no_category="Other")

    async def send_pages(self):
        destination = self.get_destination()
        for page in self.paginator.pages:
            embed = discord.Embed(description=page, color=discord.Color.blue())
            await send_or_log(destination.send(embed=embed))
