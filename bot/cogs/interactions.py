from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import TicketBot
from utils.constants import ADMIN_COMMAND_NAME

LOGGER = logging.getLogger(__name__)


class InteractionsCog(commands.Cog):
    """Feeds component and modal interactions into the interaction router.

    Views carry no callbacks; everything is matched by custom id, so panels
    posted before a restart keep working.
    """

    def __init__(self, bot: TicketBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        # Application commands are delivered through the command tree.
        if interaction.type is discord.InteractionType.application_command:
            return
        await self.bot.router.dispatch(interaction)

    @app_commands.command(name=ADMIN_COMMAND_NAME, description="Open the ticket admin menu.")
    async def admin(self, interaction: discord.Interaction) -> None:
        await self.bot.router.dispatch(interaction)


async def setup(bot: TicketBot) -> None:
    await bot.add_cog(InteractionsCog(bot))
