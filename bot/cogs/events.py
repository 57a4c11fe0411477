from __future__ import annotations

import logging

import discord
from discord.ext import commands

from core.bot import TicketBot
from core.console import OwnerConsole

LOGGER = logging.getLogger(__name__)


class EventsCog(commands.Cog):
    def __init__(self, bot: TicketBot) -> None:
        self.bot = bot
        self._ready_once = False

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        # on_ready fires again after every resumed session.
        if self._ready_once:
            return
        self._ready_once = True

        if self.bot.config.discord.post_admin_panel_on_ready:
            try:
                await self.bot.admin_service.post_panel()
            except discord.HTTPException:
                LOGGER.exception("Failed to post the admin panel")

        if self.bot.config.console.enabled:
            self.bot.console = OwnerConsole(self.bot)
            self.bot.console.start()

    @commands.Cog.listener()
    async def on_disconnect(self) -> None:
        LOGGER.warning("Disconnected from the Discord gateway")

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        if isinstance(message.channel, discord.DMChannel):
            try:
                await self.bot.ticket_service.offer_ticket_menu(message.author)
            except discord.HTTPException:
                LOGGER.warning("Could not send the ticket menu to %s", message.author)
            return
        self.bot.ticket_service.log_ticket_message(message)


async def setup(bot: TicketBot) -> None:
    await bot.add_cog(EventsCog(bot))
