from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import discord

from core.errors import BotError

if TYPE_CHECKING:
    from core.bot import TicketBot

LOGGER = logging.getLogger(__name__)

MENU = """
=== Owner Panel ===
1. Send Private DM Message to User
2. Turn Off the Bot
3. Send Ticket Dropdown to Channel
4. Exit
5. Resend Admin Panel"""


class OwnerConsole:
    """Numbered stdin menu for the operator, run beside the gateway.

    Blocking reads happen on a worker thread so the event loop keeps serving
    Discord while the prompt waits.
    """

    def __init__(
        self,
        bot: TicketBot,
        reader: Callable[[str], str] = input,
        writer: Callable[[str], None] = print,
    ) -> None:
        self.bot = bot
        self._reader = reader
        self._writer = writer
        self._task: asyncio.Task[None] | None = None

    async def _ask(self, prompt: str) -> str:
        return (await asyncio.to_thread(self._reader, prompt)).strip()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="owner-console")

    def stop(self) -> None:
        # The worker thread stays blocked in input() until the next line.
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()

    async def run(self) -> None:
        while True:
            self._writer(MENU)
            try:
                choice = await self._ask("Select an option: ")
            except EOFError:
                LOGGER.info("Console input closed; leaving the owner panel")
                return
            try:
                keep_running = await self.handle(choice)
            except discord.HTTPException:
                LOGGER.exception("Console option %s failed", choice)
                self._writer("The request to Discord failed. See the log for details.")
                continue
            if not keep_running:
                return

    async def handle(self, choice: str) -> bool:
        """Run one menu option. Returns False when the console should stop."""
        if choice == "1":
            await self.send_direct_message()
        elif choice == "2":
            self._writer("Shutting down the bot...")
            await self.bot.close()
            return False
        elif choice == "3":
            if await self.bot.ticket_service.post_reason_menu():
                self._writer("Ticket dropdown sent to the channel.")
            else:
                self._writer("Ticket channel not found.")
        elif choice == "4":
            return False
        elif choice == "5":
            if await self.bot.admin_service.post_panel():
                self._writer("Admin panel resent.")
            else:
                self._writer("Log channel not found.")
        else:
            self._writer("Invalid option. Please try again.")
        return True

    async def send_direct_message(self) -> None:
        raw_id = await self._ask("Enter the user ID: ")
        body = await self._ask("Enter the message: ")
        try:
            result = await self.bot.admin_service.deliver_direct_message(raw_id, body)
        except BotError as error:
            self._writer(error.user_message)
            return
        except discord.HTTPException:
            LOGGER.exception("Console direct message to %s failed", raw_id)
            self._writer("Failed to send message.")
            return
        self._writer(result.message)
