from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from core.config import AppConfig
from core.errors import handle_app_command_error
from core.router import InteractionRouter, build_router
from database.base import Database
from database.migrations.runner import run_migrations
from database.repositories import TicketRepository
from services.admin_service import AdminService
from services.cache import CacheBackend, build_cache
from services.cooldowns import CooldownTracker
from services.state import AppState
from services.ticket_log import TicketLog
from services.ticket_service import TicketService, TicketServiceDeps
from services.webhook_log import WebhookLogger
from views.persistent import persistent_views

if TYPE_CHECKING:
    from core.console import OwnerConsole

LOGGER = logging.getLogger(__name__)


def _activity(kind: str, text: str) -> discord.BaseActivity:
    kind = kind.lower()
    if kind == "playing":
        return discord.Game(name=text)
    if kind == "listening":
        return discord.Activity(type=discord.ActivityType.listening, name=text)
    return discord.Activity(type=discord.ActivityType.watching, name=text)


class TicketBot(commands.Bot):
    def __init__(self, config: AppConfig) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True
        intents.messages = True
        intents.dm_messages = True
        intents.message_content = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            application_id=config.discord.application_id,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=True, users=True, replied_user=False),
            activity=_activity(config.discord.activity_type, config.discord.status_text),
            status=discord.Status.online,
            help_command=None,
        )
        self.config = config
        self.database = Database(
            url=config.database.url,
            timeout_seconds=config.database.timeout_seconds,
            pool_min_size=config.database.pool_min_size,
            pool_max_size=config.database.pool_max_size,
        )
        self.cache: CacheBackend = build_cache(config.redis)
        self.state = AppState(cooldowns=CooldownTracker(self.cache, config.tickets.cooldown_seconds))
        self.ticket_repo = TicketRepository(self.database)

        tickets = config.tickets
        self.ticket_log = TicketLog(Path(tickets.log_file))
        # Chat lines share the ticket log unless a separate file is configured.
        self.message_log = TicketLog(Path(tickets.message_log_file)) if tickets.message_log_file else self.ticket_log

        self.ticket_service = TicketService(
            tickets,
            TicketServiceDeps(
                client=self,
                state=self.state,
                ticket_log=self.ticket_log,
                message_log=self.message_log,
                webhook=WebhookLogger(config.webhook_log),
                repo=self.ticket_repo,
            ),
        )
        self.admin_service = AdminService(tickets, self, self.state, self.ticket_log, self.message_log)
        self.router: InteractionRouter = build_router(tickets, self.ticket_service, self.admin_service)
        self.console: OwnerConsole | None = None

    async def setup_hook(self) -> None:
        await self.database.connect()
        applied = await run_migrations(self.database)
        if applied:
            LOGGER.info("Applied %s migration(s)", len(applied))

        for ext in self.config.enabled_extensions:
            try:
                await self.load_extension(ext)
                LOGGER.info("Loaded extension: %s", ext)
            except commands.ExtensionAlreadyLoaded:
                LOGGER.warning("Extension already loaded: %s", ext)
            except commands.ExtensionError:
                LOGGER.exception("Failed to load extension: %s", ext)

        for view in persistent_views():
            self.add_view(view)

        self.tree.on_error = handle_app_command_error  # type: ignore[assignment]
        if self.config.discord.sync_commands_on_start:
            synced = await self.tree.sync()
            LOGGER.info("Synced %s application commands", len(synced))

    async def on_ready(self) -> None:
        LOGGER.info("Bot ready as %s (%s)", self.user, self.user.id if self.user else "n/a")
        LOGGER.info("Serving %s guild(s)", len(self.guilds))

    async def close(self) -> None:
        if self.console is not None:
            self.console.stop()
        await super().close()
        await self.database.close()
        await self.cache.close()
