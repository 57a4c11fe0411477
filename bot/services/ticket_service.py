from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

import discord

from core.config import TicketConfig
from core.errors import CooldownActiveError, MissingRoleError, TicketCreationError, TicketStateError, ValidationError
from core.router import modal_values, selected_values
from database.base import DatabaseError
from database.models import TicketRecord, TicketState
from database.repositories import TicketRepository
from services.permission_plan import PermissionPlanBuilder, find_role, to_overwrites
from services.state import AppState
from services.ticket_log import TicketLog
from services.webhook_log import WebhookLogger
from utils.constants import RESOLUTION_INPUT_ID, reason_label, reason_slug
from utils.embeds import reason_menu_embed, ticket_intro_embed
from utils.time import format_stamp, to_iso, utc_now
from views.ticket_controls import ResolveModal, TicketControlsView
from views.persistent import components_only
from views.ticket_panel import TicketPanelView

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TicketServiceDeps:
    client: discord.Client
    state: AppState
    ticket_log: TicketLog
    message_log: TicketLog
    webhook: WebhookLogger
    repo: TicketRepository | None = None
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    now: Callable[[], datetime] = field(default=utc_now)


class TicketService:
    """Ticket lifecycle: created -> claimed? -> resolved|closed -> deleted."""

    def __init__(self, config: TicketConfig, deps: TicketServiceDeps) -> None:
        self.config = config
        self.deps = deps
        self.plans = PermissionPlanBuilder(config)

    @property
    def state(self) -> AppState:
        return self.deps.state

    # Creation

    async def select_reason(self, interaction: discord.Interaction) -> None:
        values = selected_values(interaction)
        reason_key = values[0] if values else ""
        user = interaction.user

        await self.state.cooldowns.ensure_ready(user.id)
        await interaction.response.defer(ephemeral=True, thinking=True)
        channels = await self.create_ticket(user, reason_key)
        await self.state.cooldowns.record(user.id)

        mentions = ", ".join(channel.mention for channel in channels)
        await interaction.followup.send(f"Your ticket has been created: {mentions}", ephemeral=True)

    def _target_guilds(self) -> list[discord.Guild]:
        if self.config.target_guild_id is None:
            return list(self.deps.client.guilds)
        guild = self.deps.client.get_guild(self.config.target_guild_id)
        if guild is None:
            LOGGER.warning("Configured ticket guild %s is not available", self.config.target_guild_id)
            return []
        return [guild]

    def channel_name_for(self, user: discord.abc.User, reason_key: str) -> str:
        return f"{self.config.channel_prefix}{user.name}-{reason_slug(reason_key)}"

    async def create_ticket(self, user: discord.abc.User, reason_key: str) -> list[discord.TextChannel]:
        """Open a ticket channel for `user`.

        Without a configured target guild the ticket is opened in every guild
        the bot belongs to, one channel each, all sharing one ticket number.
        """
        number = self.state.counter.next()
        label = reason_label(reason_key)
        created_at = self.deps.now()

        channels: list[discord.TextChannel] = []
        for guild in self._target_guilds():
            try:
                channel = await self._open_in_guild(guild, user, number, reason_key, label, created_at)
            except MissingRoleError as error:
                LOGGER.warning("Skipping guild %s (%s): %s", guild.name, guild.id, error.user_message)
                continue
            except discord.HTTPException:
                LOGGER.exception("Failed to open ticket #%s in guild %s (%s)", number, guild.name, guild.id)
                continue
            channels.append(channel)

        if not channels:
            raise TicketCreationError()
        return channels

    async def _ticket_category(self, guild: discord.Guild) -> discord.CategoryChannel:
        category = discord.utils.get(guild.categories, name=self.config.category_name)
        if category is None:
            category = await guild.create_category(self.config.category_name, reason="Ticket category")
            LOGGER.info("Created '%s' category in guild '%s'", self.config.category_name, guild.name)
        return category

    async def _open_in_guild(
        self,
        guild: discord.Guild,
        user: discord.abc.User,
        number: int,
        reason_key: str,
        label: str,
        created_at: datetime,
    ) -> discord.TextChannel:
        plan = self.plans.build_ticket_plan(guild, user)
        helper_role = self.plans.helper_role(guild)
        category = await self._ticket_category(guild)

        channel = await guild.create_text_channel(
            name=self.channel_name_for(user, reason_key),
            category=category,
            overwrites=to_overwrites(plan),
            topic=f"Ticket #{number} | {label} | opened by {user.id}",
            reason=f"Ticket #{number} opened by {user} ({user.id})",
        )
        await channel.send(
            content=f"{helper_role.mention} - New ticket from {user.mention}",
            embed=ticket_intro_embed(number, user.mention, label, created_at),
            view=components_only(TicketControlsView()),
        )

        record = TicketRecord(
            id=str(uuid4()),
            ticket_number=number,
            guild_id=guild.id,
            channel_id=channel.id,
            creator_id=user.id,
            creator_name=user.name,
            reason_key=reason_key,
            reason_label=label,
            created_at=to_iso(created_at),
        )
        if self.deps.repo is not None:
            try:
                await self.deps.repo.create(record)
            except DatabaseError:
                LOGGER.exception("Failed to persist ticket #%s (channel %s)", number, channel.id)

        self.deps.ticket_log.append(
            f"[{format_stamp(created_at)}] Ticket #{number} created by {user.name} ({user.id}) with reason: {label}"
        )
        LOGGER.info("Ticket #%s created by %s with reason: %s in guild %s", number, user.name, label, guild.id)
        await self.deps.webhook.send(
            "Ticket created",
            {"ticket": number, "guild_id": guild.id, "channel_id": channel.id, "user_id": user.id, "reason": label},
        )
        return channel

    # Staff actions

    @staticmethod
    def _require_text_channel(interaction: discord.Interaction) -> discord.TextChannel:
        channel = interaction.channel
        if not isinstance(channel, discord.TextChannel):
            raise ValidationError(user_message="This command can only be used in a ticket channel.")
        return channel

    async def _record_for(self, channel: discord.TextChannel) -> TicketRecord | None:
        if self.deps.repo is None:
            return None
        try:
            return await self.deps.repo.get_by_channel(channel.id)
        except DatabaseError:
            LOGGER.exception("Ticket lookup failed for channel %s", channel.id)
            return None

    @staticmethod
    def _ensure_transition(record: TicketRecord | None, target: TicketState) -> None:
        if record is None or record.state.can_move_to(target):
            return
        if record.state in {TicketState.RESOLVED, TicketState.CLOSED, TicketState.DELETED}:
            raise TicketStateError(user_message="This ticket is already being closed.")
        raise TicketStateError()

    async def _set_state(self, record: TicketRecord | None, state: TicketState) -> None:
        if record is None or self.deps.repo is None:
            return
        try:
            await self.deps.repo.set_state(record.id, state)
        except DatabaseError:
            LOGGER.exception("Failed to mark ticket #%s as %s", record.ticket_number, state.value)
            return
        record.state = state

    async def claim(self, interaction: discord.Interaction) -> None:
        channel = self._require_text_channel(interaction)
        member = interaction.user
        record = await self._record_for(channel)
        self._ensure_transition(record, TicketState.CLAIMED)
        if channel.id in self.state.closing:
            raise TicketStateError(user_message="This ticket is already being closed.")

        helper_role = find_role(channel.guild, self.config.helper_role_name)
        for entry in self.plans.build_claim_plan(member, helper_role):
            await channel.set_permissions(
                entry.principal, overwrite=entry.to_overwrite(), reason=f"Ticket claimed by {member}"
            )

        if record is not None and self.deps.repo is not None:
            try:
                await self.deps.repo.set_claimed(record.id, member.id)
                record.state = TicketState.CLAIMED
                record.claimed_by_id = member.id
            except DatabaseError:
                LOGGER.exception("Failed to record claim on channel %s", channel.id)

        LOGGER.info("Ticket channel %s claimed by %s", channel.name, member)
        await interaction.response.send_message(f"{member.mention} has claimed this ticket.")

    async def begin_resolve(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(ResolveModal())

    async def _resolve_owner(
        self, channel: discord.TextChannel, record: TicketRecord | None
    ) -> discord.abc.User | None:
        client = self.deps.client
        if record is not None:
            user = client.get_user(record.creator_id)
            if user is not None:
                return user
            try:
                return await client.fetch_user(record.creator_id)
            except discord.HTTPException:
                LOGGER.warning("Ticket creator %s could not be fetched", record.creator_id)
                return None
        # Channels opened before the ticket registry existed only carry the name.
        parts = channel.name.split("-")
        if len(parts) < 2:
            return None
        return channel.guild.get_member_named(parts[1])

    async def _delete_after_notice(
        self,
        channel: discord.TextChannel,
        record: TicketRecord | None,
        notice: str,
        reopen_as: TicketState | None = None,
    ) -> bool:
        await channel.send(notice)
        await self.deps.sleep(self.config.deletion_delay_seconds)
        try:
            await channel.delete(reason="Ticket finished")
        except discord.HTTPException:
            LOGGER.exception("Error deleting ticket channel %s (%s)", channel.name, channel.id)
            # The channel is still open, so staff must be able to finish it again.
            if reopen_as is not None:
                await self._set_state(record, reopen_as)
            return False
        await self._set_state(record, TicketState.DELETED)
        LOGGER.info("Ticket channel %s deleted", channel.name)
        return True

    @contextmanager
    def _countdown(self, channel: discord.TextChannel) -> Iterator[None]:
        """Hold the channel while its deletion countdown runs."""
        if channel.id in self.state.closing:
            raise TicketStateError(user_message="This ticket is already being closed.")
        self.state.closing.add(channel.id)
        try:
            yield
        finally:
            self.state.closing.discard(channel.id)

    async def resolve(self, interaction: discord.Interaction) -> None:
        channel = self._require_text_channel(interaction)
        resolution = modal_values(interaction).get(RESOLUTION_INPUT_ID, "").strip()
        if not resolution:
            raise ValidationError(user_message="Resolution message cannot be empty.")
        record = await self._record_for(channel)
        self._ensure_transition(record, TicketState.RESOLVED)

        with self._countdown(channel):
            previous = record.state if record is not None else None
            await interaction.response.defer()
            owner = await self._resolve_owner(channel, record)
            if owner is None:
                LOGGER.info("No ticket owner found for %s; resolution not delivered", channel.name)
            else:
                try:
                    await owner.send(f"Your ticket has been resolved. Resolution: {resolution}")
                except discord.HTTPException:
                    LOGGER.warning("Could not DM resolution to %s", owner)

            await self._set_state(record, TicketState.RESOLVED)
            await self.deps.webhook.send(
                "Ticket resolved",
                {"channel": channel.name, "staff_id": interaction.user.id, "resolution": resolution},
            )
            deleted = await self._delete_after_notice(
                channel,
                record,
                "This ticket has been resolved and will be closed in "
                f"{self.config.deletion_delay_seconds} seconds.",
                reopen_as=previous,
            )
        if not deleted:
            try:
                await interaction.followup.send("An error occurred while resolving the ticket.", ephemeral=True)
            except discord.HTTPException:
                LOGGER.warning("Could not report failed deletion of %s", channel.name)

    async def close(self, interaction: discord.Interaction) -> None:
        channel = self._require_text_channel(interaction)
        record = await self._record_for(channel)
        self._ensure_transition(record, TicketState.CLOSED)

        with self._countdown(channel):
            previous = record.state if record is not None else None
            await interaction.response.defer()
            await self._set_state(record, TicketState.CLOSED)
            await self.deps.webhook.send("Ticket closed", {"channel": channel.name, "staff_id": interaction.user.id})
            await self._delete_after_notice(
                channel,
                record,
                "This ticket is being closed by staff. The channel will be deleted in "
                f"{self.config.deletion_delay_seconds} seconds.",
                reopen_as=previous,
            )

    # Menus and message logging

    async def offer_ticket_menu(self, user: discord.abc.User) -> None:
        try:
            await self.state.cooldowns.ensure_ready(user.id)
        except CooldownActiveError as error:
            await user.send(error.user_message)
            return
        await user.send(embed=reason_menu_embed(self.config.panel_title), view=components_only(TicketPanelView()))

    async def post_reason_menu(self) -> bool:
        channel_id = self.config.ticket_channel_id
        channel = self.deps.client.get_channel(channel_id) if channel_id else None
        if not isinstance(channel, discord.abc.Messageable):
            LOGGER.warning("Ticket channel %s not found", channel_id)
            return False
        await channel.send(embed=reason_menu_embed(self.config.panel_title), view=components_only(TicketPanelView()))
        return True

    def is_ticket_channel(self, channel: Any) -> bool:
        return isinstance(channel, discord.TextChannel) and channel.name.startswith(self.config.channel_prefix)

    def log_ticket_message(self, message: discord.Message) -> bool:
        if not self.is_ticket_channel(message.channel):
            return False
        return self.deps.message_log.append(
            f"[{format_stamp(self.deps.now())}] Message in ticket channel {message.channel.name} "
            f"by {message.author.name}: {message.content}"
        )
