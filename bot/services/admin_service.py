from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import discord

from core.config import TicketConfig
from core.errors import ValidationError, send_ephemeral
from core.router import modal_values, selected_values
from services.state import AppState
from services.ticket_log import TicketLog
from utils.constants import (
    ADMIN_SEND_MESSAGE,
    ADMIN_SHOW_BOT_INFO,
    ADMIN_SHOW_LOGS,
    ADMIN_SHOW_TICKET_MESSAGES,
    MESSAGE_INPUT_ID,
    USER_ID_INPUT_ID,
)
from utils.time import stamp_from_unix
from views.admin_panel import AdminMenuView, SendMessageModal
from views.persistent import components_only

LOGGER = logging.getLogger(__name__)

MESSAGE_CHAR_LIMIT = 2000


@dataclass(slots=True)
class RenderedLog:
    content: str
    file: discord.File | None = None


def render_log(
    text: str | None,
    *,
    limit: int,
    heading: str,
    filename: str,
    attachment_note: str,
) -> RenderedLog:
    """Inline a log up to `limit` characters, attach it as a file beyond that.

    A log that fits `limit` is still attached when the heading and code fence
    would push the message past Discord's 2000 character cap.
    """
    if text is None:
        return RenderedLog("No logs found. The log file does not exist.")
    if not text.strip():
        return RenderedLog("No logs found. The log file is empty.")
    inline = f"{heading}\n```{text}```"
    if len(text) <= limit and len(inline) <= MESSAGE_CHAR_LIMIT:
        return RenderedLog(inline)
    return RenderedLog(attachment_note, discord.File(io.BytesIO(text.encode("utf-8")), filename=filename))


@dataclass(slots=True)
class DeliveryResult:
    ok: bool
    message: str


class AdminService:
    def __init__(
        self,
        config: TicketConfig,
        client: discord.Client,
        state: AppState,
        ticket_log: TicketLog,
        message_log: TicketLog,
    ) -> None:
        self.config = config
        self.client = client
        self.state = state
        self.ticket_log = ticket_log
        self.message_log = message_log

    async def show_menu(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(
            "Please select an admin action:", view=components_only(AdminMenuView()), ephemeral=True
        )

    async def dispatch(self, interaction: discord.Interaction) -> None:
        values = selected_values(interaction)
        action = values[0] if values else ""
        handlers = {
            ADMIN_SHOW_LOGS: self.show_logs,
            ADMIN_SHOW_BOT_INFO: self.show_bot_info,
            ADMIN_SEND_MESSAGE: self.open_send_message,
            ADMIN_SHOW_TICKET_MESSAGES: self.show_ticket_messages,
        }
        handler = handlers.get(action)
        if handler is None:
            await send_ephemeral(interaction, "Unknown option selected.")
            return
        LOGGER.info("Admin action %s by %s", action, interaction.user)
        await handler(interaction)

    async def _send_rendered(self, interaction: discord.Interaction, rendered: RenderedLog) -> None:
        if rendered.file is None:
            await interaction.response.send_message(rendered.content, ephemeral=True)
        else:
            await interaction.response.send_message(rendered.content, file=rendered.file, ephemeral=True)

    async def show_logs(self, interaction: discord.Interaction) -> None:
        rendered = render_log(
            self.ticket_log.read(),
            limit=self.config.inline_log_limit,
            heading="**Ticket Logs:**",
            filename="ticket_logs.txt",
            attachment_note="Here are the ticket logs:",
        )
        await self._send_rendered(interaction, rendered)

    async def show_ticket_messages(self, interaction: discord.Interaction) -> None:
        rendered = render_log(
            self.message_log.read(),
            limit=self.config.inline_log_limit,
            heading="**Ticket Messages:**",
            filename="ticket_messages.txt",
            attachment_note="Here are the ticket messages:",
        )
        await self._send_rendered(interaction, rendered)

    def bot_info(self) -> str:
        last = stamp_from_unix(self.state.cooldowns.last_recorded_at) or "Never"
        return (
            "**Bot Info:**\n"
            f"- Total Tickets Created: {self.state.counter.current}\n"
            f"- Last Ticket Created At: {last}"
        )

    async def show_bot_info(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(self.bot_info(), ephemeral=True)

    async def open_send_message(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(SendMessageModal())

    async def send_message(self, interaction: discord.Interaction) -> None:
        values = modal_values(interaction)
        result = await self.deliver_direct_message(
            values.get(USER_ID_INPUT_ID, ""), values.get(MESSAGE_INPUT_ID, "")
        )
        await interaction.response.send_message(result.message, ephemeral=True)

    async def resolve_user(self, user_id: int) -> discord.User | None:
        user = self.client.get_user(user_id)
        if user is not None:
            return user
        try:
            return await self.client.fetch_user(user_id)
        except discord.NotFound:
            return None

    async def deliver_direct_message(self, raw_user_id: str, body: str) -> DeliveryResult:
        """DM a user by id and mirror the message to the log channel.

        Used by the send-message modal and the operator console. Invalid input
        raises ValidationError; Discord delivery failures come back as a
        failed result.
        """
        try:
            user_id = int(raw_user_id.strip())
        except ValueError:
            raise ValidationError(user_message="Invalid user ID. Please provide a valid Discord ID.") from None
        if not body.strip():
            raise ValidationError(user_message="Message cannot be empty.")

        user = await self.resolve_user(user_id)
        if user is None:
            raise ValidationError(user_message="User not found. Please ensure the user ID is correct.")

        try:
            await user.send(body)
        except discord.HTTPException as error:
            LOGGER.warning("Failed to DM %s (%s): %s", user.name, user.id, error)
            return DeliveryResult(False, f"Failed to send message: {error.text or error}")

        LOGGER.info("Direct message sent to %s (%s)", user.name, user.id)
        await self._mirror(f"**Message sent to {user.name} (ID: {user.id}):**\n{body}")
        return DeliveryResult(True, f"Message sent to {user.name} (ID: {user.id}).")

    def _log_channel(self) -> discord.abc.Messageable | None:
        channel_id = self.config.log_channel_id
        if channel_id is None:
            return None
        channel = self.client.get_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            LOGGER.warning("Log channel %s not found", channel_id)
            return None
        return channel

    async def _mirror(self, content: str) -> None:
        channel = self._log_channel()
        if channel is None:
            return
        try:
            await channel.send(content)
        except discord.HTTPException:
            LOGGER.exception("Failed to mirror message to log channel %s", self.config.log_channel_id)

    async def post_panel(self) -> bool:
        channel = self._log_channel()
        if channel is None:
            return False
        await channel.send("**Admin Panel**", view=components_only(AdminMenuView()))
        LOGGER.info("Admin panel posted to channel %s", self.config.log_channel_id)
        return True
