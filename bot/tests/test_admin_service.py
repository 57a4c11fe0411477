from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from core.errors import ValidationError
from fakes import make_channel, make_interaction, make_member, modal_data, select_data
from services.admin_service import AdminService, render_log
from services.ticket_log import TicketLog
from utils.constants import ADMIN_MENU_ID, SEND_MESSAGE_MODAL_ID
from views.admin_panel import AdminMenuView, SendMessageModal


@pytest.fixture
def admin(ticket_config, client, state, ticket_log) -> AdminService:
    return AdminService(ticket_config, client, state, ticket_log, ticket_log)


def _menu(value: str):
    return make_interaction(
        kind=discord.InteractionType.component,
        data=select_data(ADMIN_MENU_ID, value),
        user=make_member("boss", 1, administrator=True),
    )


def _render(text: str | None):
    return render_log(
        text, limit=2000, heading="**Ticket Logs:**", filename="ticket_logs.txt", attachment_note="Here are the ticket logs:"
    )


def test_render_log_boundary() -> None:
    inline = _render("x" * 1977)
    assert inline.file is None
    assert inline.content == "**Ticket Logs:**\n```" + "x" * 1977 + "```"
    assert len(inline.content) == 2000

    attached = _render("x" * 2001)
    assert attached.content == "Here are the ticket logs:"
    assert attached.file is not None
    assert attached.file.filename == "ticket_logs.txt"


@pytest.mark.parametrize("size", [1978, 2000])
def test_render_log_attaches_when_reply_would_exceed_message_cap(size) -> None:
    rendered = _render("x" * size)
    assert rendered.content == "Here are the ticket logs:"
    assert rendered.file is not None


def test_render_log_missing_and_empty() -> None:
    assert _render(None).content == "No logs found. The log file does not exist."
    assert _render("  \n").content == "No logs found. The log file is empty."


@pytest.mark.asyncio
async def test_show_logs_reads_ticket_log(admin, ticket_log) -> None:
    ticket_log.append("[2024-01-01 10:00:00] Ticket #1 created by alice (1001) with reason: Won a Giveaway")
    interaction = _menu("show_logs")

    await admin.dispatch(interaction)

    content = interaction.response.send_message.await_args.args[0]
    assert content.startswith("**Ticket Logs:**\n```")
    assert "Ticket #1 created by alice" in content


@pytest.mark.asyncio
async def test_show_ticket_messages_uses_separate_log(admin, tmp_path: Path) -> None:
    admin.message_log = TicketLog(tmp_path / "messages.txt")
    interaction = _menu("show_ticket_messages")

    await admin.dispatch(interaction)

    interaction.response.send_message.assert_awaited_once_with(
        "No logs found. The log file does not exist.", ephemeral=True
    )


@pytest.mark.asyncio
async def test_bot_info_reports_counter_and_last_creation(admin, state, clock) -> None:
    assert admin.bot_info() == "**Bot Info:**\n- Total Tickets Created: 0\n- Last Ticket Created At: Never"

    state.counter.next()
    await state.cooldowns.record(1001)
    interaction = _menu("show_bot_info")
    await admin.dispatch(interaction)

    content = interaction.response.send_message.await_args.args[0]
    assert "- Total Tickets Created: 1" in content
    assert "Never" not in content


@pytest.mark.asyncio
async def test_unknown_option(admin) -> None:
    interaction = _menu("format_disk")
    await admin.dispatch(interaction)
    interaction.response.send_message.assert_awaited_once_with("Unknown option selected.", ephemeral=True)


@pytest.mark.asyncio
async def test_send_message_option_opens_modal(admin) -> None:
    interaction = _menu("send_message")
    await admin.dispatch(interaction)
    assert isinstance(interaction.response.send_modal.await_args.args[0], SendMessageModal)


@pytest.mark.asyncio
async def test_show_menu_is_ephemeral(admin) -> None:
    interaction = make_interaction(
        kind=discord.InteractionType.application_command, data={"name": "admin"}, user=make_member()
    )
    await admin.show_menu(interaction)
    kwargs = interaction.response.send_message.await_args.kwargs
    assert kwargs["ephemeral"] is True
    assert isinstance(kwargs["view"], AdminMenuView)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("raw_id", "body", "message"),
    [
        ("abc", "hi", "Invalid user ID. Please provide a valid Discord ID."),
        ("123", "   ", "Message cannot be empty."),
        ("404", "hi", "User not found. Please ensure the user ID is correct."),
    ],
)
async def test_deliver_direct_message_validation(admin, raw_id, body, message) -> None:
    with pytest.raises(ValidationError) as excinfo:
        await admin.deliver_direct_message(raw_id, body)
    assert excinfo.value.user_message == message


@pytest.mark.asyncio
async def test_send_message_modal_delivers_and_mirrors(admin, client) -> None:
    target = make_member("alice", 1001)
    log_channel = make_channel("staff-log", 222)
    client.get_user.return_value = target
    client.get_channel.return_value = log_channel
    interaction = make_interaction(
        kind=discord.InteractionType.modal_submit,
        data=modal_data(SEND_MESSAGE_MODAL_ID, user_id="1001", message_content="Your prize is ready."),
        user=make_member("boss", 1, administrator=True),
    )

    await admin.send_message(interaction)

    target.send.assert_awaited_once_with("Your prize is ready.")
    interaction.response.send_message.assert_awaited_once_with("Message sent to alice (ID: 1001).", ephemeral=True)
    log_channel.send.assert_awaited_once_with("**Message sent to alice (ID: 1001):**\nYour prize is ready.")


@pytest.mark.asyncio
async def test_direct_message_failure_is_reported(admin, client) -> None:
    target = make_member("alice", 1001)
    target.send.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Cannot send messages to this user")
    client.get_user.return_value = target

    result = await admin.deliver_direct_message("1001", "hello")

    assert result.ok is False
    assert result.message == "Failed to send message: Cannot send messages to this user"


@pytest.mark.asyncio
async def test_post_panel(admin, client) -> None:
    assert await admin.post_panel() is False

    log_channel = make_channel("staff-log", 222)
    client.get_channel.return_value = log_channel
    assert await admin.post_panel() is True
    args, kwargs = log_channel.send.await_args
    assert args[0] == "**Admin Panel**"
    assert isinstance(kwargs["view"], AdminMenuView)
    assert kwargs["view"].is_finished()


@pytest.mark.asyncio
async def test_fetch_user_fallback(admin, client) -> None:
    fetched = make_member("dave", 77)
    client.fetch_user = AsyncMock(return_value=fetched)
    assert await admin.resolve_user(77) is fetched
