from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from core.errors import CooldownActiveError, TicketCreationError, TicketStateError, ValidationError
from database.models import TicketRecord, TicketState
from fakes import (
    make_channel,
    make_guild,
    make_interaction,
    make_member,
    make_role,
    modal_data,
    select_data,
)
from utils.constants import RESOLUTION_INPUT_ID, RESOLVE_MODAL_ID, TICKET_REASON_MENU_ID
from views.ticket_controls import ResolveModal, TicketControlsView


def _record(channel_id: int, state: TicketState = TicketState.CREATED, creator_id: int = 1001) -> TicketRecord:
    return TicketRecord(
        id="t-1",
        ticket_number=1,
        guild_id=500,
        channel_id=channel_id,
        creator_id=creator_id,
        creator_name="alice",
        reason_key="support",
        reason_label="Get Support by Staff",
        state=state,
    )


@pytest.mark.asyncio
async def test_select_reason_creates_channel_and_starts_cooldown(ticket_service, client, ticket_log) -> None:
    guild = client.guilds[0]
    user = make_member("alice", 1001)
    interaction = make_interaction(
        kind=discord.InteractionType.component,
        data=select_data(TICKET_REASON_MENU_ID, "giveaway"),
        user=user,
    )

    await ticket_service.select_reason(interaction)

    guild.create_text_channel.assert_awaited_once()
    assert guild.create_text_channel.await_args.kwargs["name"] == "ticket-alice-won-a-giveaway"
    channel = guild.created_channels[0]
    sent = channel.send.await_args.kwargs
    assert sent["content"] == "<@&2> - New ticket from <@1001>"
    assert sent["embed"].title == "Ticket #1"
    assert "**Reason:** Won a Giveaway" in sent["embed"].description
    assert isinstance(sent["view"], TicketControlsView)
    assert sent["view"].is_finished()

    log_text = ticket_log.read()
    assert "Ticket #1 created by alice (1001) with reason: Won a Giveaway" in log_text
    assert ticket_service.state.counter.current == 1
    assert await ticket_service.state.cooldowns.remaining(1001) == 60
    interaction.followup.send.assert_awaited_once()
    assert channel.mention in interaction.followup.send.await_args.args[0]


@pytest.mark.asyncio
async def test_second_request_within_cooldown_is_rejected(ticket_service, client, clock) -> None:
    user = make_member("alice", 1001)
    first = make_interaction(
        kind=discord.InteractionType.component, data=select_data(TICKET_REASON_MENU_ID, "support"), user=user
    )
    await ticket_service.select_reason(first)

    clock.advance(15.5)
    second = make_interaction(
        kind=discord.InteractionType.component, data=select_data(TICKET_REASON_MENU_ID, "support"), user=user
    )
    with pytest.raises(CooldownActiveError) as excinfo:
        await ticket_service.select_reason(second)

    assert excinfo.value.remaining_seconds == 45
    assert excinfo.value.user_message == (
        "You can only create one ticket every 1 minute. Please wait 45 seconds."
    )
    assert ticket_service.state.counter.current == 1
    assert client.guilds[0].create_text_channel.await_count == 1

    clock.advance(45)
    third = make_interaction(
        kind=discord.InteractionType.component, data=select_data(TICKET_REASON_MENU_ID, "support"), user=user
    )
    await ticket_service.select_reason(third)
    assert ticket_service.state.counter.current == 2


@pytest.mark.asyncio
async def test_concurrent_requests_from_same_user_both_pass_before_cooldown_is_written(
    ticket_service, client
) -> None:
    user = make_member("alice", 1001)
    interactions = [
        make_interaction(
            kind=discord.InteractionType.component, data=select_data(TICKET_REASON_MENU_ID, "report"), user=user
        )
        for _ in range(2)
    ]

    await asyncio.gather(*(ticket_service.select_reason(item) for item in interactions))

    assert ticket_service.state.counter.current == 2
    assert client.guilds[0].create_text_channel.await_count == 2


@pytest.mark.asyncio
async def test_ticket_is_replayed_in_every_guild_without_target(ticket_service, client) -> None:
    second = make_guild(guild_id=600, name="Other")
    client.guilds = [client.guilds[0], second]

    channels = await ticket_service.create_ticket(make_member("bob", 2002), "report")

    assert len(channels) == 2
    assert ticket_service.state.counter.current == 1
    assert second.created_channels[0].send.await_args.kwargs["embed"].title == "Ticket #1"


@pytest.mark.asyncio
async def test_target_guild_limits_creation(ticket_service, client) -> None:
    target = make_guild(guild_id=600, name="Target")
    client.get_guild.return_value = target
    ticket_service.config.target_guild_id = 600

    await ticket_service.create_ticket(make_member("bob", 2002), "report")

    target.create_text_channel.assert_awaited_once()
    client.guilds[0].create_text_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_guild_without_helper_role_is_skipped(ticket_service, client) -> None:
    client.guilds = [make_guild(with_helper=False)]

    with pytest.raises(TicketCreationError):
        await ticket_service.create_ticket(make_member(), "support")

    client.guilds[0].create_text_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_reason_uses_fallback_label(ticket_service, client) -> None:
    await ticket_service.create_ticket(make_member("carol", 3003), "mystery")

    kwargs = client.guilds[0].create_text_channel.await_args.kwargs
    assert kwargs["name"] == "ticket-carol-unknown"


@pytest.mark.asyncio
async def test_ticket_record_is_persisted_when_registry_present(ticket_service, client) -> None:
    repo = MagicMock()
    repo.create = AsyncMock()
    ticket_service.deps.repo = repo

    await ticket_service.create_ticket(make_member("alice", 1001), "support")

    record = repo.create.await_args.args[0]
    assert record.creator_id == 1001
    assert record.ticket_number == 1
    assert record.state is TicketState.CREATED


@pytest.mark.asyncio
async def test_claim_updates_permissions_and_announces(ticket_service) -> None:
    guild = make_guild()
    helper = make_role("Helper", 2)
    guild.roles = [guild.default_role, helper]
    channel = make_channel(guild=guild)
    staff = make_member("helperbob", 55, roles=[helper])
    interaction = make_interaction(
        kind=discord.InteractionType.component, data={}, user=staff, channel=channel, guild=guild
    )

    await ticket_service.claim(interaction)

    calls = channel.set_permissions.await_args_list
    assert calls[0].args[0] is staff
    assert calls[0].kwargs["overwrite"].view_channel is True
    assert calls[0].kwargs["overwrite"].send_messages is True
    assert calls[1].args[0] is helper
    assert calls[1].kwargs["overwrite"].view_channel is True
    assert calls[1].kwargs["overwrite"].send_messages is False
    interaction.response.send_message.assert_awaited_once_with("<@55> has claimed this ticket.")


@pytest.mark.asyncio
async def test_claim_outside_text_channel_is_rejected(ticket_service) -> None:
    interaction = make_interaction(
        kind=discord.InteractionType.component, data={}, user=make_member(), channel=MagicMock(spec=discord.Thread)
    )

    with pytest.raises(ValidationError) as excinfo:
        await ticket_service.claim(interaction)
    assert excinfo.value.user_message == "This command can only be used in a ticket channel."


@pytest.mark.asyncio
async def test_begin_resolve_opens_modal(ticket_service) -> None:
    interaction = make_interaction(kind=discord.InteractionType.component, data={}, user=make_member())

    await ticket_service.begin_resolve(interaction)

    modal = interaction.response.send_modal.await_args.args[0]
    assert isinstance(modal, ResolveModal)


@pytest.mark.asyncio
async def test_resolve_dms_owner_and_deletes_after_delay(ticket_service, client) -> None:
    guild = make_guild()
    channel = make_channel(guild=guild)
    owner = make_member("alice", 1001)
    client.get_user.return_value = owner
    repo = MagicMock()
    repo.get_by_channel = AsyncMock(return_value=_record(channel.id))
    repo.set_state = AsyncMock()
    ticket_service.deps.repo = repo
    interaction = make_interaction(
        kind=discord.InteractionType.modal_submit,
        data=modal_data(RESOLVE_MODAL_ID, **{RESOLUTION_INPUT_ID: "Fixed your rank."}),
        user=make_member("staff", 55),
        channel=channel,
        guild=guild,
    )

    await ticket_service.resolve(interaction)

    owner.send.assert_awaited_once_with("Your ticket has been resolved. Resolution: Fixed your rank.")
    channel.send.assert_awaited_once_with("This ticket has been resolved and will be closed in 10 seconds.")
    ticket_service.deps.sleep.assert_awaited_once_with(10)
    channel.delete.assert_awaited_once()
    states = [call.args[1] for call in repo.set_state.await_args_list]
    assert states == [TicketState.RESOLVED, TicketState.DELETED]


@pytest.mark.asyncio
async def test_resolve_falls_back_to_channel_name_owner(ticket_service) -> None:
    guild = make_guild()
    owner = make_member("alice", 1001)
    guild.get_member_named.return_value = owner
    channel = make_channel("ticket-alice-report-a-player", guild=guild)
    interaction = make_interaction(
        kind=discord.InteractionType.modal_submit,
        data=modal_data(RESOLVE_MODAL_ID, **{RESOLUTION_INPUT_ID: "Handled."}),
        user=make_member("staff", 55),
        channel=channel,
        guild=guild,
    )

    await ticket_service.resolve(interaction)

    guild.get_member_named.assert_called_once_with("alice")
    owner.send.assert_awaited_once()
    channel.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_resolve_reports_failed_deletion(ticket_service) -> None:
    channel = make_channel(guild=make_guild())
    channel.delete.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "missing access")
    interaction = make_interaction(
        kind=discord.InteractionType.modal_submit,
        data=modal_data(RESOLVE_MODAL_ID, **{RESOLUTION_INPUT_ID: "Done."}),
        user=make_member("staff", 55),
        channel=channel,
    )

    await ticket_service.resolve(interaction)

    interaction.followup.send.assert_awaited_once_with(
        "An error occurred while resolving the ticket.", ephemeral=True
    )


@pytest.mark.asyncio
async def test_resolve_with_blank_message_is_rejected(ticket_service) -> None:
    channel = make_channel(guild=make_guild())
    interaction = make_interaction(
        kind=discord.InteractionType.modal_submit,
        data=modal_data(RESOLVE_MODAL_ID, **{RESOLUTION_INPUT_ID: "   "}),
        user=make_member("staff", 55),
        channel=channel,
    )

    with pytest.raises(ValidationError):
        await ticket_service.resolve(interaction)
    channel.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_close_announces_and_deletes(ticket_service) -> None:
    channel = make_channel(guild=make_guild())
    interaction = make_interaction(
        kind=discord.InteractionType.component, data={}, user=make_member("staff", 55), channel=channel
    )

    await ticket_service.close(interaction)

    interaction.response.defer.assert_awaited_once()
    channel.send.assert_awaited_once_with(
        "This ticket is being closed by staff. The channel will be deleted in 10 seconds."
    )
    channel.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_swallows_deletion_failure(ticket_service) -> None:
    channel = make_channel(guild=make_guild())
    channel.delete.side_effect = discord.NotFound(MagicMock(status=404, reason="Not Found"), "gone")
    interaction = make_interaction(
        kind=discord.InteractionType.component, data={}, user=make_member("staff", 55), channel=channel
    )

    await ticket_service.close(interaction)

    interaction.followup.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_finished_ticket_rejects_second_close(ticket_service) -> None:
    channel = make_channel(guild=make_guild())
    repo = MagicMock()
    repo.get_by_channel = AsyncMock(return_value=_record(channel.id, TicketState.RESOLVED))
    ticket_service.deps.repo = repo
    interaction = make_interaction(
        kind=discord.InteractionType.component, data={}, user=make_member("staff", 55), channel=channel
    )

    with pytest.raises(TicketStateError):
        await ticket_service.close(interaction)
    channel.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_close_can_be_retried_after_failed_deletion(ticket_service) -> None:
    channel = make_channel(guild=make_guild())
    channel.delete.side_effect = [
        discord.HTTPException(MagicMock(status=500, reason="Server Error"), "unavailable"),
        None,
    ]
    record = _record(channel.id, TicketState.CLAIMED)
    repo = MagicMock()
    repo.get_by_channel = AsyncMock(return_value=record)
    repo.set_state = AsyncMock()
    ticket_service.deps.repo = repo

    def press_close():
        return make_interaction(
            kind=discord.InteractionType.component, data={}, user=make_member("staff", 55), channel=channel
        )

    await ticket_service.close(press_close())
    assert record.state is TicketState.CLAIMED
    assert ticket_service.state.closing == set()

    await ticket_service.close(press_close())

    assert channel.delete.await_count == 2
    assert record.state is TicketState.DELETED
    assert [call.args[1] for call in repo.set_state.await_args_list] == [
        TicketState.CLOSED,
        TicketState.CLAIMED,
        TicketState.CLOSED,
        TicketState.DELETED,
    ]


@pytest.mark.asyncio
async def test_resolve_failure_reopens_ticket_for_claim(ticket_service) -> None:
    guild = make_guild()
    channel = make_channel(guild=guild)
    channel.delete.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "missing access")
    record = _record(channel.id)
    repo = MagicMock()
    repo.get_by_channel = AsyncMock(return_value=record)
    repo.set_state = AsyncMock()
    repo.set_claimed = AsyncMock()
    ticket_service.deps.repo = repo
    resolve = make_interaction(
        kind=discord.InteractionType.modal_submit,
        data=modal_data(RESOLVE_MODAL_ID, **{RESOLUTION_INPUT_ID: "Done."}),
        user=make_member("staff", 55),
        channel=channel,
    )

    await ticket_service.resolve(resolve)
    assert record.state is TicketState.CREATED

    helper = guild.roles[-1]
    claim = make_interaction(
        kind=discord.InteractionType.component,
        data={},
        user=make_member("helperbob", 56, roles=[helper]),
        channel=channel,
        guild=guild,
    )
    await ticket_service.claim(claim)
    assert record.state is TicketState.CLAIMED


@pytest.mark.asyncio
async def test_concurrent_closes_run_one_countdown(ticket_service) -> None:
    channel = make_channel(guild=make_guild())
    repo = MagicMock()
    repo.get_by_channel = AsyncMock(return_value=_record(channel.id))
    repo.set_state = AsyncMock()
    ticket_service.deps.repo = repo
    first, second = (
        make_interaction(
            kind=discord.InteractionType.component, data={}, user=make_member("staff", user_id), channel=channel
        )
        for user_id in (55, 56)
    )

    results = await asyncio.gather(
        ticket_service.close(first), ticket_service.close(second), return_exceptions=True
    )

    assert results[0] is None
    assert isinstance(results[1], TicketStateError)
    assert results[1].user_message == "This ticket is already being closed."
    channel.send.assert_awaited_once()
    channel.delete.assert_awaited_once()
    assert ticket_service.state.closing == set()


@pytest.mark.asyncio
async def test_claim_during_countdown_is_rejected(ticket_service) -> None:
    guild = make_guild()
    channel = make_channel(guild=guild)
    ticket_service.state.closing.add(channel.id)
    interaction = make_interaction(
        kind=discord.InteractionType.component,
        data={},
        user=make_member("helperbob", 55, roles=[guild.roles[-1]]),
        channel=channel,
        guild=guild,
    )

    with pytest.raises(TicketStateError):
        await ticket_service.claim(interaction)
    channel.set_permissions.assert_not_awaited()


@pytest.mark.asyncio
async def test_ticket_channel_messages_are_logged(ticket_service, ticket_log) -> None:
    message = MagicMock()
    message.channel = make_channel("ticket-alice-report-a-player")
    message.author.name = "alice"
    message.content = "He griefed my base"

    assert ticket_service.log_ticket_message(message) is True
    assert "Message in ticket channel ticket-alice-report-a-player by alice: He griefed my base" in (
        ticket_log.read()
    )

    message.channel = make_channel("general")
    assert ticket_service.log_ticket_message(message) is False


@pytest.mark.asyncio
async def test_direct_message_onboarding_respects_cooldown(ticket_service) -> None:
    user = make_member("alice", 1001)
    await ticket_service.offer_ticket_menu(user)
    assert "view" in user.send.await_args.kwargs

    await ticket_service.state.cooldowns.record(1001)
    await ticket_service.offer_ticket_menu(user)
    assert user.send.await_args.args[0].startswith("You can only create one ticket every 1 minute.")


@pytest.mark.asyncio
async def test_post_reason_menu_requires_channel(ticket_service, client) -> None:
    assert await ticket_service.post_reason_menu() is False

    channel = make_channel("tickets")
    client.get_channel.return_value = channel
    assert await ticket_service.post_reason_menu() is True
    assert channel.send.await_args.kwargs["embed"].title == "Echo Tickets"


@pytest.mark.asyncio
async def test_discord_failure_in_one_guild_does_not_block_others(ticket_service, client) -> None:
    broken = make_guild(guild_id=600, name="Broken")
    broken.create_text_channel.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "no")
    client.guilds = [broken, client.guilds[0]]

    channels = await ticket_service.create_ticket(make_member("bob", 2002), "support")

    assert len(channels) == 1
