from __future__ import annotations

import logging
from dataclasses import dataclass

import discord
from discord import app_commands

from utils.embeds import error_embed

LOGGER = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "An error occurred while processing your interaction. Please try again."


class BotError(RuntimeError):
    user_message: str = "An unexpected error occurred."


@dataclass(slots=True)
class PermissionDeniedError(BotError):
    user_message: str = "You do not have permission to use this action."


@dataclass(slots=True)
class ValidationError(BotError):
    user_message: str = "The provided input is not valid."


@dataclass(slots=True)
class CooldownActiveError(BotError):
    remaining_seconds: int = 0
    user_message: str = "You are creating tickets too quickly."


@dataclass(slots=True)
class TicketStateError(BotError):
    user_message: str = "The ticket is not in a valid state for this action."


@dataclass(slots=True)
class MissingRoleError(BotError):
    role_name: str = ""
    user_message: str = "The ticket system is missing a required role."


@dataclass(slots=True)
class TicketCreationError(BotError):
    user_message: str = "Your ticket could not be created. Please contact staff."


async def send_ephemeral(interaction: discord.Interaction, content: str) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(content, ephemeral=True)
    else:
        await interaction.response.send_message(content, ephemeral=True)


async def send_error_response(interaction: discord.Interaction, message: str) -> None:
    embed = error_embed(message)
    if interaction.response.is_done():
        await interaction.followup.send(embed=embed, ephemeral=True)
    else:
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def handle_app_command_error(
    interaction: discord.Interaction, error: app_commands.AppCommandError
) -> None:
    message = GENERIC_FAILURE_MESSAGE
    original = getattr(error, "original", error)
    if isinstance(error, app_commands.CheckFailure):
        message = "You are not authorized for this command."
    elif isinstance(original, BotError):
        message = original.user_message

    LOGGER.exception(
        "Slash command failed. command=%s guild=%s user=%s",
        getattr(interaction.command, "qualified_name", None),
        getattr(interaction.guild, "id", None),
        interaction.user.id if interaction.user else None,
        exc_info=error,
    )
    try:
        await send_error_response(interaction, message)
    except discord.HTTPException:
        LOGGER.warning("Could not report slash command failure to user %s", interaction.user.id)
