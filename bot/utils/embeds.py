from __future__ import annotations

from datetime import datetime

import discord

from utils.constants import TICKET_REASONS
from utils.time import format_stamp, utc_now


def make_embed(
    title: str,
    description: str,
    color: discord.Color | None = None,
    footer: str | None = None,
) -> discord.Embed:
    resolved_color = color if color is not None else discord.Color.blue()
    embed = discord.Embed(
        title=title,
        description=description,
        color=resolved_color,
        timestamp=utc_now(),
    )
    if footer:
        embed.set_footer(text=footer)
    return embed


def error_embed(message: str) -> discord.Embed:
    return make_embed(title="Error", description=message, color=discord.Color.red())


def reason_menu_embed(title: str) -> discord.Embed:
    embed = make_embed(
        title=title,
        description="Please select a reason for creating a ticket from the dropdown menu below.",
    )
    for reason in TICKET_REASONS:
        embed.add_field(name=reason.label, value=reason.guidance, inline=False)
    return embed


def ticket_intro_embed(
    ticket_number: int, creator_mention: str, reason: str, created_at: datetime
) -> discord.Embed:
    return make_embed(
        title=f"Ticket #{ticket_number}",
        description=(
            f"**Ticket Created By:** {creator_mention}\n"
            f"**Reason:** {reason}\n"
            f"**Created At:** {format_stamp(created_at)}"
        ),
    )
