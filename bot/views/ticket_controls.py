from __future__ import annotations

import discord

from utils.constants import (
    CLAIM_BUTTON_ID,
    CLOSE_BUTTON_ID,
    RESOLUTION_INPUT_ID,
    RESOLVE_BUTTON_ID,
    RESOLVE_MODAL_ID,
)


class TicketControlsView(discord.ui.View):
    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.add_item(
            discord.ui.Button(label="Claim Ticket", style=discord.ButtonStyle.primary, custom_id=CLAIM_BUTTON_ID)
        )
        self.add_item(
            discord.ui.Button(label="Resolve Ticket", style=discord.ButtonStyle.success, custom_id=RESOLVE_BUTTON_ID)
        )
        self.add_item(
            discord.ui.Button(label="Close Ticket", style=discord.ButtonStyle.danger, custom_id=CLOSE_BUTTON_ID)
        )


class ResolveModal(discord.ui.Modal):
    resolution = discord.ui.TextInput(
        label="Resolution Message",
        custom_id=RESOLUTION_INPUT_ID,
        placeholder="Enter the resolution message...",
        style=discord.TextStyle.paragraph,
        max_length=1500,
        required=True,
    )

    def __init__(self) -> None:
        super().__init__(title="Resolve Ticket", custom_id=RESOLVE_MODAL_ID, timeout=600)
