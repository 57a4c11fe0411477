from __future__ import annotations

import discord

from utils.constants import TICKET_REASON_MENU_ID, TICKET_REASONS


class TicketReasonSelect(discord.ui.Select):
    def __init__(self) -> None:
        super().__init__(
            custom_id=TICKET_REASON_MENU_ID,
            placeholder="Select a reason for your ticket",
            min_values=1,
            max_values=1,
            options=[
                discord.SelectOption(label=reason.label, value=reason.key, description=reason.summary)
                for reason in TICKET_REASONS
            ],
        )


class TicketPanelView(discord.ui.View):
    """Reason menu shown in the ticket channel and in direct messages.

    Selections are handled by the interaction router through the custom id,
    so the view carries no callbacks and survives restarts.
    """

    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.add_item(TicketReasonSelect())
