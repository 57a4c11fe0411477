from __future__ import annotations

import discord

from utils.constants import (
    ADMIN_ACTIONS,
    ADMIN_MENU_ID,
    MESSAGE_INPUT_ID,
    SEND_MESSAGE_MODAL_ID,
    USER_ID_INPUT_ID,
)


class AdminMenuView(discord.ui.View):
    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.add_item(
            discord.ui.Select(
                custom_id=ADMIN_MENU_ID,
                placeholder="Select an admin action",
                options=[
                    discord.SelectOption(label=label, value=value, description=description)
                    for value, label, description in ADMIN_ACTIONS
                ],
            )
        )


class SendMessageModal(discord.ui.Modal):
    user_id = discord.ui.TextInput(
        label="User ID",
        custom_id=USER_ID_INPUT_ID,
        placeholder="Enter the user's Discord ID...",
        style=discord.TextStyle.short,
        max_length=20,
    )
    message = discord.ui.TextInput(
        label="Message",
        custom_id=MESSAGE_INPUT_ID,
        placeholder="Enter the message to send...",
        style=discord.TextStyle.paragraph,
        max_length=2000,
    )

    def __init__(self) -> None:
        super().__init__(title="Send Message to User", custom_id=SEND_MESSAGE_MODAL_ID, timeout=600)
