from __future__ import annotations

from typing import TypeVar

import discord

from views.admin_panel import AdminMenuView
from views.ticket_controls import TicketControlsView
from views.ticket_panel import TicketPanelView

ViewT = TypeVar("ViewT", bound=discord.ui.View)


def persistent_views() -> list[discord.ui.View]:
    """One instance of every component view, registered once when the bot starts."""
    return [TicketPanelView(), TicketControlsView(), AdminMenuView()]


def components_only(view: ViewT) -> ViewT:
    """Stop ``view`` so a send carries its components without tracking the message.

    Clicks are routed by custom id through the shared instances above.
    """
    view.stop()
    return view
