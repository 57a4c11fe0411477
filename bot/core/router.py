from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import discord

from core.config import TicketConfig
from core.errors import GENERIC_FAILURE_MESSAGE, BotError, send_ephemeral, send_error_response
from utils.access import Access, has_access
from utils.constants import (
    ADMIN_COMMAND_NAME,
    ADMIN_MENU_ID,
    CLAIM_BUTTON_ID,
    CLOSE_BUTTON_ID,
    RESOLVE_BUTTON_ID,
    RESOLVE_MODAL_ID,
    SEND_MESSAGE_MODAL_ID,
    TICKET_REASON_MENU_ID,
)

if TYPE_CHECKING:
    from services.admin_service import AdminService
    from services.ticket_service import TicketService

LOGGER = logging.getLogger(__name__)

Handler = Callable[[discord.Interaction], Awaitable[None]]


class InteractionKind(enum.Enum):
    MENU = "menu"
    BUTTON = "button"
    MODAL = "modal"
    SLASH = "slash"


_UNKNOWN_REPLIES = {
    InteractionKind.MENU: "Unknown interaction.",
    InteractionKind.BUTTON: "Unknown interaction.",
    InteractionKind.MODAL: "Unknown modal interaction.",
    InteractionKind.SLASH: "Unknown command.",
}


@dataclass(frozen=True, slots=True)
class Route:
    kind: InteractionKind
    identifier: str
    handler: Handler
    access: Access = Access.PUBLIC
    denied_message: str = "You do not have permission to use this action."


def classify(interaction: discord.Interaction) -> tuple[InteractionKind, str] | None:
    data: dict[str, Any] = dict(interaction.data or {})
    if interaction.type is discord.InteractionType.component:
        component_type = data.get("component_type")
        if component_type == discord.ComponentType.button.value:
            kind = InteractionKind.BUTTON
        elif component_type == discord.ComponentType.select.value:
            kind = InteractionKind.MENU
        else:
            return None
        return kind, str(data.get("custom_id", ""))
    if interaction.type is discord.InteractionType.modal_submit:
        return InteractionKind.MODAL, str(data.get("custom_id", ""))
    if interaction.type is discord.InteractionType.application_command:
        return InteractionKind.SLASH, str(data.get("name", ""))
    return None


def selected_values(interaction: discord.Interaction) -> list[str]:
    data: dict[str, Any] = dict(interaction.data or {})
    return [str(value) for value in data.get("values", [])]


def modal_values(interaction: discord.Interaction) -> dict[str, str]:
    """Text input values of a submitted modal, keyed by input custom id."""
    data: dict[str, Any] = dict(interaction.data or {})
    values: dict[str, str] = {}
    for row in data.get("components", []):
        for component in row.get("components", []):
            custom_id = component.get("custom_id")
            if custom_id:
                values[str(custom_id)] = str(component.get("value") or "")
    return values


class InteractionRouter:
    def __init__(self, config: TicketConfig) -> None:
        self.config = config
        self._routes: dict[tuple[InteractionKind, str], Route] = {}

    def add_route(self, route: Route) -> None:
        key = (route.kind, route.identifier)
        if key in self._routes:
            raise ValueError(f"Duplicate route for {route.kind.value} `{route.identifier}`")
        self._routes[key] = route

    def get_route(self, kind: InteractionKind, identifier: str) -> Route | None:
        return self._routes.get((kind, identifier))

    @property
    def routes(self) -> list[Route]:
        return list(self._routes.values())

    async def dispatch(self, interaction: discord.Interaction) -> bool:
        """Run the single handler matching the interaction.

        Returns True when a handler ran to completion. Handler failures never
        escape: they are logged and answered with an ephemeral message.
        """
        classified = classify(interaction)
        if classified is None:
            return False
        kind, identifier = classified

        route = self.get_route(kind, identifier)
        try:
            if route is None:
                LOGGER.info("Unrouted %s interaction `%s` from %s", kind.value, identifier, interaction.user)
                await send_ephemeral(interaction, _UNKNOWN_REPLIES[kind])
                return False
            if not has_access(interaction.user, route.access, self.config):
                LOGGER.info(
                    "Denied %s `%s` for user %s", kind.value, identifier, getattr(interaction.user, "id", None)
                )
                await send_ephemeral(interaction, route.denied_message)
                return False
        except discord.HTTPException:
            LOGGER.exception("Failed to answer %s interaction `%s`", kind.value, identifier)
            return False

        try:
            await route.handler(interaction)
        except BotError as error:
            LOGGER.info("Rejected %s `%s`: %s", kind.value, identifier, error.user_message)
            await self._report(interaction, error.user_message)
            return False
        except Exception:
            LOGGER.exception(
                "Interaction failed. kind=%s id=%s guild=%s user=%s",
                kind.value,
                identifier,
                getattr(interaction.guild, "id", None),
                getattr(interaction.user, "id", None),
            )
            await self._report(interaction, GENERIC_FAILURE_MESSAGE)
            return False
        return True

    @staticmethod
    async def _report(interaction: discord.Interaction, message: str) -> None:
        try:
            await send_error_response(interaction, message)
        except discord.HTTPException:
            LOGGER.warning("Could not deliver failure notice for interaction %s", interaction.id)


def build_router(config: TicketConfig, tickets: TicketService, admin: AdminService) -> InteractionRouter:
    router = InteractionRouter(config)
    for route in (
        Route(InteractionKind.MENU, TICKET_REASON_MENU_ID, tickets.select_reason),
        Route(
            InteractionKind.BUTTON,
            CLAIM_BUTTON_ID,
            tickets.claim,
            Access.STAFF,
            "You do not have permission to claim this ticket.",
        ),
        Route(
            InteractionKind.BUTTON,
            RESOLVE_BUTTON_ID,
            tickets.begin_resolve,
            Access.STAFF,
            "You do not have permission to resolve this ticket.",
        ),
        Route(
            InteractionKind.BUTTON,
            CLOSE_BUTTON_ID,
            tickets.close,
            Access.STAFF,
            "You do not have permission to close this ticket.",
        ),
        Route(
            InteractionKind.MENU,
            ADMIN_MENU_ID,
            admin.dispatch,
            Access.ADMIN,
            "You do not have permission to use the admin panel.",
        ),
        Route(
            InteractionKind.MODAL,
            RESOLVE_MODAL_ID,
            tickets.resolve,
            Access.STAFF,
            "You do not have permission to resolve this ticket.",
        ),
        Route(
            InteractionKind.MODAL,
            SEND_MESSAGE_MODAL_ID,
            admin.send_message,
            Access.ADMIN,
            "You do not have permission to message users.",
        ),
        Route(
            InteractionKind.SLASH,
            ADMIN_COMMAND_NAME,
            admin.show_menu,
            Access.ADMIN,
            "You do not have permission to use the admin panel.",
        ),
    ):
        router.add_route(route)
    return router
