from __future__ import annotations

import enum
from typing import Any

import discord

from core.config import TicketConfig


class Access(enum.Enum):
    PUBLIC = "public"
    STAFF = "staff"
    ADMIN = "admin"


def _role_names(member: Any) -> set[str]:
    return {role.name for role in getattr(member, "roles", [])}


def is_staff(member: discord.abc.User, config: TicketConfig) -> bool:
    if not isinstance(member, discord.Member):
        return False
    return bool(_role_names(member) & {config.helper_role_name, config.moderator_role_name})


def is_admin(member: discord.abc.User, config: TicketConfig) -> bool:
    if not isinstance(member, discord.Member):
        return False
    if member.guild_permissions.administrator:
        return True
    allowed = {config.moderator_role_name, *config.admin_role_names}
    return bool(_role_names(member) & allowed)


def has_access(member: discord.abc.User, access: Access, config: TicketConfig) -> bool:
    if access is Access.PUBLIC:
        return True
    if access is Access.STAFF:
        return is_staff(member, config)
    return is_admin(member, config)
