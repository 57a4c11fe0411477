from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import discord

from core.config import TicketConfig
from core.errors import MissingRoleError


class PrincipalKind(enum.Enum):
    ROLE = "role"
    MEMBER = "member"


@dataclass(frozen=True, slots=True)
class OverwriteEntry:
    principal: Any
    kind: PrincipalKind
    view: bool | None = None
    send: bool | None = None
    attach: bool | None = None

    def to_overwrite(self) -> discord.PermissionOverwrite:
        return discord.PermissionOverwrite(
            view_channel=self.view, send_messages=self.send, attach_files=self.attach
        )


def _participant(principal: Any, kind: PrincipalKind) -> OverwriteEntry:
    return OverwriteEntry(principal=principal, kind=kind, view=True, send=True, attach=True)


def find_role(guild: discord.Guild, name: str) -> discord.Role | None:
    return discord.utils.get(guild.roles, name=name)


class PermissionPlanBuilder:
    def __init__(self, config: TicketConfig) -> None:
        self.config = config

    def helper_role(self, guild: discord.Guild) -> discord.Role:
        role = find_role(guild, self.config.helper_role_name)
        if role is None:
            raise MissingRoleError(
                role_name=self.config.helper_role_name,
                user_message=f"The ticket system is missing the `{self.config.helper_role_name}` role.",
            )
        return role

    def build_ticket_plan(self, guild: discord.Guild, requester: discord.abc.User) -> list[OverwriteEntry]:
        """Overwrites for a new ticket channel, in the order they are applied.

        The same principal may appear more than once (an owner who also holds a
        manager role, say); callers folding the plan into a mapping keep one.
        """
        plan = [
            OverwriteEntry(principal=guild.default_role, kind=PrincipalKind.ROLE, view=False),
            _participant(self.helper_role(guild), PrincipalKind.ROLE),
            _participant(requester, PrincipalKind.MEMBER),
        ]
        for name in self.config.manager_role_names:
            manager = find_role(guild, name)
            if manager is not None:
                plan.append(_participant(manager, PrincipalKind.ROLE))
        moderator = find_role(guild, self.config.moderator_role_name)
        if moderator is not None:
            plan.append(_participant(moderator, PrincipalKind.ROLE))
        if guild.owner is not None:
            plan.append(_participant(guild.owner, PrincipalKind.MEMBER))
        return plan

    @staticmethod
    def build_claim_plan(claimer: discord.Member, helper_role: discord.Role | None) -> list[OverwriteEntry]:
        plan = [OverwriteEntry(principal=claimer, kind=PrincipalKind.MEMBER, view=True, send=True)]
        if helper_role is not None:
            plan.append(OverwriteEntry(principal=helper_role, kind=PrincipalKind.ROLE, view=True, send=False))
        return plan


def to_overwrites(plan: Sequence[OverwriteEntry]) -> dict[Any, discord.PermissionOverwrite]:
    overwrites: dict[Any, discord.PermissionOverwrite] = {}
    for entry in plan:
        overwrites[entry.principal] = entry.to_overwrite()
    return overwrites
