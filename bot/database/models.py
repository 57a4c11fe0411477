from __future__ import annotations

import enum
from dataclasses import dataclass


class TicketState(str, enum.Enum):
    REQUESTED = "requested"
    CREATED = "created"
    CLAIMED = "claimed"
    RESOLVED = "resolved"
    CLOSED = "closed"
    DELETED = "deleted"

    def can_move_to(self, target: TicketState) -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[TicketState, frozenset[TicketState]] = {
    TicketState.REQUESTED: frozenset({TicketState.CREATED}),
    TicketState.CREATED: frozenset({TicketState.CLAIMED, TicketState.RESOLVED, TicketState.CLOSED}),
    # Re-claiming hands the ticket to another staff member.
    TicketState.CLAIMED: frozenset({TicketState.CLAIMED, TicketState.RESOLVED, TicketState.CLOSED}),
    TicketState.RESOLVED: frozenset({TicketState.DELETED}),
    TicketState.CLOSED: frozenset({TicketState.DELETED}),
    TicketState.DELETED: frozenset(),
}


@dataclass(slots=True)
class TicketRecord:
    id: str
    ticket_number: int
    guild_id: int
    channel_id: int
    creator_id: int
    creator_name: str
    reason_key: str
    reason_label: str
    state: TicketState = TicketState.CREATED
    claimed_by_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_open(self) -> bool:
        return self.state in {TicketState.CREATED, TicketState.CLAIMED}
