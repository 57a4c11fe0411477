from __future__ import annotations

from typing import Any

from database.base import Database
from database.models import TicketRecord, TicketState
from utils.time import to_iso, utc_now


def _to_ticket(row: dict[str, Any]) -> TicketRecord:
    return TicketRecord(
        id=str(row["id"]),
        ticket_number=int(row["ticket_number"]),
        guild_id=int(row["guild_id"]),
        channel_id=int(row["channel_id"]),
        creator_id=int(row["creator_id"]),
        creator_name=str(row["creator_name"]),
        reason_key=str(row["reason_key"]),
        reason_label=str(row["reason_label"]),
        state=TicketState(row["state"]),
        claimed_by_id=int(row["claimed_by_id"]) if row.get("claimed_by_id") is not None else None,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class TicketRepository:
    """Channel-to-ticket mapping, so lifecycle actions can find the creator by id."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def create(self, ticket: TicketRecord) -> None:
        now = to_iso(utc_now())
        ticket.created_at = ticket.created_at or now
        ticket.updated_at = now
        await self.db.execute(
            """
            INSERT INTO tickets(
                id, ticket_number, guild_id, channel_id, creator_id, creator_name,
                reason_key, reason_label, state, claimed_by_id, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            [
                ticket.id,
                ticket.ticket_number,
                ticket.guild_id,
                ticket.channel_id,
                ticket.creator_id,
                ticket.creator_name,
                ticket.reason_key,
                ticket.reason_label,
                ticket.state.value,
                ticket.claimed_by_id,
                ticket.created_at,
                ticket.updated_at,
            ],
        )

    async def get_by_channel(self, channel_id: int) -> TicketRecord | None:
        row = await self.db.fetchone("SELECT * FROM tickets WHERE channel_id = ?;", [channel_id])
        return _to_ticket(row) if row else None

    async def set_state(self, ticket_id: str, state: TicketState) -> None:
        await self.db.execute(
            "UPDATE tickets SET state = ?, updated_at = ? WHERE id = ?;",
            [state.value, to_iso(utc_now()), ticket_id],
        )

    async def set_claimed(self, ticket_id: str, staff_id: int) -> None:
        await self.db.execute(
            "UPDATE tickets SET state = ?, claimed_by_id = ?, updated_at = ? WHERE id = ?;",
            [TicketState.CLAIMED.value, staff_id, to_iso(utc_now()), ticket_id],
        )

    async def list_open(self, limit: int = 100) -> list[TicketRecord]:
        rows = await self.db.fetchall(
            """
            SELECT * FROM tickets
            WHERE state IN (?, ?)
            ORDER BY created_at DESC
            LIMIT ?;
            """,
            [TicketState.CREATED.value, TicketState.CLAIMED.value, limit],
        )
        return [_to_ticket(row) for row in rows]
