from __future__ import annotations

from fastapi import Depends, FastAPI, Header, HTTPException

from core.bot import TicketBot
from database.base import DatabaseError
from utils.time import stamp_from_unix


def create_api_app(bot: TicketBot) -> FastAPI:
    app = FastAPI(title="Ticket Bot API", version="1.0.0")

    def require_key(x_api_key: str | None = Header(default=None)) -> None:
        expected = bot.config.fastapi.api_key
        if expected and x_api_key != expected:
            raise HTTPException(status_code=401, detail="Unauthorized")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/stats", dependencies=[Depends(require_key)])
    async def stats() -> dict[str, object]:
        return {
            "total_tickets": bot.state.counter.current,
            "last_ticket_created_at": stamp_from_unix(bot.state.cooldowns.last_recorded_at),
            "guild_count": len(bot.guilds),
            "started_at": bot.state.started_at,
        }

    @app.get("/tickets/open", dependencies=[Depends(require_key)])
    async def open_tickets(limit: int = 100) -> dict[str, object]:
        try:
            rows = await bot.ticket_repo.list_open(limit=max(1, min(limit, 500)))
        except DatabaseError as exc:
            raise HTTPException(status_code=503, detail="Ticket store unavailable") from exc
        return {
            "items": [
                {
                    "id": row.id,
                    "ticket_number": row.ticket_number,
                    "guild_id": str(row.guild_id),
                    "channel_id": str(row.channel_id),
                    "creator_id": str(row.creator_id),
                    "creator_name": row.creator_name,
                    "reason": row.reason_label,
                    "state": row.state.value,
                    "claimed_by_id": str(row.claimed_by_id) if row.claimed_by_id else None,
                    "created_at": row.created_at,
                }
                for row in rows
            ]
        }

    return app
