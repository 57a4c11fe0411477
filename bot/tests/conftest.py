from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from core.config import TicketConfig, WebhookLogConfig
from fakes import FakeClock, make_guild
from services.cache import MemoryCache
from services.cooldowns import CooldownTracker
from services.state import AppState
from services.ticket_log import TicketLog
from services.ticket_service import TicketService, TicketServiceDeps
from services.webhook_log import WebhookLogger


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ticket_config() -> TicketConfig:
    return TicketConfig(ticket_channel_id=111, log_channel_id=222)


@pytest.fixture
def state(clock: FakeClock) -> AppState:
    return AppState(cooldowns=CooldownTracker(MemoryCache(clock=clock), 60, clock=clock))


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock(spec=discord.Client)
    client.guilds = [make_guild()]
    client.get_guild = MagicMock(return_value=None)
    client.get_channel = MagicMock(return_value=None)
    client.get_user = MagicMock(return_value=None)
    client.fetch_user = AsyncMock(side_effect=discord.NotFound(MagicMock(status=404, reason="Not Found"), "unknown"))
    return client


@pytest.fixture
def ticket_log(tmp_path: Path) -> TicketLog:
    return TicketLog(tmp_path / "tickets.txt")


@pytest.fixture
def ticket_service(
    ticket_config: TicketConfig, client: MagicMock, state: AppState, ticket_log: TicketLog
) -> TicketService:
    deps = TicketServiceDeps(
        client=client,
        state=state,
        ticket_log=ticket_log,
        message_log=ticket_log,
        webhook=WebhookLogger(WebhookLogConfig()),
        sleep=AsyncMock(),
    )
    return TicketService(ticket_config, deps)
