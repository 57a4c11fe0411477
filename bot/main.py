from __future__ import annotations

import asyncio
import getpass
import logging
from collections.abc import Callable
from pathlib import Path

import uvicorn

from core.api import create_api_app
from core.bot import TicketBot
from core.config import AppConfig, ConfigError, load_config, store_token_file
from core.logging import configure_logging

LOGGER = logging.getLogger(__name__)


def ensure_token(config: AppConfig, prompt: Callable[[str], str] = getpass.getpass) -> str:
    """Return the bot token, asking the operator once and saving the answer."""
    if config.discord.token:
        return config.discord.token
    token = prompt("Enter your Discord bot token: ").strip()
    if not token:
        raise ConfigError("A Discord bot token is required")
    store_token_file(Path(config.discord.token_file), token)
    LOGGER.info("Bot token saved to %s", config.discord.token_file)
    config.discord.token = token
    return token


async def _run_bot(config: AppConfig) -> None:
    bot = TicketBot(config=config)
    async with bot:
        api_task: asyncio.Task[None] | None = None
        if config.fastapi.enabled:
            api = create_api_app(bot)
            server = uvicorn.Server(
                uvicorn.Config(
                    app=api,
                    host=config.fastapi.host,
                    port=config.fastapi.port,
                    log_level=config.logging.level.lower(),
                )
            )
            api_task = asyncio.create_task(server.serve())
        try:
            await bot.start(config.discord.token)
        finally:
            if api_task:
                api_task.cancel()


def main() -> None:
    root = Path(__file__).resolve().parent
    config = load_config(root / "config" / "config.yaml")
    configure_logging(config.logging)
    ensure_token(config)
    LOGGER.info("Connecting to Discord...")
    try:
        asyncio.run(_run_bot(config))
    except KeyboardInterrupt:
        LOGGER.info("Shutting down the bot...")


if __name__ == "__main__":
    main()
