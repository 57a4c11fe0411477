from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from core.config import WebhookLogConfig
from utils.time import utc_now

LOGGER = logging.getLogger(__name__)


class WebhookLogger:
    """Mirrors ticket lifecycle events to a Discord webhook, when configured."""

    def __init__(self, config: WebhookLogConfig) -> None:
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.enabled and bool(self.config.url)

    @staticmethod
    def build_payload(title: str, details: dict[str, Any]) -> dict[str, Any]:
        return {
            "content": None,
            "embeds": [
                {
                    "title": title,
                    "description": f"```json\n{json.dumps(details, indent=2, default=str)[:3500]}\n```",
                    "timestamp": utc_now().isoformat(),
                }
            ],
        }

    async def send(self, title: str, details: dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.config.url,
                    json=self.build_payload(title, details),
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as response:
                    if response.status >= 400:
                        LOGGER.warning("Webhook log rejected %s (status %s)", title, response.status)
        except (aiohttp.ClientError, TimeoutError):
            LOGGER.exception("Failed to send webhook log %s", title)
