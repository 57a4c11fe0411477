from __future__ import annotations

import math
import time
from collections.abc import Callable

from core.errors import CooldownActiveError
from services.cache import CacheBackend


def _cooldown_key(user_id: int) -> str:
    return f"ticket:cooldown:{user_id}"


def _describe_interval(seconds: int) -> str:
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds} seconds"


class CooldownTracker:
    """Minimum interval between ticket creations, per user.

    Entries live in the cache with a TTL equal to the interval, so a user that
    stops creating tickets stops occupying memory once the cooldown lapses.
    """

    def __init__(
        self,
        cache: CacheBackend,
        interval_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._clock = clock
        self.last_recorded_at: float | None = None

    async def last_created_at(self, user_id: int) -> float | None:
        value = await self.cache.get(_cooldown_key(user_id))
        if value is None:
            return None
        return float(value)

    async def remaining(self, user_id: int) -> float:
        last = await self.last_created_at(user_id)
        if last is None:
            return 0.0
        return max(0.0, self.interval_seconds - (self._clock() - last))

    async def ensure_ready(self, user_id: int) -> None:
        remaining = await self.remaining(user_id)
        if remaining <= 0:
            return
        seconds = math.ceil(remaining)
        raise CooldownActiveError(
            remaining_seconds=seconds,
            user_message=(
                f"You can only create one ticket every {_describe_interval(self.interval_seconds)}. "
                f"Please wait {seconds} seconds."
            ),
        )

    async def record(self, user_id: int) -> float:
        now = self._clock()
        await self.cache.set(_cooldown_key(user_id), now, ttl=self.interval_seconds)
        self.last_recorded_at = now
        return now
