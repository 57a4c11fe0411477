from __future__ import annotations

from dataclasses import dataclass, field

from services.cooldowns import CooldownTracker
from utils.time import utc_now


class TicketCounter:
    """Sequence numbers for tickets created during this process run."""

    def __init__(self, start: int = 0) -> None:
        self._value = start

    @property
    def current(self) -> int:
        return self._value

    def next(self) -> int:
        self._value += 1
        return self._value


@dataclass(slots=True)
class AppState:
    cooldowns: CooldownTracker
    counter: TicketCounter = field(default_factory=TicketCounter)
    started_at: str = field(default_factory=lambda: utc_now().isoformat())
    # Channels with a close or resolve countdown in progress.
    closing: set[int] = field(default_factory=set)
