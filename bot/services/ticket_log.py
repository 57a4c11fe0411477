from __future__ import annotations

import logging
from pathlib import Path

LOGGER = logging.getLogger(__name__)


class TicketLog:
    """Append-only plain-text log of ticket events."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def append(self, line: str) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line.rstrip("\n") + "\n")
        except OSError:
            LOGGER.exception("Failed to append to ticket log %s", self.path)
            return False
        return True

    def read(self) -> str | None:
        """Whole file content, or None when the file has never been written."""
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")
