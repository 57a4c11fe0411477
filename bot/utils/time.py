from __future__ import annotations

from datetime import UTC, datetime

LOG_STAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.astimezone(UTC).isoformat()


def format_stamp(dt: datetime) -> str:
    """Render a timestamp the way ticket log lines and embeds show it."""
    return dt.strftime(LOG_STAMP_FORMAT)


def stamp_from_unix(value: float | None) -> str | None:
    if value is None:
        return None
    return format_stamp(datetime.fromtimestamp(value, UTC))
