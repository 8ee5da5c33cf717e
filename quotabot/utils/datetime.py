"""Time utilities with timezone-aware defaults."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time with tzinfo."""

    return datetime.now(timezone.utc)


def ensure_utc(moment: datetime) -> datetime:
    """Read naive datetimes as UTC; convert aware ones to UTC."""

    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def file_timestamp(moment: datetime | None = None) -> str:
    """ISO timestamp safe for file names (``2024-05-01T10-00-00-123456-00-00``)."""

    moment = moment or utc_now()
    return moment.isoformat().replace(":", "-").replace(".", "-").replace("+", "-")


__all__ = ["ensure_utc", "file_timestamp", "utc_now"]
