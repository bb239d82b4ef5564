"""Conversions between FIT epoch timestamps and calendar time.

FIT files store instants as whole seconds since 1989-12-31T00:00:00Z. The
decoder usually hands back ``datetime`` objects already, so every helper here
accepts either representation and passes calendar values through untouched.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import math
from typing import Any

FIT_EPOCH = datetime(1989, 12, 31, tzinfo=timezone.utc)
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_ONE_MS = timedelta(milliseconds=1)

__all__ = [
    "FIT_EPOCH",
    "to_fit_timestamp",
    "from_fit_timestamp",
    "to_millis",
    "to_unix_millis",
    "format_timestamp",
]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_fit_timestamp(value: datetime | int | float | None) -> int | None:
    """Return whole seconds since the FIT epoch, or ``None`` when absent.

    Zero is a valid offset (the epoch itself) and passes through.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return round((_as_utc(value) - FIT_EPOCH).total_seconds())
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def from_fit_timestamp(value: datetime | int | float | None) -> datetime | None:
    """Return a UTC datetime for a FIT epoch offset.

    Already-converted datetimes pass through (naive values are read as UTC),
    which makes the function idempotent.
    Non-finite or out-of-range offsets yield ``None``.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return FIT_EPOCH + timedelta(seconds=value)
    except OverflowError:
        # Outside the datetime range; no usable instant.
        return None


def to_millis(value: Any) -> int | None:
    """Return the instant as milliseconds since the FIT epoch."""

    if not isinstance(value, (datetime, int, float)) or isinstance(value, bool):
        return None
    moment = from_fit_timestamp(value)
    if moment is None:
        return None
    return (moment - FIT_EPOCH) // _ONE_MS


def to_unix_millis(value: datetime | int | float | None) -> int | None:
    """Return milliseconds since the Unix epoch (the unit fit_tool expects)."""

    moment = from_fit_timestamp(value)
    if moment is None:
        return None
    return (moment - UNIX_EPOCH) // _ONE_MS


def format_timestamp(value: datetime | int | float | None) -> str | None:
    """Return an ISO-8601 UTC string such as ``2024-01-01T00:00:00.000Z``."""

    moment = from_fit_timestamp(value)
    if moment is None:
        return None
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
