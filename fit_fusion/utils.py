"""General utility helpers shared across modules."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import datetime, date
from decimal import Decimal
from typing import Any

from .time_utils import format_timestamp


def _normalise_value(value: Any) -> Any:
    """Convert objects to JSON-friendly representations."""

    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    if is_dataclass(value) and not isinstance(value, type):
        return _normalise_value(asdict(value))
    if isinstance(value, (set, frozenset)):
        return sorted(_normalise_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [_normalise_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalise_value(val) for key, val in value.items()}
    return value


def to_jsonable(value: Any) -> Any:
    return _normalise_value(value)
