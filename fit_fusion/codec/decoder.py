"""Decode FIT payloads into the in-memory Activity model using fitparse."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
import io
import logging
import struct
from typing import Any

from fitparse import FitFile
from fitparse.utils import FitParseError

from ..config import MAX_FILE_SIZE_BYTES
from ..errors import DecodeError, ValidationError
from ..models import Activity, FieldMap
from ..time_utils import from_fit_timestamp

LOGGER = logging.getLogger(__name__)

_LIST_KINDS = {
    "record": "records",
    "lap": "laps",
    "session": "sessions",
    "event": "events",
    "file_id": "file_ids",
}
_ACTIVITY_KIND = "activity"


def validate_payload(data: bytes, label: str = "FIT") -> None:
    """Reject empty or oversized payloads before handing them to the parser."""

    if not data:
        raise ValidationError(f"{label} file is empty.")
    if MAX_FILE_SIZE_BYTES > 0 and len(data) > MAX_FILE_SIZE_BYTES:
        raise ValidationError(
            f"{label} file is {len(data)} bytes; the limit is {MAX_FILE_SIZE_BYTES}."
        )


def _field_value(field: Any) -> Any:
    value = field.value
    raw_value = field.raw_value
    # Enum fields decode to profile names; keep the numeric value instead.
    if isinstance(value, str) and isinstance(raw_value, int):
        return raw_value
    if isinstance(value, datetime):
        return from_fit_timestamp(value)
    if isinstance(value, tuple):
        return list(value)
    return value


def _message_fields(message: Any) -> FieldMap:
    fields: FieldMap = {}
    for field in message.fields:
        if not field.name:
            continue
        fields[field.name] = _field_value(field)
    return fields


def decode_activity(data: bytes, label: str = "FIT") -> Activity:
    """Parse ``data`` and return the record/lap/session/event/file_id messages.

    Raises:
        ValidationError: If the payload is empty or too large.
        DecodeError: If fitparse cannot read the container.
    """

    validate_payload(data, label)
    try:
        fit_file = FitFile(io.BytesIO(data))
        messages = list(fit_file.get_messages())
    except (FitParseError, ValueError, struct.error) as exc:
        raise DecodeError(f"Failed to parse {label} file: {exc}") from exc

    activity = Activity()
    skipped: Counter[str] = Counter()
    for message in messages:
        kind = message.name
        attr = _LIST_KINDS.get(kind)
        if attr is not None:
            getattr(activity, attr).append(_message_fields(message))
        elif kind == _ACTIVITY_KIND and activity.activity is None:
            activity.activity = _message_fields(message)
        else:
            skipped[kind] += 1

    LOGGER.debug(
        "Decoded %s file: records=%d laps=%d sessions=%d events=%d file_ids=%d skipped=%s",
        label,
        len(activity.records),
        len(activity.laps),
        len(activity.sessions),
        len(activity.events),
        len(activity.file_ids),
        dict(skipped),
    )
    return activity


__all__ = ["decode_activity", "validate_payload"]
