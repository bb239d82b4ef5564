"""Encode a merged Activity back to FIT bytes using fit_tool.

Messages are written grouped by kind (file_id, event, record, lap, session,
activity). fit_tool owns the local message definitions and file framing.
"""

from __future__ import annotations

from datetime import datetime
import logging
import struct
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from fit_tool.fit_file_builder import FitFileBuilder
from fit_tool.profile.messages.activity_message import ActivityMessage
from fit_tool.profile.messages.event_message import EventMessage
from fit_tool.profile.messages.file_id_message import FileIdMessage
from fit_tool.profile.messages.lap_message import LapMessage
from fit_tool.profile.messages.record_message import RecordMessage
from fit_tool.profile.messages.session_message import SessionMessage

from ..allowed_fields import (
    ACTIVITY,
    DEFAULT_FIELD_WHITELIST,
    EVENT,
    FILE_ID,
    LAP,
    RECORD,
    SESSION,
    FieldWhitelist,
    is_lat_long_field,
)
from ..errors import EncodeError
from ..merge import first_timestamp, last_timestamp
from ..models import Activity, FieldMap
from ..time_utils import to_fit_timestamp, to_unix_millis

LOGGER = logging.getLogger(__name__)

MESSAGE_TYPES = {
    FILE_ID: FileIdMessage,
    EVENT: EventMessage,
    RECORD: RecordMessage,
    LAP: LapMessage,
    SESSION: SessionMessage,
    ACTIVITY: ActivityMessage,
}

# Integer values from the FIT profile.
EVENT_TIMER = 0
EVENT_TYPE_START = 0
EVENT_TYPE_STOP_ALL = 4

SEMICIRCLES_PER_DEGREE = 2**31 / 180.0

# date_time fields; fit_tool takes these as Unix milliseconds.
TIME_FIELDS = frozenset({"timestamp", "start_time", "time_created"})

# local_date_time fields; fit_tool stores these as raw FIT epoch seconds.
LOCAL_TIME_FIELDS = frozenset({"local_timestamp"})

__all__ = ["encode_activity", "build_default_events", "MESSAGE_TYPES"]


def build_default_events(records: Sequence[FieldMap]) -> List[FieldMap]:
    """Return timer start/stop_all events spanning ``records``."""

    start = first_timestamp(records)
    end = last_timestamp(records)
    if start is None or end is None:
        return []
    return [
        {"timestamp": start, "event": EVENT_TIMER, "event_type": EVENT_TYPE_START},
        {"timestamp": end, "event": EVENT_TIMER, "event_type": EVENT_TYPE_STOP_ALL},
    ]


def _encode_value(kind: str, name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in LOCAL_TIME_FIELDS:
        return to_fit_timestamp(value)
    if isinstance(value, datetime):
        return to_unix_millis(value)
    if name in TIME_FIELDS and isinstance(value, (int, float)):
        return to_unix_millis(value)
    if is_lat_long_field(kind, name) and isinstance(value, (int, float)):
        return value / SEMICIRCLES_PER_DEGREE
    if isinstance(value, (list, tuple)):
        return [
            to_unix_millis(item) if isinstance(item, datetime) else item
            for item in value
        ]
    return value


def _build_message(kind: str, source: FieldMap, whitelist: FieldWhitelist) -> Optional[Any]:
    message_cls = MESSAGE_TYPES[kind]
    message = message_cls()
    applied = 0
    for name, value in whitelist.filter_fields(kind, source).items():
        encoded = _encode_value(kind, name, value)
        if encoded is None:
            continue
        if not isinstance(getattr(message_cls, name, None), property):
            LOGGER.debug("%s has no field %s; skipping", message_cls.__name__, name)
            continue
        try:
            setattr(message, name, encoded)
        except (TypeError, ValueError, OverflowError, struct.error) as exc:
            raise EncodeError(
                f"Cannot encode {kind}.{name}={value!r}: {exc}"
            ) from exc
        applied += 1
    return message if applied else None


def _message_groups(
    activity: Activity, events: Sequence[FieldMap]
) -> Iterator[Tuple[str, Sequence[FieldMap]]]:
    yield FILE_ID, activity.file_ids
    yield EVENT, events
    yield RECORD, activity.records
    yield LAP, activity.laps
    yield SESSION, activity.sessions
    if activity.activity:
        yield ACTIVITY, [activity.activity]


def encode_activity(
    activity: Activity, whitelist: FieldWhitelist = DEFAULT_FIELD_WHITELIST
) -> bytes:
    """Serialise ``activity`` to FIT bytes, keeping only whitelisted fields.

    Raises:
        EncodeError: If file_id, session or record messages are missing, or
            fit_tool rejects a value.
    """

    if not activity.file_ids:
        raise EncodeError("Master FIT file is missing file_id message.")
    if not activity.sessions:
        raise EncodeError("Master FIT file is missing session message.")
    if not activity.records:
        raise EncodeError("Master FIT file is missing record messages.")

    events = activity.events or build_default_events(activity.records)
    builder = FitFileBuilder(auto_define=True)
    written = 0
    for kind, sources in _message_groups(activity, events):
        for source in sources:
            message = _build_message(kind, source, whitelist)
            if message is None:
                continue
            builder.add(message)
            written += 1

    try:
        data = builder.build().to_bytes()
    except (TypeError, ValueError, OverflowError, struct.error) as exc:
        raise EncodeError(f"Failed to encode merged FIT file: {exc}") from exc
    LOGGER.debug("Encoded %d messages into %d bytes", written, len(data))
    return data
