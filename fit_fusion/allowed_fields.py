"""Per-message field tables controlling what the encoder writes back out."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping

RECORD = "record"
EVENT = "event"
LAP = "lap"
SESSION = "session"
ACTIVITY = "activity"
FILE_ID = "file_id"

ALLOWED_MESSAGE_FIELDS: dict[str, tuple[str, ...]] = {
    RECORD: (
        "timestamp",
        "position_lat",
        "position_long",
        "gps_accuracy",
        "altitude",
        "distance",
        "heart_rate",
        "enhanced_speed",
        "speed",
        "cadence",
        "power",
        "temperature",
        "vertical_speed",
    ),
    EVENT: (
        "timestamp",
        "event",
        "event_type",
        "event_group",
        "data",
        "data16",
        "data32",
        "timer_trigger",
    ),
    LAP: (
        "timestamp",
        "event",
        "event_type",
        "start_time",
        "lap_trigger",
        "total_elapsed_time",
        "total_timer_time",
        "total_moving_time",
        "total_distance",
        "total_calories",
        "avg_speed",
        "max_speed",
        "avg_heart_rate",
        "max_heart_rate",
        "min_heart_rate",
        "avg_power",
        "max_power",
        "sport",
        "sub_sport",
        "message_index",
    ),
    SESSION: (
        "timestamp",
        "start_time",
        "total_distance",
        "total_timer_time",
        "total_elapsed_time",
        "total_moving_time",
        "total_calories",
        "total_work",
        "avg_speed",
        "max_speed",
        "avg_heart_rate",
        "max_heart_rate",
        "min_heart_rate",
        "avg_power",
        "max_power",
        "normalized_power",
        "avg_altitude",
        "max_altitude",
        "min_altitude",
        "total_ascent",
        "total_descent",
        "avg_temperature",
        "first_lap_index",
        "num_laps",
        "sport",
        "sub_sport",
        "event",
        "event_type",
        "trigger",
        "nec_lat",
        "nec_long",
        "swc_lat",
        "swc_long",
        "message_index",
    ),
    ACTIVITY: (
        "timestamp",
        "local_timestamp",
        "num_sessions",
        "type",
        "event",
        "event_type",
        "total_timer_time",
        "total_distance",
        "total_calories",
        "total_ascent",
        "total_descent",
    ),
    FILE_ID: (
        "type",
        "manufacturer",
        "product",
        "serial_number",
        "time_created",
        "garmin_product",
        "product_name",
    ),
}

LAT_LONG_FIELDS = frozenset(
    {
        "position_lat",
        "position_long",
        "start_position_lat",
        "start_position_long",
        "end_position_lat",
        "end_position_long",
        "nec_lat",
        "nec_long",
        "swc_lat",
        "swc_long",
    }
)
_BOUNDING_BOX_FIELDS = frozenset({"nec_lat", "nec_long", "swc_lat", "swc_long"})


class FieldWhitelist:
    """Read-only lookup of allowed field names per message kind.

    Kinds without a table are open: every field is allowed.
    """

    __slots__ = ("_tables",)

    def __init__(self, tables: Mapping[str, Iterable[str]]):
        self._tables: Mapping[str, frozenset[str]] = MappingProxyType(
            {kind: frozenset(fields) for kind, fields in tables.items()}
        )

    @property
    def kinds(self) -> tuple[str, ...]:
        return tuple(self._tables)

    def fields_for(self, kind: str) -> frozenset[str] | None:
        return self._tables.get(kind)

    def is_allowed(self, kind: str, field: str) -> bool:
        allowed = self._tables.get(kind)
        if allowed is None:
            return True
        return field in allowed

    def filter_fields(self, kind: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        allowed = self._tables.get(kind)
        if allowed is None:
            return dict(fields)
        return {key: value for key, value in fields.items() if key in allowed}


DEFAULT_FIELD_WHITELIST = FieldWhitelist(ALLOWED_MESSAGE_FIELDS)


def is_allowed(kind: str, field: str) -> bool:
    return DEFAULT_FIELD_WHITELIST.is_allowed(kind, field)


def is_lat_long_field(kind: str, field: str) -> bool:
    """Return True when ``field`` carries a semicircle coordinate for ``kind``."""

    if field not in LAT_LONG_FIELDS:
        return False
    if kind in {RECORD, LAP, SESSION}:
        return True
    if kind in {ACTIVITY, EVENT}:
        return field in _BOUNDING_BOX_FIELDS
    return False


__all__ = [
    "ALLOWED_MESSAGE_FIELDS",
    "DEFAULT_FIELD_WHITELIST",
    "FieldWhitelist",
    "LAT_LONG_FIELDS",
    "is_allowed",
    "is_lat_long_field",
]
