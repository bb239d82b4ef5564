"""Time-aligned merge of an overlay activity onto a master activity.

The engine clips the overlay records to the master's time window, then walks
both record streams with two pointers. A master/overlay pair whose timestamps
differ by at most the tolerance is a match: the selected overlay fields are
copied onto the master record and both pointers advance, so every record is
matched at most once (greedy 1:1 alignment in ascending time order).
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .errors import ValidationError
from .models import (
    Activity,
    ActivityMeta,
    BasicStats,
    FieldMap,
    MergeComputation,
    MergeOptions,
    MergeStats,
    OverlayMeta,
)
from .time_utils import format_timestamp, from_fit_timestamp, to_millis

LOGGER = logging.getLogger(__name__)

TIMESTAMP_FIELD = "timestamp"
POWER_FIELD = "power"
CADENCE_FIELD = "cadence"
MOVING_TIME_FIELD = "total_moving_time"

# (milliseconds since FIT epoch, index into the record list)
TimedIndex = Tuple[int, int]

__all__ = [
    "merge",
    "merge_activities",
    "merge_record_streams",
    "clip_records",
    "compute_stats",
    "replace_moving_time",
    "first_timestamp",
    "last_timestamp",
]


def merge_activities(
    master: Activity, overlay: Activity, options: MergeOptions
) -> MergeComputation:
    """Merge ``overlay`` onto ``master`` without mutating either input.

    Raises:
        ValidationError: If the master has no record carrying a timestamp.
    """

    master_records = _clone_records(master.records)
    overlay_records = _clone_records(overlay.records)

    master_start = first_timestamp(master_records)
    master_end = last_timestamp(master_records)
    if master_start is None or master_end is None:
        raise ValidationError("Master FIT file is missing timestamped record data.")

    clipped_overlay = clip_records(overlay_records, master_start, master_end)
    merged_records, stats = merge_record_streams(
        master_records, clipped_overlay, options
    )

    merged_sessions = copy.deepcopy(master.sessions)
    merged_laps = copy.deepcopy(master.laps)
    if options.replace_moving_time:
        replace_moving_time(merged_sessions, overlay.sessions)
        replace_moving_time(merged_laps, overlay.laps)

    merged = Activity(
        records=merged_records,
        laps=merged_laps,
        sessions=merged_sessions,
        events=copy.deepcopy(master.events),
        file_ids=copy.deepcopy(master.file_ids),
        activity=copy.deepcopy(master.activity),
    )

    master_meta = ActivityMeta(
        record_count=len(master_records),
        start_timestamp=format_timestamp(master_start),
        end_timestamp=format_timestamp(master_end),
    )
    overlay_meta = OverlayMeta(
        record_count=len(overlay_records),
        start_timestamp=format_timestamp(first_timestamp(overlay_records)),
        end_timestamp=format_timestamp(last_timestamp(overlay_records)),
        clipped_record_count=len(clipped_overlay),
    )

    stats.master_record_count = len(master_records)
    stats.overlay_record_count = len(overlay_records)
    stats.clipped_overlay_record_count = len(clipped_overlay)

    LOGGER.debug(
        "Merged %d master records with %d/%d overlay records: matched=%d updates=%s",
        stats.master_record_count,
        stats.clipped_overlay_record_count,
        stats.overlay_record_count,
        stats.matched_records,
        stats.field_updates,
    )
    return MergeComputation(
        merged=merged,
        stats=stats,
        master_meta=master_meta,
        overlay_meta=overlay_meta,
    )


def merge(
    master: Activity, overlay: Activity, options: MergeOptions
) -> Tuple[Activity, MergeStats]:
    """Return ``(merged_activity, stats)`` for callers that skip report metadata."""

    computation = merge_activities(master, overlay, options)
    return computation.merged, computation.stats


def merge_record_streams(
    master_records: Sequence[FieldMap],
    overlay_records: Sequence[FieldMap],
    options: MergeOptions,
) -> Tuple[List[FieldMap], MergeStats]:
    """Copy selected overlay fields onto tolerance-matched master records.

    ``master_records`` are filtered by ``options.master_fields`` first; the
    returned list keeps the master order. Both inputs should already be in
    ascending timestamp order.
    """

    overlay_fields = [
        name for name in _clean_field_names(options.overlay_fields)
        if name != TIMESTAMP_FIELD
    ]
    master_field_set: Optional[set[str]] = None
    if options.master_fields:
        master_field_set = set(_clean_field_names(options.master_fields))
        master_field_set.add(TIMESTAMP_FIELD)

    merged_records = [
        _filter_record_fields(record, master_field_set) for record in master_records
    ]
    master_order = _walk_order(merged_records, "Master")
    overlay_order = _walk_order(overlay_records, "Overlay")

    tolerance_ms = options.tolerance_seconds * 1000
    stats = MergeStats()
    power_values: List[float] = []
    cadence_values: List[float] = []

    i = j = 0
    while i < len(master_order) and j < len(overlay_order):
        master_ms, master_idx = master_order[i]
        overlay_ms, overlay_idx = overlay_order[j]
        delta = overlay_ms - master_ms

        if abs(delta) <= tolerance_ms:
            stats.matched_records += 1
            master_record = merged_records[master_idx]
            overlay_record = overlay_records[overlay_idx]
            for name in overlay_fields:
                value = overlay_record.get(name)
                if value is None:
                    continue
                master_record[name] = value
                stats.field_updates[name] = stats.field_updates.get(name, 0) + 1
                if name == POWER_FIELD:
                    stats.power_updates += 1
                    power_values.append(value)
                elif name == CADENCE_FIELD:
                    stats.cadence_updates += 1
                    cadence_values.append(value)
            i += 1
            j += 1
        elif delta < 0:
            j += 1
        else:
            i += 1

    stats.master_record_count = len(merged_records)
    stats.overlay_record_count = len(overlay_records)
    stats.clipped_overlay_record_count = len(overlay_records)
    stats.power_stats = compute_stats(power_values)
    stats.cadence_stats = compute_stats(cadence_values)
    return merged_records, stats


def clip_records(
    records: Iterable[FieldMap], start: datetime, end: datetime
) -> List[FieldMap]:
    """Return records whose timestamp lies within ``[start, end]`` inclusive."""

    start_ms = to_millis(start)
    end_ms = to_millis(end)
    clipped: List[FieldMap] = []
    for record in records:
        timestamp_ms = to_millis(record.get(TIMESTAMP_FIELD))
        if timestamp_ms is None:
            continue
        if start_ms <= timestamp_ms <= end_ms:
            clipped.append(record)
    return clipped


def compute_stats(values: Sequence[float]) -> Optional[BasicStats]:
    """Return min/max/avg for ``values`` (avg rounded to 2 dp), or None if empty."""

    if not values:
        return None
    array = np.asarray(values, dtype=float)
    return BasicStats(
        min=values[int(np.argmin(array))],
        max=values[int(np.argmax(array))],
        avg=round(float(array.mean()), 2),
    )


def replace_moving_time(
    targets: List[FieldMap], sources: Optional[Sequence[FieldMap]]
) -> int:
    """Overwrite ``total_moving_time`` index by index from ``sources``.

    Only indices present in both lists are touched; extra master entries keep
    their value. Returns the number of entries replaced.
    """

    if not sources:
        return 0
    replaced = 0
    for index, target in enumerate(targets):
        if index >= len(sources):
            break
        source = sources[index]
        if not source or target is None:
            continue
        value = source.get(MOVING_TIME_FIELD)
        if value is None:
            continue
        target[MOVING_TIME_FIELD] = value
        replaced += 1
    return replaced


def first_timestamp(records: Sequence[FieldMap]) -> Optional[datetime]:
    for record in records:
        moment = _record_time(record)
        if moment is not None:
            return moment
    return None


def last_timestamp(records: Sequence[FieldMap]) -> Optional[datetime]:
    for record in reversed(records):
        moment = _record_time(record)
        if moment is not None:
            return moment
    return None


def _record_time(record: FieldMap | None) -> Optional[datetime]:
    if not record:
        return None
    value = record.get(TIMESTAMP_FIELD)
    if to_millis(value) is None:
        return None
    return from_fit_timestamp(value)


def _clone_records(records: Sequence[FieldMap]) -> List[FieldMap]:
    cloned: List[FieldMap] = []
    for record in records:
        item = copy.deepcopy(record)
        if to_millis(item.get(TIMESTAMP_FIELD)) is not None:
            item[TIMESTAMP_FIELD] = from_fit_timestamp(item[TIMESTAMP_FIELD])
        cloned.append(item)
    return cloned


def _clean_field_names(names: Iterable[object] | None) -> List[str]:
    if not names:
        return []
    cleaned = (str(name).strip() for name in names if name is not None)
    return list(dict.fromkeys(name for name in cleaned if name))


def _filter_record_fields(
    record: FieldMap, allowed: Optional[set[str]]
) -> FieldMap:
    if not allowed:
        return dict(record)
    return {name: value for name, value in record.items() if name in allowed}


def _walk_order(records: Sequence[FieldMap], label: str) -> List[TimedIndex]:
    """Return ``(millis, index)`` for dated records in ascending time order.

    Undated records are left out so the merge walk skips them. Out-of-order
    input is walked in stable sorted order; the record list itself is not
    reordered.
    """

    order: List[TimedIndex] = []
    in_order = True
    previous: Optional[int] = None
    for index, record in enumerate(records):
        timestamp_ms = to_millis(record.get(TIMESTAMP_FIELD))
        if timestamp_ms is None:
            continue
        if previous is not None and timestamp_ms < previous:
            in_order = False
        previous = timestamp_ms
        order.append((timestamp_ms, index))
    if not in_order:
        LOGGER.warning(
            "%s records are not in ascending timestamp order; aligning on sorted order",
            label,
        )
        order.sort(key=lambda item: item[0])
    return order
