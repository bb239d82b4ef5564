"""Report assembly and merge option normalization.

Pure functions that summarise decoded activities and merge statistics into a
``MergeReport``. Separated from the service so the transformation logic stays
testable without FIT payloads.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import DEFAULT_OVERLAY_FIELDS
from .merge import TIMESTAMP_FIELD, first_timestamp, last_timestamp
from .models import (
    Activity,
    ActivityMeta,
    AvailableFieldSummary,
    BasicStats,
    FieldMap,
    MergeOptions,
    MergeReport,
    MergeStats,
    OverlayMeta,
)
from .time_utils import format_timestamp
from .utils import to_jsonable

__all__ = [
    "available_fields",
    "summarize_fields",
    "normalize_field_list",
    "normalize_options",
    "describe_activity",
    "build_report",
    "report_to_dict",
    "encode_report_header",
]


def available_fields(source: Activity | Iterable[FieldMap]) -> List[str]:
    """Return the sorted union of field names seen across the records."""

    records = source.records if isinstance(source, Activity) else source
    names: set[str] = set()
    for record in records:
        if not record:
            continue
        names.update(key for key in record if key)
    return sorted(names)


def summarize_fields(master: Activity, overlay: Activity) -> AvailableFieldSummary:
    return AvailableFieldSummary(
        master=available_fields(master),
        overlay=available_fields(overlay),
    )


def normalize_field_list(values: Optional[Iterable[Any]]) -> List[str]:
    """Trim entries, drop blanks and non-strings, dedupe keeping order."""

    if not values:
        return []
    cleaned = (value.strip() for value in values if isinstance(value, str))
    return list(dict.fromkeys(value for value in cleaned if value))


def normalize_options(
    options: MergeOptions, available: AvailableFieldSummary
) -> MergeOptions:
    """Restrict the requested fields to those present in the inputs.

    Overlay fields that the overlay lacks are dropped; when none survive the
    default overlay fields present in the overlay are used instead. Requested
    master fields are restricted the same way and always keep ``timestamp``.
    """

    overlay_present = set(available.overlay)
    overlay_fields = [
        name
        for name in normalize_field_list(options.overlay_fields)
        if name in overlay_present and name != TIMESTAMP_FIELD
    ]
    if not overlay_fields:
        overlay_fields = [
            name for name in DEFAULT_OVERLAY_FIELDS if name in overlay_present
        ]

    master_fields: Optional[List[str]] = None
    if options.master_fields:
        master_present = set(available.master)
        master_fields = [
            name
            for name in normalize_field_list(options.master_fields)
            if name in master_present
        ]
        if TIMESTAMP_FIELD not in master_fields:
            master_fields.append(TIMESTAMP_FIELD)

    return MergeOptions(
        tolerance_seconds=options.tolerance_seconds,
        replace_moving_time=options.replace_moving_time,
        overlay_fields=overlay_fields,
        master_fields=master_fields,
    )


def describe_activity(records: Sequence[FieldMap]) -> ActivityMeta:
    return ActivityMeta(
        record_count=len(records),
        start_timestamp=format_timestamp(first_timestamp(records)),
        end_timestamp=format_timestamp(last_timestamp(records)),
    )


def build_report(
    master: Activity,
    overlay: Activity,
    options: MergeOptions,
    stats: MergeStats,
    available: Optional[AvailableFieldSummary] = None,
) -> MergeReport:
    """Combine input metadata, effective options and merge stats."""

    overlay_desc = describe_activity(overlay.records)
    overlay_meta = OverlayMeta(
        record_count=overlay_desc.record_count,
        start_timestamp=overlay_desc.start_timestamp,
        end_timestamp=overlay_desc.end_timestamp,
        clipped_record_count=stats.clipped_overlay_record_count,
    )
    return MergeReport(
        master=describe_activity(master.records),
        overlay=overlay_meta,
        options=options,
        updates=stats,
        available_fields=available or summarize_fields(master, overlay),
    )


def _meta_to_dict(meta: ActivityMeta) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "recordCount": meta.record_count,
        "startTimestamp": meta.start_timestamp,
        "endTimestamp": meta.end_timestamp,
    }
    if isinstance(meta, OverlayMeta):
        payload["clippedRecordCount"] = meta.clipped_record_count
    return payload


def _stats_to_dict(stats: Optional[BasicStats]) -> Optional[Dict[str, Any]]:
    if stats is None:
        return None
    return {"min": stats.min, "max": stats.max, "avg": stats.avg}


def report_to_dict(report: MergeReport) -> Dict[str, Any]:
    """Return the JSON-ready (camelCase) form of ``report``."""

    options = report.options
    updates = report.updates
    payload = {
        "master": _meta_to_dict(report.master),
        "overlay": _meta_to_dict(report.overlay),
        "options": {
            "toleranceSeconds": options.tolerance_seconds,
            "replaceMovingTime": options.replace_moving_time,
            "overlayFields": list(options.overlay_fields),
            "masterFields": (
                list(options.master_fields) if options.master_fields is not None else None
            ),
        },
        "updates": {
            "matchedRecords": updates.matched_records,
            "powerUpdates": updates.power_updates,
            "cadenceUpdates": updates.cadence_updates,
            "masterRecordCount": updates.master_record_count,
            "overlayRecordCount": updates.overlay_record_count,
            "clippedOverlayRecordCount": updates.clipped_overlay_record_count,
            "powerStats": _stats_to_dict(updates.power_stats),
            "cadenceStats": _stats_to_dict(updates.cadence_stats),
            "fieldUpdates": dict(updates.field_updates),
        },
        "availableFields": {
            "master": list(report.available_fields.master),
            "overlay": list(report.available_fields.overlay),
        },
    }
    return to_jsonable(payload)


def encode_report_header(report: MergeReport) -> str:
    """Return the base64 JSON report sent alongside merged FIT bytes."""

    raw = json.dumps(report_to_dict(report), separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")
