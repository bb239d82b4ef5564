from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

FieldMap = Dict[str, Any]


@dataclass(slots=True)
class Activity:
    """Decoded FIT activity: ordered message lists keyed by message kind.

    Records are expected in non-decreasing timestamp order.
    """

    records: List[FieldMap] = field(default_factory=list)
    laps: List[FieldMap] = field(default_factory=list)
    sessions: List[FieldMap] = field(default_factory=list)
    events: List[FieldMap] = field(default_factory=list)
    file_ids: List[FieldMap] = field(default_factory=list)
    activity: Optional[FieldMap] = None

    def clone(self) -> "Activity":
        return Activity(
            records=copy.deepcopy(self.records),
            laps=copy.deepcopy(self.laps),
            sessions=copy.deepcopy(self.sessions),
            events=copy.deepcopy(self.events),
            file_ids=copy.deepcopy(self.file_ids),
            activity=copy.deepcopy(self.activity),
        )


@dataclass(slots=True)
class MergeOptions:
    tolerance_seconds: int = 1
    replace_moving_time: bool = True
    overlay_fields: List[str] = field(default_factory=list)
    # None keeps every master record field.
    master_fields: Optional[List[str]] = None


@dataclass(slots=True)
class BasicStats:
    min: float
    max: float
    avg: float


@dataclass(slots=True)
class MergeStats:
    matched_records: int = 0
    power_updates: int = 0
    cadence_updates: int = 0
    master_record_count: int = 0
    overlay_record_count: int = 0
    clipped_overlay_record_count: int = 0
    power_stats: Optional[BasicStats] = None
    cadence_stats: Optional[BasicStats] = None
    field_updates: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class ActivityMeta:
    record_count: int
    start_timestamp: Optional[str] = None
    end_timestamp: Optional[str] = None


@dataclass(slots=True)
class OverlayMeta(ActivityMeta):
    clipped_record_count: int = 0


@dataclass(slots=True)
class AvailableFieldSummary:
    master: List[str] = field(default_factory=list)
    overlay: List[str] = field(default_factory=list)


@dataclass(slots=True)
class MergeComputation:
    """Raw output of the merge engine before report assembly."""

    merged: Activity
    stats: MergeStats
    master_meta: ActivityMeta
    overlay_meta: OverlayMeta


@dataclass(slots=True)
class MergeReport:
    master: ActivityMeta
    overlay: OverlayMeta
    options: MergeOptions
    updates: MergeStats
    available_fields: AvailableFieldSummary


@dataclass(slots=True)
class MergeResult:
    data: bytes
    report: MergeReport
    merged: Activity | None = None
