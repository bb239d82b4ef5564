"""Unit tests for the two-pointer merge engine."""

from __future__ import annotations

import logging
from datetime import datetime

import pytest

from fit_fusion.errors import ValidationError
from fit_fusion.merge import (
    clip_records,
    compute_stats,
    merge,
    merge_activities,
    replace_moving_time,
)
from fit_fusion.models import MergeOptions
from fit_fusion.time_utils import to_fit_timestamp


def test_merges_power_and_cadence_within_tolerance(
    master_activity, overlay_activity, default_options
) -> None:
    result = merge_activities(master_activity, overlay_activity, default_options)
    stats = result.stats
    records = result.merged.records

    # The t=-1 overlay sample is clipped, so t=0 pairs with t=1 and t=1 with t=2.
    assert stats.matched_records == 2
    assert stats.power_updates == 2
    assert stats.cadence_updates == 1
    assert stats.field_updates == {"power": 2, "cadence": 1}
    assert records[0]["power"] == 200
    assert records[0]["cadence"] == 85
    assert records[1]["power"] == 210
    assert "cadence" not in records[1]
    assert "power" not in records[2]
    assert records[0]["heart_rate"] == 120


def test_power_and_cadence_stats(master_activity, overlay_activity, default_options) -> None:
    stats = merge_activities(master_activity, overlay_activity, default_options).stats
    assert stats.power_stats.min == 200
    assert stats.power_stats.max == 210
    assert stats.power_stats.avg == 205.0
    assert stats.cadence_stats.min == stats.cadence_stats.max == 85


def test_compute_stats_rounds_average() -> None:
    stats = compute_stats([150, 200, 210])
    assert stats.min == 150
    assert stats.max == 210
    assert stats.avg == 186.67
    assert compute_stats([]) is None


def test_clips_overlay_records_outside_master_range(
    activity_factory, record_factory, default_options
) -> None:
    master = activity_factory([record_factory(0), record_factory(1), record_factory(2)])
    overlay = activity_factory(
        [
            record_factory(-5, power=120),
            record_factory(0, power=130),
            record_factory(1, power=140),
            record_factory(10, power=200),
        ]
    )

    result = merge_activities(master, overlay, default_options)

    assert result.overlay_meta.record_count == 4
    assert result.overlay_meta.clipped_record_count == 2
    assert result.stats.overlay_record_count == 4
    assert result.stats.clipped_overlay_record_count == 2
    assert result.stats.master_record_count == 3
    assert [r.get("power") for r in result.merged.records] == [130, 140, None]


def test_clip_records_is_inclusive_and_drops_undated(record_factory, base_time) -> None:
    records = [
        record_factory(0),
        {"power": 1},
        record_factory(5),
        record_factory(6),
    ]
    end = record_factory(5)["timestamp"]
    clipped = clip_records(records, base_time, end)
    assert [r["timestamp"] for r in clipped] == [base_time, end]


def test_replaces_moving_time_positionally(
    activity_factory, record_factory, base_time, default_options
) -> None:
    master = activity_factory(
        [record_factory(0)],
        sessions=[{"total_moving_time": 100, "timestamp": base_time}],
        laps=[{"total_moving_time": 50}, {"total_moving_time": 60}],
    )
    overlay = activity_factory(
        [record_factory(0)],
        sessions=[{"total_moving_time": 90}],
        laps=[{"total_moving_time": 40}],
    )

    merged = merge_activities(master, overlay, default_options).merged

    assert merged.sessions[0]["total_moving_time"] == 90
    assert [lap["total_moving_time"] for lap in merged.laps] == [40, 60]
    assert master.sessions[0]["total_moving_time"] == 100


def test_moving_time_untouched_when_disabled(
    activity_factory, record_factory, default_options
) -> None:
    master = activity_factory([record_factory(0)], sessions=[{"total_moving_time": 100}])
    overlay = activity_factory([record_factory(0)], sessions=[{"total_moving_time": 90}])
    default_options.replace_moving_time = False

    merged = merge_activities(master, overlay, default_options).merged

    assert merged.sessions[0]["total_moving_time"] == 100


def test_replace_moving_time_skips_missing_values() -> None:
    targets = [{"total_moving_time": 1}, {"total_moving_time": 2}, {"total_moving_time": 3}]
    sources = [{"total_moving_time": None}, {"total_moving_time": 20}]
    assert replace_moving_time(targets, sources) == 1
    assert [t["total_moving_time"] for t in targets] == [1, 20, 3]
    assert replace_moving_time(targets, []) == 0


def test_master_fields_filter_keeps_timestamp(
    activity_factory, record_factory, default_options
) -> None:
    master = activity_factory(
        [record_factory(0, heart_rate=120, altitude=10.0, speed=3.2)]
    )
    overlay = activity_factory([record_factory(0, power=250)])
    default_options.master_fields = ["heart_rate"]

    merged = merge_activities(master, overlay, default_options).merged

    assert set(merged.records[0]) == {"timestamp", "heart_rate", "power"}


def test_requires_dated_master_records(activity_factory, record_factory, default_options) -> None:
    overlay = activity_factory([record_factory(0, power=100)])
    with pytest.raises(ValidationError):
        merge_activities(activity_factory([]), overlay, default_options)
    with pytest.raises(ValidationError, match="timestamped record data"):
        merge_activities(
            activity_factory([{"power": 1}, {"heart_rate": 90}]), overlay, default_options
        )


def test_empty_overlay_returns_master_unchanged(
    master_activity, activity_factory, default_options
) -> None:
    result = merge_activities(master_activity, activity_factory([]), default_options)
    assert result.stats.matched_records == 0
    assert result.stats.field_updates == {}
    assert result.stats.power_stats is None
    assert result.merged.records == master_activity.records


def test_undated_records_are_skipped(activity_factory, record_factory, default_options) -> None:
    master = activity_factory([{"heart_rate": 99}, record_factory(0), record_factory(1)])
    overlay = activity_factory(
        [{"power": 999}, record_factory(0, power=100), record_factory(1, power=110)]
    )
    default_options.tolerance_seconds = 0

    result = merge_activities(master, overlay, default_options)

    assert result.stats.matched_records == 2
    assert result.merged.records[0] == {"heart_rate": 99}
    assert result.merged.records[1]["power"] == 100
    assert result.merged.records[2]["power"] == 110
    assert result.master_meta.start_timestamp == "2024-01-01T00:00:00.000Z"


def test_matching_is_greedy_one_to_one(activity_factory, record_factory, default_options) -> None:
    master = activity_factory([record_factory(0), record_factory(3)])
    overlay = activity_factory([record_factory(0, power=1), record_factory(0.5, power=2)])

    result = merge_activities(master, overlay, default_options)

    assert result.stats.matched_records == 1
    assert result.merged.records[0]["power"] == 1
    assert "power" not in result.merged.records[1]


def test_zero_tolerance_requires_exact_timestamps(
    activity_factory, record_factory, default_options
) -> None:
    master = activity_factory([record_factory(0), record_factory(1)])
    overlay = activity_factory([record_factory(0.5, power=1)])
    default_options.tolerance_seconds = 0

    result = merge_activities(master, overlay, default_options)

    assert result.stats.matched_records == 0
    assert all("power" not in r for r in result.merged.records)


def test_unsorted_overlay_is_aligned_and_logged(
    activity_factory, record_factory, default_options, caplog: pytest.LogCaptureFixture
) -> None:
    master = activity_factory([record_factory(0), record_factory(1), record_factory(2)])
    overlay = activity_factory([record_factory(2, power=210), record_factory(1, power=200)])
    default_options.tolerance_seconds = 0

    with caplog.at_level(logging.WARNING, logger="fit_fusion.merge"):
        result = merge_activities(master, overlay, default_options)

    assert "not in ascending timestamp order" in caplog.text
    assert result.stats.matched_records == 2
    assert [r.get("power") for r in result.merged.records] == [None, 200, 210]


def test_inputs_are_not_mutated(master_activity, overlay_activity, default_options) -> None:
    before = master_activity.clone()
    merge_activities(master_activity, overlay_activity, default_options)
    assert master_activity.records == before.records
    assert all("power" not in r for r in master_activity.records)


def test_timestamp_never_copied_from_overlay(
    activity_factory, record_factory, default_options
) -> None:
    master = activity_factory([record_factory(0), record_factory(2)])
    overlay = activity_factory([record_factory(1, power=5)])
    default_options.overlay_fields = ["timestamp", "power"]

    merged = merge_activities(master, overlay, default_options).merged

    assert merged.records[0]["timestamp"] == record_factory(0)["timestamp"]
    assert merged.records[0]["power"] == 5


def test_accepts_raw_fit_epoch_timestamps(
    activity_factory, record_factory, base_time, default_options
) -> None:
    raw = to_fit_timestamp(base_time)
    master = activity_factory([{"timestamp": raw}, {"timestamp": raw + 1}])
    overlay = activity_factory([record_factory(1, power=300)])
    default_options.tolerance_seconds = 0

    merged, stats = merge(master, overlay, default_options)

    assert stats.matched_records == 1
    assert isinstance(merged.records[0]["timestamp"], datetime)
    assert merged.records[1]["power"] == 300
    assert master.records[0]["timestamp"] == raw


def test_self_merge_reproduces_overlay_values(
    activity_factory, record_factory
) -> None:
    records = [record_factory(i, power=100 + i, cadence=80 + i, heart_rate=140) for i in range(5)]
    activity = activity_factory(records)
    options = MergeOptions(
        tolerance_seconds=0, overlay_fields=["power", "cadence", "heart_rate"]
    )

    result = merge_activities(activity, activity, options)

    assert result.stats.matched_records == 5
    assert result.merged.records == records
