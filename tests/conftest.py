"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable activity factories so the
merge, report and service tests share the same building blocks.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fit_fusion.models import Activity, MergeOptions


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


# --- Factory helpers -------------------------------------------------
def record_at(seconds, **fields):
    return {"timestamp": BASE_TIME + timedelta(seconds=seconds), **fields}


def make_activity(records=None, **overrides):
    values = {
        "records": list(records or []),
        "sessions": [{"total_moving_time": 10, "timestamp": BASE_TIME, "start_time": BASE_TIME}],
        "laps": [{"total_moving_time": 5, "timestamp": BASE_TIME, "start_time": BASE_TIME}],
        "events": [],
        "file_ids": [{"type": 4, "manufacturer": 1, "product": 1, "serial_number": 123}],
        "activity": {"timestamp": BASE_TIME},
    }
    values.update(overrides)
    return Activity(**values)


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def default_options():
    return MergeOptions(
        tolerance_seconds=1,
        replace_moving_time=True,
        overlay_fields=["power", "cadence"],
    )


@pytest.fixture
def master_activity():
    return make_activity([record_at(0, heart_rate=120), record_at(1, heart_rate=121), record_at(2, heart_rate=122)])


@pytest.fixture
def overlay_activity():
    return make_activity(
        [
            record_at(-1, power=150, cadence=80),
            record_at(1, power=200, cadence=85),
            record_at(2, power=210),
        ]
    )


@pytest.fixture
def record_factory():
    return record_at


@pytest.fixture
def activity_factory():
    return make_activity
