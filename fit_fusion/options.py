"""Parse caller-supplied primitives (form fields, CLI strings) into MergeOptions."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, List

from .config import DEFAULT_REPLACE_MOVING_TIME, DEFAULT_TOLERANCE_SECONDS
from .merge import CADENCE_FIELD, POWER_FIELD
from .models import MergeOptions

LOGGER = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

__all__ = [
    "parse_field_list",
    "parse_bool",
    "parse_tolerance",
    "options_from_primitives",
]


def parse_field_list(value: Any) -> List[str]:
    """Parse ``power,cadence`` or ``["power", "cadence"]`` into a list.

    Lists are flattened recursively; blank entries are dropped.
    """

    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [name for entry in value for name in parse_field_list(entry)]

    normalized = str(value).strip()
    if not normalized:
        return []
    if normalized.startswith("[") or normalized.startswith("{"):
        try:
            parsed = json.loads(normalized)
        except json.JSONDecodeError:
            LOGGER.debug("Field list %r is not JSON; splitting on commas", normalized)
        else:
            if isinstance(parsed, list):
                return parse_field_list(parsed)
    return [entry.strip() for entry in normalized.split(",") if entry.strip()]


def parse_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def parse_tolerance(value: Any, default: int = DEFAULT_TOLERANCE_SECONDS) -> int:
    """Return a non-negative whole number of seconds, or ``default``."""

    if value is None or value == "":
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    if math.isfinite(parsed) and parsed >= 0:
        return int(math.floor(parsed))
    return default


def options_from_primitives(
    *,
    tolerance_seconds: Any = None,
    replace_moving_time: Any = None,
    overlay_fields: Any = None,
    master_fields: Any = None,
    pull_power: Any = None,
    pull_cadence: Any = None,
) -> MergeOptions:
    """Build MergeOptions from loosely typed transport values.

    Without explicit overlay fields, ``pull_power``/``pull_cadence`` (both on
    by default) choose between power and cadence.
    """

    overlay = parse_field_list(overlay_fields)
    if not overlay:
        if parse_bool(pull_power, True):
            overlay.append(POWER_FIELD)
        if parse_bool(pull_cadence, True):
            overlay.append(CADENCE_FIELD)
    master = parse_field_list(master_fields)
    return MergeOptions(
        tolerance_seconds=parse_tolerance(tolerance_seconds),
        replace_moving_time=parse_bool(replace_moving_time, DEFAULT_REPLACE_MOVING_TIME),
        overlay_fields=overlay,
        master_fields=master or None,
    )
