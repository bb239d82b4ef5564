"""Central configuration for the FIT merge tool.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Every setting can be overridden through environment
variables (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_list(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(key)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Merge defaults
# ---------------------------------------------------------------------------
# Maximum distance (seconds) between a master and overlay sample to count as
# the same instant.
DEFAULT_TOLERANCE_SECONDS = max(0, _env_int("FIT_FUSION_TOLERANCE_SECONDS", 1))

# Copy total_moving_time from the overlay sessions/laps onto the master.
DEFAULT_REPLACE_MOVING_TIME = _env_bool("FIT_FUSION_REPLACE_MOVING_TIME", True)

# Record fields pulled from the overlay when the caller does not pick any (or
# picks only fields the overlay lacks).
DEFAULT_OVERLAY_FIELDS = _env_list(
    "FIT_FUSION_DEFAULT_OVERLAY_FIELDS", ("power", "cadence")
)


# ---------------------------------------------------------------------------
# Input/Output
# ---------------------------------------------------------------------------
# Uploads larger than this are rejected before decoding.
MAX_FILE_SIZE_BYTES = _env_int("FIT_FUSION_MAX_FILE_SIZE_BYTES", 30 * 1024 * 1024)

# Only files with this extension are accepted by the CLI.
FIT_FILE_EXTENSION = ".fit"

# Default merged output name (without extension). Paths can be absolute or
# relative.
OUTPUT_FILE = os.getenv("FIT_FUSION_OUTPUT_FILE", "merged")

# Append _YYYYMMDD_HHMMSS to the output name when True.
OUTPUT_FILE_TIMESTAMP_ENABLED = _env_bool(
    "FIT_FUSION_OUTPUT_FILE_TIMESTAMP_ENABLED", False
)


# ---------------------------------------------------------------------------
# Performance tuning
# ---------------------------------------------------------------------------
# Threads used to decode master and overlay payloads in parallel.
DECODE_MAX_WORKERS = max(1, _env_int("FIT_FUSION_DECODE_MAX_WORKERS", 2))


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("FIT_FUSION_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Excel report formatting
# ---------------------------------------------------------------------------
# Automatically size columns after writing each sheet (openpyxl only).
EXCEL_AUTOSIZE_COLUMNS = True
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max
