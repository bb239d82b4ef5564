"""Writers for merge reports (JSON and Excel workbook)."""

from __future__ import annotations

import json
import logging
from os import PathLike
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .models import MergeReport
from .report import report_to_dict

SUMMARY_SHEET = "Summary"
FIELD_UPDATES_SHEET = "Field Updates"
AVAILABLE_FIELDS_SHEET = "Available Fields"

METRIC_COL = "Metric"
VALUE_COL = "Value"
FIELD_COL = "Field"
UPDATES_COL = "Updates"
MASTER_COL = "Master"
OVERLAY_COL = "Overlay"

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFFF40FF")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

LOGGER = logging.getLogger(__name__)

PathInput = str | Path | PathLike[str]

__all__ = ["write_report_json", "write_report_workbook", "build_report_frames"]


def _coerce_path(pathlike: PathInput) -> Path:
    return Path(pathlike)


def write_report_json(filepath: PathInput, report: MergeReport) -> Path:
    path = _coerce_path(filepath)
    path.write_text(
        json.dumps(report_to_dict(report), indent=2, sort_keys=False),
        encoding="utf-8",
    )
    LOGGER.info("Report written to %s", path)
    return path


def _summary_rows(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    master = payload["master"]
    overlay = payload["overlay"]
    options = payload["options"]
    updates = payload["updates"]
    rows = [
        ("Master records", master["recordCount"]),
        ("Master start", master["startTimestamp"]),
        ("Master end", master["endTimestamp"]),
        ("Overlay records", overlay["recordCount"]),
        ("Overlay records in master window", overlay["clippedRecordCount"]),
        ("Overlay start", overlay["startTimestamp"]),
        ("Overlay end", overlay["endTimestamp"]),
        ("Tolerance (s)", options["toleranceSeconds"]),
        ("Replace moving time", options["replaceMovingTime"]),
        ("Overlay fields", ", ".join(options["overlayFields"])),
        ("Master fields", ", ".join(options["masterFields"] or ["(all)"])),
        ("Matched records", updates["matchedRecords"]),
        ("Power updates", updates["powerUpdates"]),
        ("Cadence updates", updates["cadenceUpdates"]),
    ]
    for label, key in (("Power", "powerStats"), ("Cadence", "cadenceStats")):
        stats = updates.get(key)
        if not stats:
            continue
        rows.extend(
            [
                (f"{label} min", stats["min"]),
                (f"{label} avg", stats["avg"]),
                (f"{label} max", stats["max"]),
            ]
        )
    return [{METRIC_COL: label, VALUE_COL: value} for label, value in rows]


def build_report_frames(report: MergeReport) -> List[tuple[str, pd.DataFrame]]:
    """Return ``(sheet_name, DataFrame)`` pairs describing ``report``."""

    payload = report_to_dict(report)
    summary = pd.DataFrame(_summary_rows(payload), columns=[METRIC_COL, VALUE_COL])

    field_updates = payload["updates"]["fieldUpdates"]
    updates = pd.DataFrame(
        [{FIELD_COL: name, UPDATES_COL: count} for name, count in field_updates.items()],
        columns=[FIELD_COL, UPDATES_COL],
    )
    if not updates.empty:
        updates.sort_values(by=[UPDATES_COL, FIELD_COL], ascending=[False, True], inplace=True)

    master_fields = payload["availableFields"]["master"]
    overlay_fields = payload["availableFields"]["overlay"]
    names = sorted(set(master_fields) | set(overlay_fields))
    available = pd.DataFrame(
        [
            {
                FIELD_COL: name,
                MASTER_COL: name in master_fields,
                OVERLAY_COL: name in overlay_fields,
            }
            for name in names
        ],
        columns=[FIELD_COL, MASTER_COL, OVERLAY_COL],
    )
    return [
        (SUMMARY_SHEET, summary),
        (FIELD_UPDATES_SHEET, updates),
        (AVAILABLE_FIELDS_SHEET, available),
    ]


def _style_header_row(ws: Worksheet, max_col: int) -> None:
    for col_idx in range(1, max_col + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _autosize(ws: Worksheet) -> None:
    from .config import (
        EXCEL_AUTOSIZE_COLUMNS,
        EXCEL_AUTOSIZE_MAX_WIDTH,
        EXCEL_AUTOSIZE_MIN_WIDTH,
        EXCEL_AUTOSIZE_PADDING,
    )

    if not EXCEL_AUTOSIZE_COLUMNS:
        return
    for col_cells in ws.columns:
        col_letter = getattr(col_cells[0], "column_letter", None)
        max_len = max(
            (len(str(cell.value)) for cell in col_cells if cell.value is not None),
            default=0,
        )
        width = min(
            EXCEL_AUTOSIZE_MAX_WIDTH,
            max(EXCEL_AUTOSIZE_MIN_WIDTH, max_len + EXCEL_AUTOSIZE_PADDING),
        )
        if col_letter:
            ws.column_dimensions[col_letter].width = width


def write_report_workbook(filepath: PathInput, report: MergeReport) -> Path:
    """Write the report as a styled workbook with one sheet per section."""

    path = _coerce_path(filepath)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, frame in build_report_frames(report):
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
            ws = writer.sheets[sheet_name]
            _style_header_row(ws, len(frame.columns))
            _autosize(ws)
    LOGGER.info("Report workbook written to %s", path)
    return path
