"""Command-line entry point: inspect or merge a master/overlay FIT pair."""

from __future__ import annotations

import argparse
from datetime import datetime
import json
import logging
from pathlib import Path
from typing import Sequence

from .config import (
    FIT_FILE_EXTENSION,
    LOG_FORMAT,
    LOG_LEVEL,
    OUTPUT_FILE,
    OUTPUT_FILE_TIMESTAMP_ENABLED,
)
from .errors import FitFusionError, ValidationError
from .models import MergeOptions, MergeReport
from .options import options_from_primitives
from .report import report_to_dict
from .report_writer import write_report_json, write_report_workbook
from .services import MergeService

LOGGER = logging.getLogger(__name__)


def _setup_logging() -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)


def _resolve_output_path(explicit: str | None) -> Path:
    if explicit:
        return Path(explicit)
    if OUTPUT_FILE_TIMESTAMP_ENABLED:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"{OUTPUT_FILE}_{timestamp}{FIT_FILE_EXTENSION}")
    return Path(f"{OUTPUT_FILE}{FIT_FILE_EXTENSION}")


def _read_fit(path_str: str, label: str) -> bytes:
    path = Path(path_str)
    if path.suffix.lower() != FIT_FILE_EXTENSION:
        raise ValidationError(f"{label} file must have a {FIT_FILE_EXTENSION} extension: {path}")
    return path.read_bytes()


def _options_from_args(args: argparse.Namespace) -> MergeOptions:
    return options_from_primitives(
        tolerance_seconds=args.tolerance,
        replace_moving_time=not args.keep_moving_time,
        overlay_fields=args.overlay_fields,
        master_fields=args.master_fields,
        pull_power=not args.no_power,
        pull_cadence=not args.no_cadence,
    )


def _write_reports(args: argparse.Namespace, report: MergeReport) -> None:
    if args.report_json:
        write_report_json(args.report_json, report)
    if args.report_xlsx:
        write_report_workbook(args.report_xlsx, report)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("master", help="FIT file whose timeline is kept")
    parser.add_argument("overlay", help="FIT file providing the overlay fields")
    parser.add_argument(
        "--tolerance",
        help="Maximum time difference (seconds) for matching samples (default: 1)",
    )
    parser.add_argument(
        "--overlay-fields",
        help="Record fields copied from the overlay (comma list or JSON array)",
    )
    parser.add_argument(
        "--master-fields",
        help="Restrict master record fields kept in the output (timestamp is always kept)",
    )
    parser.add_argument(
        "--no-power",
        action="store_true",
        help="Do not pull power when --overlay-fields is not given",
    )
    parser.add_argument(
        "--no-cadence",
        action="store_true",
        help="Do not pull cadence when --overlay-fields is not given",
    )
    parser.add_argument(
        "--keep-moving-time",
        action="store_true",
        help="Keep the master's total_moving_time on sessions and laps",
    )
    parser.add_argument("--report-json", help="Write the merge report as JSON")
    parser.add_argument("--report-xlsx", help="Write the merge report as an Excel workbook")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fit-fusion",
        description="Copy power/cadence (or other fields) from one FIT activity onto another",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser(
        "inspect", help="Print the merge report without writing a FIT file"
    )
    _add_common_arguments(inspect_parser)

    merge_parser = subparsers.add_parser("merge", help="Write the merged FIT file")
    _add_common_arguments(merge_parser)
    merge_parser.add_argument(
        "-o",
        "--output",
        help="Merged FIT output path (defaults to OUTPUT_FILE from config)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _setup_logging()
    service = MergeService()

    try:
        master_data = _read_fit(args.master, "Master")
        overlay_data = _read_fit(args.overlay, "Overlay")
        options = _options_from_args(args)
        if args.command == "inspect":
            report = service.preview(master_data, overlay_data, options)
            print(json.dumps(report_to_dict(report), indent=2))
        else:
            result = service.merge(master_data, overlay_data, options)
            output_path = _resolve_output_path(args.output)
            output_path.write_bytes(result.data)
            report = result.report
            LOGGER.info(
                "Merged FIT saved to %s (matched=%d, field updates=%s)",
                output_path,
                report.updates.matched_records,
                report.updates.field_updates,
            )
        _write_reports(args, report)
    except (FitFusionError, OSError) as exc:
        LOGGER.error("%s failed: %s", args.command.capitalize(), exc)
        return 1
    return 0
