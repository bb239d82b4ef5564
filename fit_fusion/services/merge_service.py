"""Merge service.

Decodes the master and overlay payloads (in parallel), normalizes the merge
options against the fields the inputs actually carry, runs the pure merge
engine and assembles the report. Encoding is only done on the full merge
path; previews return the report alone.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
from typing import Callable, Tuple

from ..allowed_fields import DEFAULT_FIELD_WHITELIST, FieldWhitelist
from ..codec import decode_activity, encode_activity
from ..config import DECODE_MAX_WORKERS
from ..merge import merge_activities
from ..models import (
    Activity,
    MergeComputation,
    MergeOptions,
    MergeReport,
    MergeResult,
)
from ..report import build_report, normalize_options, summarize_fields

Decoder = Callable[[bytes, str], Activity]
Encoder = Callable[[Activity, FieldWhitelist], bytes]


@dataclass(slots=True)
class MergeServiceConfig:
    decoder: Decoder = decode_activity
    encoder: Encoder = encode_activity
    whitelist: FieldWhitelist = DEFAULT_FIELD_WHITELIST
    max_workers: int = DECODE_MAX_WORKERS
    logger: logging.Logger | None = None


class MergeService:
    def __init__(self, config: MergeServiceConfig | None = None):
        self.config = config or MergeServiceConfig()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)

    def preview(
        self, master_data: bytes, overlay_data: bytes, options: MergeOptions
    ) -> MergeReport:
        """Return the report a merge would produce without encoding output."""

        _master, _overlay, _computation, report = self._run(
            master_data, overlay_data, options
        )
        return report

    def merge(
        self, master_data: bytes, overlay_data: bytes, options: MergeOptions
    ) -> MergeResult:
        """Merge the payloads and return the encoded FIT bytes plus report."""

        _master, _overlay, computation, report = self._run(
            master_data, overlay_data, options
        )
        data = self.config.encoder(computation.merged, self.config.whitelist)
        self._log.info(
            "Encoded merged activity: %d bytes, %d records",
            len(data),
            len(computation.merged.records),
        )
        return MergeResult(data=data, report=report, merged=computation.merged)

    def _decode_inputs(
        self, master_data: bytes, overlay_data: bytes
    ) -> Tuple[Activity, Activity]:
        workers = max(1, min(2, self.config.max_workers))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            master_future = executor.submit(self.config.decoder, master_data, "Master")
            overlay_future = executor.submit(
                self.config.decoder, overlay_data, "Overlay"
            )
            # result() re-raises decoder errors in the caller's thread.
            return master_future.result(), overlay_future.result()

    def _run(
        self, master_data: bytes, overlay_data: bytes, options: MergeOptions
    ) -> Tuple[Activity, Activity, MergeComputation, MergeReport]:
        master, overlay = self._decode_inputs(master_data, overlay_data)
        available = summarize_fields(master, overlay)
        effective = normalize_options(options, available)
        self._log.info(
            "Merging %d master records with %d overlay records (tolerance=%ss, fields=%s)",
            len(master.records),
            len(overlay.records),
            effective.tolerance_seconds,
            ",".join(effective.overlay_fields) or "-",
        )
        computation = merge_activities(master, overlay, effective)
        report = build_report(
            master, overlay, effective, computation.stats, available=available
        )
        self._log.info(
            "Matched %d records; clipped overlay to %d of %d records",
            computation.stats.matched_records,
            computation.stats.clipped_overlay_record_count,
            computation.stats.overlay_record_count,
        )
        return master, overlay, computation, report


__all__ = ["MergeService", "MergeServiceConfig"]
