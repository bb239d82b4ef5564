"""FIT activity merge package."""

from .errors import DecodeError, EncodeError, FitFusionError, ValidationError
from .merge import merge, merge_activities
from .models import Activity, MergeOptions, MergeReport, MergeStats
from .report import available_fields, build_report
from .services import MergeService, MergeServiceConfig

__all__ = [
    "Activity",
    "MergeOptions",
    "MergeReport",
    "MergeStats",
    "MergeService",
    "MergeServiceConfig",
    "merge",
    "merge_activities",
    "available_fields",
    "build_report",
    "FitFusionError",
    "ValidationError",
    "DecodeError",
    "EncodeError",
]
