"""Service layer package.

Exports high-level services consumed by the CLI and other callers.
"""

from .merge_service import MergeService, MergeServiceConfig

__all__ = ["MergeService", "MergeServiceConfig"]
