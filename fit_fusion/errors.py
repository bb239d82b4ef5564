"""Central error types used across the application."""

from __future__ import annotations


class FitFusionError(RuntimeError):
    """Base error for merge failures."""


class ValidationError(FitFusionError):
    """Raised when inputs lack the anchor data a merge or encode needs."""


class DecodeError(FitFusionError):
    """Raised when a FIT payload cannot be parsed."""


class EncodeError(ValidationError):
    """Raised when a merged activity cannot be written back to FIT."""


__all__ = [
    "FitFusionError",
    "ValidationError",
    "DecodeError",
    "EncodeError",
]
