"""FIT codec: bytes <-> Activity via fitparse (decode) and fit_tool (encode)."""

from .decoder import decode_activity, validate_payload
from .encoder import build_default_events, encode_activity

__all__ = [
    "decode_activity",
    "encode_activity",
    "build_default_events",
    "validate_payload",
]
