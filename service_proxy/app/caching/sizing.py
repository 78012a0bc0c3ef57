"""
Payload size estimation and byte formatting for the response cache.
"""

from collections.abc import Mapping
from typing import Any, Callable

Sizer = Callable[[Any], int]

BYTE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")

# Rough in-memory weights for decoded JSON values
STRING_CHAR_BYTES = 2
NUMBER_BYTES = 8
BOOLEAN_BYTES = 4


def estimate_size(payload: Any) -> int:
    """Estimate the in-memory footprint of a decoded JSON payload.

    Strings weigh two bytes per character (mapping keys included), numbers
    eight bytes and booleans four. Containers weigh the sum of their members;
    ``None`` weighs nothing. Raw bytes count as their length.
    """
    if payload is None:
        return 0
    if isinstance(payload, bool):
        return BOOLEAN_BYTES
    if isinstance(payload, (int, float)):
        return NUMBER_BYTES
    if isinstance(payload, str):
        return STRING_CHAR_BYTES * len(payload)
    if isinstance(payload, (bytes, bytearray)):
        return len(payload)
    if isinstance(payload, Mapping):
        return sum(estimate_size(str(key)) + estimate_size(value) for key, value in payload.items())
    if isinstance(payload, (list, tuple, set, frozenset)):
        return sum(estimate_size(item) for item in payload)
    return estimate_size(str(payload))


def format_bytes(size: float) -> str:
    """Render a byte count with decimal units, e.g. ``4952 -> "4.95 KB"``."""
    value = float(size)
    sign = "-" if value < 0 else ""
    value = abs(value)
    for unit in BYTE_UNITS[:-1]:
        if value < 1000:
            return f"{sign}{value:.2f} {unit}"
        value /= 1000
    return f"{sign}{value:.2f} {BYTE_UNITS[-1]}"
