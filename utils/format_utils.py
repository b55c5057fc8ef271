"""
Formatting and parsing helpers for durations and sizes.
"""

import math
import re

_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]
_DURATION_TEXT = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*(?:s|sec|secs|second|seconds)?\s*\.?\s*$", re.IGNORECASE
)


def format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS; hours keep growing past 99.

    Example:
        >>> format_duration(3725.9)
        '01:02:05'
    """
    if seconds is None or math.isnan(seconds) or seconds == 0:
        return "00:00:00"
    total = int(seconds)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_file_size(size: int) -> str:
    """Human-readable size with one decimal, trailing ``.0`` dropped.

    Example:
        >>> format_file_size(1536)
        '1.5 KB'
    """
    if size <= 0:
        return "0 B"
    i = 0
    value = float(size)
    while value >= 1024 and i < len(_SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[i]}"


def parse_duration_text(text: str) -> float:
    """Parse a bare numeric duration such as ``"42.5"`` or ``"42.5 seconds"``.

    Raises:
        ValueError: text is empty, not numeric, or not a positive finite number
    """
    match = _DURATION_TEXT.match(text or "")
    if not match:
        raise ValueError(f"not a numeric duration: {text!r}")
    value = float(match.group(1))
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"duration must be positive: {text!r}")
    return value
