from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class DurationSource(str, Enum):
    """Which tier produced a duration."""

    BINARY = "binary"
    PROBE = "probe"
    REMOTE = "remote"


class StepLabel(str, Enum):
    """Human-readable phase labels reported to step observers."""

    SCANNING = "scanning"
    INSTANT_READ = "instant read"
    VERIFYING = "verifying"
    AI_ANALYSIS = "ai analysis"


@dataclass(frozen=True, slots=True)
class MediaHeaderFields:
    """Decoded timing fields of an ``mvhd`` or ``mdhd`` box.

    - timescale: ticks per second
    - duration_ticks: duration expressed in ``timescale`` units
    - version: 0 (32-bit fields) or 1 (64-bit fields)
    - box_type: the tag the fields were read from
    """

    timescale: int
    duration_ticks: int
    version: int
    box_type: str = "mvhd"

    @property
    def is_valid(self) -> bool:
        return self.timescale > 0

    @property
    def seconds(self) -> float:
        if self.timescale <= 0:
            raise ValueError("timescale must be positive to compute seconds")
        return self.duration_ticks / self.timescale


@dataclass(frozen=True, slots=True)
class DurationResult:
    seconds: float
    source: DurationSource

    def __post_init__(self) -> None:
        if not math.isfinite(self.seconds) or self.seconds <= 0:
            raise ValueError(f"duration must be finite and positive, got {self.seconds!r}")
