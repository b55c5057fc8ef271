from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from app.application.models.duration import DurationSource


class ItemStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class CalculationMode(str, Enum):
    SUM = "SUM"
    AVERAGE = "AVERAGE"
    MAX = "MAX"
    MIN = "MIN"


@dataclass(frozen=True, slots=True)
class QueueItem:
    """Immutable snapshot of one queued media item.

    The controller publishes a new instance for every transition; observers
    only ever see whole snapshots.
    """

    id: str
    name: str
    size: int
    locator: str
    status: ItemStatus = ItemStatus.PENDING
    step: Optional[str] = None
    duration: float = 0.0
    source: Optional[DurationSource] = None
    error: Optional[str] = None

    @property
    def is_dispatchable(self) -> bool:
        return self.status in (ItemStatus.PENDING, ItemStatus.ERROR)

    def evolve(self, **changes) -> "QueueItem":
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class QueueStats:
    total_items: int
    completed: int
    errors: int
    pending: int
    processing: int
    total_seconds: float
    average_seconds: float
    longest_seconds: float
    shortest_seconds: float

    def value_for(self, mode: CalculationMode) -> float:
        if mode is CalculationMode.SUM:
            return self.total_seconds
        if mode is CalculationMode.AVERAGE:
            return self.average_seconds
        if mode is CalculationMode.MAX:
            return self.longest_seconds
        return self.shortest_seconds


def compute_stats(items: Iterable[QueueItem]) -> QueueStats:
    """Recompute aggregates from a snapshot; only completed items count."""
    items = list(items)
    durations = [i.duration for i in items if i.status is ItemStatus.COMPLETED]
    counts = {status: 0 for status in ItemStatus}
    for item in items:
        counts[item.status] += 1

    total = sum(durations)
    return QueueStats(
        total_items=len(items),
        completed=counts[ItemStatus.COMPLETED],
        errors=counts[ItemStatus.ERROR],
        pending=counts[ItemStatus.PENDING],
        processing=counts[ItemStatus.PROCESSING],
        total_seconds=total,
        average_seconds=total / len(durations) if durations else 0.0,
        longest_seconds=max(durations) if durations else 0.0,
        shortest_seconds=min(durations) if durations else 0.0,
    )
