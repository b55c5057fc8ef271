from typing import Optional

from pydantic import BaseModel, Field, conlist, constr

from app.application.models import (
    CalculationMode,
    DurationResult,
    ItemStatus,
    QueueItem,
    QueueStats,
)
from utils.format_utils import format_duration, format_file_size


class EnqueueRequest(BaseModel):
    locators: conlist(constr(strip_whitespace=True, min_length=1), min_length=1)


class ResolveRequest(BaseModel):
    locator: constr(strip_whitespace=True, min_length=1)


class QueueItemSchema(BaseModel):
    id: str
    name: str
    size: int
    size_label: str
    locator: str
    status: ItemStatus
    step: Optional[str] = None
    duration: float = 0.0
    duration_label: str = "00:00:00"
    source: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_item(cls, item: QueueItem) -> "QueueItemSchema":
        return cls(
            id=item.id,
            name=item.name,
            size=item.size,
            size_label=format_file_size(item.size),
            locator=item.locator,
            status=item.status,
            step=item.step,
            duration=item.duration,
            duration_label=format_duration(item.duration),
            source=item.source.value if item.source else None,
            error=item.error,
        )


class ProcessQueuedResponse(BaseModel):
    scheduled: int
    already_running: bool = False


class StatsResponse(BaseModel):
    mode: CalculationMode
    value: float
    value_label: str
    total_items: int
    completed: int
    errors: int
    pending: int
    processing: int
    total_seconds: float
    average_seconds: float
    longest_seconds: float
    shortest_seconds: float

    @classmethod
    def from_stats(cls, stats: QueueStats, mode: CalculationMode) -> "StatsResponse":
        value = stats.value_for(mode)
        return cls(
            mode=mode,
            value=value,
            value_label=format_duration(value),
            total_items=stats.total_items,
            completed=stats.completed,
            errors=stats.errors,
            pending=stats.pending,
            processing=stats.processing,
            total_seconds=stats.total_seconds,
            average_seconds=stats.average_seconds,
            longest_seconds=stats.longest_seconds,
            shortest_seconds=stats.shortest_seconds,
        )


class DurationResponse(BaseModel):
    seconds: float = Field(gt=0)
    source: str
    formatted: str

    @classmethod
    def from_result(cls, result: DurationResult) -> "DurationResponse":
        return cls(
            seconds=result.seconds,
            source=result.source.value,
            formatted=format_duration(result.seconds),
        )


