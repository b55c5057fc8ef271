from .duration import DurationResult, DurationSource, MediaHeaderFields, StepLabel
from .queue import CalculationMode, ItemStatus, QueueItem, QueueStats, compute_stats

__all__ = [
    "DurationResult",
    "DurationSource",
    "MediaHeaderFields",
    "StepLabel",
    "CalculationMode",
    "ItemStatus",
    "QueueItem",
    "QueueStats",
    "compute_stats",
]
