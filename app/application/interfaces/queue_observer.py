from __future__ import annotations

from typing import Protocol

from app.application.models import QueueItem


class IQueueObserver(Protocol):
    """Read-only consumer of queue item snapshots."""

    def on_item_changed(self, item: QueueItem) -> None:
        ...
