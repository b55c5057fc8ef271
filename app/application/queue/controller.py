"""
Batch queue controller: owns the item collection and sequences resolution.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Dict, List, Optional, Sequence, Set, Tuple

from app.application.interfaces import IIdGenerator, IMediaSourceProvider, IQueueObserver
from app.application.models import (
    CalculationMode,
    DurationSource,
    ItemStatus,
    QueueItem,
    QueueStats,
    compute_stats,
)
from app.application.use_cases.resolve_duration import ResolveDurationUseCase
from app.core.config import settings
from app.core.exceptions import (
    DurationScoutError,
    QueueFullError,
    QueueItemNotFoundError,
)

logger = logging.getLogger(__name__)


class _UuidGenerator(IIdGenerator):
    def new_id(self) -> str:
        return uuid.uuid4().hex


class BatchQueueController:
    """Single owner of the queue.

    Every change goes through a command method and replaces the item's frozen
    snapshot; nothing else mutates items. At most one resolution per item id
    is in flight at any time.

    Concurrency policy: ``max_workers == 1`` processes items strictly in
    order; ``max_workers > 1`` resolves up to that many items at once.
    """

    def __init__(
        self,
        resolver: ResolveDurationUseCase,
        provider: IMediaSourceProvider,
        *,
        max_workers: Optional[int] = None,
        max_items: Optional[int] = None,
        observers: Optional[Sequence[IQueueObserver]] = None,
        id_generator: Optional[IIdGenerator] = None,
    ) -> None:
        self._resolver = resolver
        self._provider = provider
        self.max_workers = max_workers or settings.queue_max_workers
        self.max_items = max_items or settings.queue_max_items
        self._observers: List[IQueueObserver] = list(observers or [])
        self._ids = id_generator or _UuidGenerator()

        self._order: List[str] = []
        self._items: Dict[str, QueueItem] = {}
        self._in_flight: Set[str] = set()
        self._processing = False

    # ----- Observers -----
    def subscribe(self, observer: IQueueObserver) -> None:
        self._observers.append(observer)

    def _publish(self, item: QueueItem) -> None:
        for observer in list(self._observers):
            try:
                observer.on_item_changed(item)
            except Exception as e:  # noqa: BLE001
                logger.warning("Queue observer %r failed: %s", observer, e)

    # ----- Read side -----
    @property
    def is_processing(self) -> bool:
        return self._processing

    def snapshot(self) -> Tuple[QueueItem, ...]:
        return tuple(self._items[i] for i in self._order)

    def get(self, item_id: str) -> QueueItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise QueueItemNotFoundError(item_id) from None

    def is_in_flight(self, item_id: str) -> bool:
        return item_id in self._in_flight

    def stats(self) -> QueueStats:
        return compute_stats(self.snapshot())

    def total(self, mode: CalculationMode = CalculationMode.SUM) -> float:
        return self.stats().value_for(mode)

    # ----- Commands -----
    async def enqueue(self, locator: str) -> QueueItem:
        """Register a locator as a new pending item."""
        if len(self._items) >= self.max_items:
            raise QueueFullError(self.max_items)
        name, size = await self._provider.describe(locator)
        item = QueueItem(id=self._ids.new_id(), name=name, size=size, locator=locator)
        self._order.append(item.id)
        self._items[item.id] = item
        logger.debug("Enqueued %s (%s, %d bytes)", item.id, name, size)
        self._publish(item)
        return item

    async def enqueue_many(self, locators: Sequence[str]) -> List[QueueItem]:
        return [await self.enqueue(locator) for locator in locators]

    def remove(self, item_id: str) -> QueueItem:
        """Drop an item; a resolution still running for it is discarded on completion."""
        item = self.get(item_id)
        del self._items[item_id]
        self._order.remove(item_id)
        logger.debug("Removed %s", item_id)
        return item

    def _replace(self, item_id: str, **changes) -> Optional[QueueItem]:
        current = self._items.get(item_id)
        if current is None:
            return None
        updated = current.evolve(**changes)
        self._items[item_id] = updated
        self._publish(updated)
        return updated

    def mark_processing(self, item_id: str) -> Optional[QueueItem]:
        return self._replace(item_id, status=ItemStatus.PROCESSING, step=None, error=None)

    def mark_step(self, item_id: str, step: str) -> Optional[QueueItem]:
        return self._replace(item_id, step=step)

    def mark_result(
        self, item_id: str, seconds: float, source: DurationSource
    ) -> Optional[QueueItem]:
        return self._replace(
            item_id,
            status=ItemStatus.COMPLETED,
            duration=seconds,
            source=source,
            step=None,
            error=None,
        )

    def mark_error(self, item_id: str, message: str) -> Optional[QueueItem]:
        return self._replace(
            item_id, status=ItemStatus.ERROR, duration=0.0, source=None, step=None, error=message
        )

    # ----- Dispatch -----
    async def resolve_item(self, item_id: str) -> bool:
        """Resolve one item. Returns False (no-op) when it is already in flight,
        completed, or unknown."""
        item = self._items.get(item_id)
        if item is None or not item.is_dispatchable or item_id in self._in_flight:
            return False

        self._in_flight.add(item_id)
        try:
            self.mark_processing(item_id)
            try:
                result = await self._resolver.resolve_locator(
                    item.locator,
                    on_step=lambda step: self.mark_step(item_id, step),
                    item_id=item_id,
                )
            except DurationScoutError as e:
                logger.warning("Item %s (%s) failed: %s", item_id, item.name, e)
                self.mark_error(item_id, e.message)
            except Exception as e:  # noqa: BLE001
                logger.exception("Item %s (%s) failed unexpectedly", item_id, item.name)
                self.mark_error(item_id, str(e) or type(e).__name__)
            else:
                logger.info(
                    "Item %s (%s) resolved: %.3fs via %s",
                    item_id,
                    item.name,
                    result.seconds,
                    result.source.value,
                )
                self.mark_result(item_id, result.seconds, result.source)
        finally:
            self._in_flight.discard(item_id)
        return True

    def pending_ids(self) -> List[str]:
        return [
            i
            for i in self._order
            if self._items[i].is_dispatchable and i not in self._in_flight
        ]

    def claim_pending(self) -> List[str]:
        """Start a run synchronously and return its targets.

        Returns an empty list (and starts nothing) while another run is active
        or when nothing is dispatchable. A non-empty claim must be handed to
        ``run_claimed``, which ends the run.
        """
        if self._processing:
            return []
        targets = self.pending_ids()
        if targets:
            self._processing = True
        return targets

    async def process_pending(self) -> int:
        """Resolve every pending/errored item. Returns how many were dispatched.

        A call made while another run is active is a no-op.
        """
        targets = self.claim_pending()
        if not targets:
            return 0
        return await self.run_claimed(targets)

    async def run_claimed(self, targets: Sequence[str]) -> int:
        try:
            if self.max_workers <= 1:
                dispatched = 0
                for item_id in targets:
                    dispatched += int(await self.resolve_item(item_id))
                return dispatched

            semaphore = asyncio.Semaphore(self.max_workers)

            async def _bounded(item_id: str) -> bool:
                async with semaphore:
                    return await self.resolve_item(item_id)

            results = await asyncio.gather(*(_bounded(i) for i in targets))
            return sum(1 for r in results if r)
        finally:
            self._processing = False
