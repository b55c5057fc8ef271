import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from app.application.models import CalculationMode
from app.application.queue.controller import BatchQueueController
from app.application.use_cases.resolve_duration import ResolveDurationUseCase
from app.presentation.api.v1.dependencies.durations import (
    get_queue_controller,
    get_resolve_duration_use_case,
)
from app.presentation.api.v1.schemas.durations import (
    DurationResponse,
    EnqueueRequest,
    ProcessQueuedResponse,
    QueueItemSchema,
    ResolveRequest,
    StatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/durations", tags=["durations"])


@router.post("/items", response_model=List[QueueItemSchema])
async def enqueue_items(
    body: EnqueueRequest,
    controller: BatchQueueController = Depends(get_queue_controller),
):
    """Register media locators (local paths or http(s) URLs) as pending items."""
    items = await controller.enqueue_many(body.locators)
    return [QueueItemSchema.from_item(i) for i in items]


@router.get("/items", response_model=List[QueueItemSchema])
async def list_items(controller: BatchQueueController = Depends(get_queue_controller)):
    return [QueueItemSchema.from_item(i) for i in controller.snapshot()]


@router.get("/items/{item_id}", response_model=QueueItemSchema)
async def get_item(item_id: str, controller: BatchQueueController = Depends(get_queue_controller)):
    return QueueItemSchema.from_item(controller.get(item_id))


@router.delete("/items/{item_id}", response_model=QueueItemSchema)
async def remove_item(
    item_id: str, controller: BatchQueueController = Depends(get_queue_controller)
):
    return QueueItemSchema.from_item(controller.remove(item_id))


@router.post("/process", response_model=ProcessQueuedResponse)
async def process_queue(
    background_tasks: BackgroundTasks,
    controller: BatchQueueController = Depends(get_queue_controller),
):
    """Resolve every pending/errored item in the background."""
    if controller.is_processing:
        return ProcessQueuedResponse(scheduled=0, already_running=True)
    # claimed before returning so a follow-up request sees the run as active
    targets = controller.claim_pending()
    scheduled = len(targets)
    if targets:
        background_tasks.add_task(controller.run_claimed, targets)
    logger.info("Queued batch processing for %d item(s)", scheduled)
    return ProcessQueuedResponse(scheduled=scheduled)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    mode: CalculationMode = Query(CalculationMode.SUM),
    controller: BatchQueueController = Depends(get_queue_controller),
):
    return StatsResponse.from_stats(controller.stats(), mode)


@router.post("/resolve", response_model=DurationResponse)
async def resolve_duration(
    body: ResolveRequest,
    use_case: ResolveDurationUseCase = Depends(get_resolve_duration_use_case),
):
    """Resolve one locator synchronously, outside the queue."""
    result = await use_case.resolve_locator(body.locator)
    return DurationResponse.from_result(result)
