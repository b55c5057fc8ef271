"""
Health check API endpoints
"""

from fastapi import APIRouter, Depends

from app.application.queue.controller import BatchQueueController
from app.core.monitoring import health_checker, SystemHealth
from app.presentation.api.v1.dependencies.durations import get_queue_controller

router = APIRouter(tags=["health"])


@router.get("/health", response_model=SystemHealth)
async def health_check(controller: BatchQueueController = Depends(get_queue_controller)):
    """
    Health check endpoint that returns system status, metrics and queue counts
    """
    return health_checker.get_system_health(controller.stats())


@router.get("/")
async def root():
    """
    Root endpoint
    """
    return {"message": "Duration Scout API is running", "status": "healthy"}
