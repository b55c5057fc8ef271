from typing import Optional

from app.application.queue.controller import BatchQueueController
from app.application.use_cases.resolve_duration import ResolveDurationUseCase
from app.infrastructure.adapters.bundles.duration import get_duration_adapter_bundle

_controller: Optional[BatchQueueController] = None


def get_resolve_duration_use_case() -> ResolveDurationUseCase:
    """Compose the ResolveDurationUseCase at Presentation layer using adapter providers."""
    return ResolveDurationUseCase(get_duration_adapter_bundle())


def get_queue_controller() -> BatchQueueController:
    """Process-wide queue; the controller is the single owner of item state."""
    global _controller
    if _controller is None:
        adapters = get_duration_adapter_bundle()
        _controller = BatchQueueController(
            ResolveDurationUseCase(adapters), adapters.source_provider
        )
    return _controller
