from __future__ import annotations

from typing import Optional

from app.application.container.atom_reader import read_range
from app.application.interfaces.remote_agent import IRemoteDurationAgent
from app.application.models import DurationSource, StepLabel
from app.application.pipeline.base import BaseTier, ResolutionContext
from app.core.config import settings
from app.core.exceptions import RemoteUnavailableError


class RemoteFallbackTier(BaseTier):
    """Last resort: ask a remote content-understanding model for the duration.

    Input:  context.source (read in full, bounded by remote_max_bytes)
    Output: none

    Never retried; a single failed call fails the tier.
    """

    name = "remote_fallback"
    source = DurationSource.REMOTE
    step_label = StepLabel.AI_ANALYSIS.value

    def __init__(
        self,
        agent: Optional[IRemoteDurationAgent],
        *,
        max_bytes: Optional[int] = None,
        instruction: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._agent = agent
        self.max_bytes = max_bytes or settings.remote_max_bytes
        self.instruction = instruction or settings.remote_instruction
        self.timeout = timeout or settings.remote_timeout

    def can_skip(self, context: ResolutionContext) -> bool:
        return self._agent is None

    async def run(self, context: ResolutionContext) -> float:  # type: ignore[override]
        size = context.source.size
        if size <= 0:
            raise RemoteUnavailableError("Media source is empty")
        if size > self.max_bytes:
            raise RemoteUnavailableError(
                f"Media too large for remote analysis ({size} > {self.max_bytes} bytes)"
            )
        data = await read_range(context.source, 0, size)
        return await self._agent.estimate_duration(
            data,
            media_type=context.source.media_type,
            instruction=self.instruction,
        )
