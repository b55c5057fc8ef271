from typing import Optional

from app.application.container.box_parser import BoxParser
from app.application.interfaces import IDurationAdapters, IMediaSource
from app.application.models import DurationResult
from app.application.pipeline.base import ResolutionContext, StepCallback
from app.application.pipeline.duration.builder import build_duration_chain
from app.core.exceptions import DurationUnresolvedError


class ResolveDurationUseCase:
    """Resolve one media item through the binary -> probe -> remote chain.

    Returns a DurationResult or raises DurationUnresolvedError carrying the
    per-tier outcomes.
    """

    def __init__(
        self, adapters: IDurationAdapters, *, parser: Optional[BoxParser] = None
    ) -> None:
        self._adapters = adapters
        self._parser = parser

    async def execute(
        self,
        source: IMediaSource,
        *,
        on_step: Optional[StepCallback] = None,
        item_id: Optional[str] = None,
    ) -> DurationResult:
        ctx = ResolutionContext(source=source, item_id=item_id, on_step=on_step)
        chain = build_duration_chain(self._adapters, parser=self._parser)
        result = await chain.execute(ctx)

        if result["result"] is None:
            reasons = ", ".join(
                f"{o.tier}={o.status.value}"
                + (f" ({o.error_message})" if o.error is not None else "")
                for o in result["outcomes"]
            )
            raise DurationUnresolvedError(
                f"Could not resolve duration of {source.name}: {reasons}",
                outcomes=result["outcomes"],
            )
        return result["result"]

    async def resolve_locator(
        self,
        locator: str,
        *,
        on_step: Optional[StepCallback] = None,
        item_id: Optional[str] = None,
    ) -> DurationResult:
        """Open ``locator`` through the source provider and resolve it.

        The source is released on every exit path.
        """
        source = await self._adapters.source_provider.open(locator)
        try:
            return await self.execute(source, on_step=on_step, item_id=item_id)
        finally:
            await source.aclose()
