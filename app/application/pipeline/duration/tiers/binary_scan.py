from __future__ import annotations

from typing import Optional

from app.application.container.box_parser import BoxParser
from app.application.models import DurationSource, StepLabel
from app.application.pipeline.base import BaseTier, ResolutionContext
from app.core.exceptions import BoxNotFoundError


class BinaryScanTier(BaseTier):
    """Reads the duration straight from the container boxes.

    Input:  context.source
    Output: header_fields (MediaHeaderFields)
    """

    name = "binary_scan"
    source = DurationSource.BINARY
    step_label = StepLabel.SCANNING.value

    def __init__(self, parser: Optional[BoxParser] = None) -> None:
        self._parser = parser or BoxParser()

    async def run(self, context: ResolutionContext) -> float:  # type: ignore[override]
        fields = await self._parser.find_header(context.source)
        if fields is None:
            raise BoxNotFoundError(f"No usable mvhd/mdhd in {context.source.name}")
        context.set("header_fields", fields)
        return fields.seconds

    def on_success(self, context: ResolutionContext, seconds: float) -> None:
        context.report_step(StepLabel.INSTANT_READ.value)
