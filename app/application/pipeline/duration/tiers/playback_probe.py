from __future__ import annotations

import asyncio
import logging
import math
from typing import Optional

from app.application.interfaces.playback_probe import IPlaybackProbe, IProbeSession
from app.application.models import DurationSource, StepLabel
from app.application.pipeline.base import BaseTier, ResolutionContext
from app.core.config import settings
from app.core.exceptions import (
    DurationScoutError,
    FormatRejectedError,
    ProbeTimeoutError,
)

logger = logging.getLogger(__name__)


def _usable(seconds: Optional[float]) -> bool:
    return seconds is not None and math.isfinite(seconds) and seconds > 0


class _OutcomeSlot:
    """Settle-once outcome shared by the probe work and its timer.

    Whichever side settles first wins; later ``settle``/``fail`` calls are
    ignored and return False.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()
        # initial duration seen before the seek completed, if any
        self.provisional: Optional[float] = None

    @property
    def settled(self) -> bool:
        return self._future.done()

    def settle(self, seconds: float) -> bool:
        if self._future.done():
            return False
        self._future.set_result(seconds)
        return True

    def fail(self, error: BaseException) -> bool:
        if self._future.done():
            return False
        self._future.set_exception(error)
        return True

    async def wait(self) -> float:
        return await self._future


class PlaybackProbeTier(BaseTier):
    """Delegates to a decoding engine, then verifies the reported end by seeking.

    Input:  context.source
    Output: probe_initial_seconds (float | None)
    """

    name = "playback_probe"
    source = DurationSource.PROBE
    step_label = StepLabel.VERIFYING.value

    def __init__(
        self,
        probe: Optional[IPlaybackProbe],
        *,
        probe_timeout: Optional[float] = None,
        far_seek_position: Optional[float] = None,
    ) -> None:
        self._probe = probe
        self.probe_timeout = probe_timeout or settings.probe_timeout
        self.far_seek_position = far_seek_position or settings.probe_far_seek_position

    def can_skip(self, context: ResolutionContext) -> bool:
        return self._probe is None

    async def run(self, context: ResolutionContext) -> float:  # type: ignore[override]
        session = await self._probe.attach(context.source)
        slot = _OutcomeSlot()
        work = asyncio.create_task(self._measure(session, slot, context))
        timer = asyncio.create_task(self._expire(slot))
        try:
            return await slot.wait()
        finally:
            for task in (work, timer):
                task.cancel()
            await asyncio.gather(work, timer, return_exceptions=True)
            try:
                await session.detach()
            except Exception as e:  # noqa: BLE001
                logger.warning("Probe session detach failed for %s: %s", context.source.name, e)

    async def _measure(
        self, session: IProbeSession, slot: _OutcomeSlot, context: ResolutionContext
    ) -> None:
        try:
            initial = await session.wait_ready()
        except DurationScoutError as e:
            slot.fail(e)
            return
        except Exception as e:  # noqa: BLE001
            slot.fail(FormatRejectedError(f"Playback probe failed: {e}"))
            return

        context.set("probe_initial_seconds", initial)
        if _usable(initial):
            slot.provisional = initial
        target = initial if _usable(initial) else self.far_seek_position

        try:
            corrected = await session.seek(target)
        except Exception as e:  # noqa: BLE001
            logger.debug("Probe seek to %.3f failed: %s", target, e)
            corrected = None

        if _usable(corrected) and corrected != initial:
            if _usable(initial):
                logger.info(
                    "Probe corrected duration of %s: %.3fs -> %.3fs",
                    context.source.name,
                    initial,
                    corrected,
                )
            slot.settle(corrected)
        elif _usable(initial):
            slot.settle(initial)
        else:
            slot.fail(FormatRejectedError("Playback probe reported no usable duration"))

    async def _expire(self, slot: _OutcomeSlot) -> None:
        await asyncio.sleep(self.probe_timeout)
        if slot.provisional is not None:
            slot.settle(slot.provisional)
        else:
            slot.fail(ProbeTimeoutError(self.probe_timeout))
