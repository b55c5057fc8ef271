from __future__ import annotations

from typing import Optional

from app.application.container.box_parser import BoxParser
from app.application.interfaces import IDurationAdapters
from app.application.pipeline.base import TierChain, make_logging_middleware
from app.application.pipeline.factory import TierChainFactory
from app.application.pipeline.duration.tiers import (
    BinaryScanTier,
    PlaybackProbeTier,
    RemoteFallbackTier,
)


def build_duration_chain(
    adapters: IDurationAdapters,
    *,
    parser: Optional[BoxParser] = None,
    enable_logging_middleware: bool = True,
) -> TierChain:
    """binary scan -> playback probe -> remote fallback.

    Tiers whose collaborator is missing (or disabled) are kept in the chain
    and report SKIPPED, so outcomes always list all three tiers.
    """
    middlewares = [make_logging_middleware()] if enable_logging_middleware else []
    factory = TierChainFactory(middlewares=middlewares)
    factory.add(BinaryScanTier(parser))
    factory.add(
        PlaybackProbeTier(
            getattr(adapters, "playback_probe", None),
            probe_timeout=getattr(adapters, "probe_timeout", None),
        )
    )
    factory.add(RemoteFallbackTier(getattr(adapters, "remote_agent", None)))
    return factory.build()
