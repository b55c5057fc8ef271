from __future__ import annotations

from typing import List

from app.application.pipeline.base import Middleware, Tier, TierChain


class TierChainFactory:
    """Fluent builder for TierChains, with optional middlewares per tier.

    Example:
        factory = TierChainFactory()
        chain = factory.add(binary_tier).add(probe_tier).build()
    """

    def __init__(self, *, middlewares: List[Middleware] | None = None):
        self._tiers: List[Tier] = []
        self._middlewares = list(middlewares or [])

    def add(self, tier: Tier) -> "TierChainFactory":
        wrapped = tier
        for mw in self._middlewares:
            wrapped = mw(wrapped)
        self._tiers.append(wrapped)
        return self

    def extend(self, tiers: List[Tier]) -> "TierChainFactory":
        for t in tiers:
            self.add(t)
        return self

    def build(self) -> TierChain:
        return TierChain(self._tiers)
