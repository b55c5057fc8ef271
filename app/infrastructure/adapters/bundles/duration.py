from __future__ import annotations

from types import SimpleNamespace

from app.application.interfaces.duration_adapters import IDurationAdapters
from app.infrastructure.adapters import (
    FFprobePlaybackProbe,
    MediaSourceProvider,
    PydanticAIDurationAgent,
)
from app.core.config import settings


def get_duration_adapter_bundle(
    *,
    probe_enabled: bool | None = None,
    remote_enabled: bool | None = None,
    probe_timeout: float | None = None,
) -> IDurationAdapters:
    """Provide the adapters container for the duration chain.

    Disabled collaborators are None; their tiers report SKIPPED. A
    ``probe_timeout`` of None leaves the probe tier on ``settings.probe_timeout``.
    """
    probe_on = settings.probe_enabled if probe_enabled is None else probe_enabled
    remote_on = settings.remote_fallback_enabled if remote_enabled is None else remote_enabled

    return SimpleNamespace(
        source_provider=MediaSourceProvider(),
        playback_probe=FFprobePlaybackProbe() if probe_on else None,
        remote_agent=PydanticAIDurationAgent(enabled=True) if remote_on else None,
        probe_timeout=probe_timeout,
    )
