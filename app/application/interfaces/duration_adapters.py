from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from .media_source import IMediaSourceProvider
from .playback_probe import IPlaybackProbe
from .remote_agent import IRemoteDurationAgent


@runtime_checkable
class IDurationAdapters(Protocol):
    source_provider: IMediaSourceProvider
    playback_probe: Optional[IPlaybackProbe]
    remote_agent: Optional[IRemoteDurationAgent]
    probe_timeout: Optional[float]
