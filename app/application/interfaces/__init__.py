from .media_source import IMediaSource, IMediaSourceProvider
from .playback_probe import IPlaybackProbe, IProbeSession
from .remote_agent import IRemoteDurationAgent
from .queue_observer import IQueueObserver
from .utils import IIdGenerator
from .duration_adapters import IDurationAdapters

__all__ = [
    "IMediaSource",
    "IMediaSourceProvider",
    "IPlaybackProbe",
    "IProbeSession",
    "IRemoteDurationAgent",
    "IQueueObserver",
    "IIdGenerator",
    "IDurationAdapters",
]
