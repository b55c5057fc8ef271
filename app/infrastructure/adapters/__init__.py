from .media_source_file import FileMediaSource
from .media_source_provider import MediaSourceProvider
from .playback_probe_ffmpeg import FFprobePlaybackProbe, FFprobeSession
from .remote_agent_pydanticai import PydanticAIDurationAgent

__all__ = [
    "FileMediaSource",
    "MediaSourceProvider",
    "FFprobePlaybackProbe",
    "FFprobeSession",
    "PydanticAIDurationAgent",
]
