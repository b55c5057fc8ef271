from __future__ import annotations

from typing import Protocol

from .media_source import IMediaSource


class IProbeSession(Protocol):
    """One attachment of a media source to a decoding engine."""

    async def wait_ready(self) -> float:
        """Wait for metadata and return the initially reported duration.

        Raises FormatRejectedError when the engine refuses the media.
        """
        ...

    async def seek(self, position: float) -> float:
        """Seek to ``position`` (seconds) and return the duration reported afterwards."""
        ...

    async def detach(self) -> None:
        """Release everything the session holds. Safe to call more than once."""
        ...


class IPlaybackProbe(Protocol):
    async def attach(self, source: IMediaSource) -> IProbeSession:
        ...
