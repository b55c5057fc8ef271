from __future__ import annotations

from typing import Protocol, Tuple, runtime_checkable


@runtime_checkable
class IMediaSource(Protocol):
    """Random-access, read-only view over a media byte sequence.

    ``read`` may return fewer bytes than requested at end-of-source; callers
    that need an exact range go through ``read_range``.
    """

    @property
    def size(self) -> int: ...

    @property
    def name(self) -> str: ...

    @property
    def media_type(self) -> str: ...

    async def read(self, offset: int, length: int) -> bytes: ...

    async def aclose(self) -> None: ...


class IMediaSourceProvider(Protocol):
    """Turns a locator (local path or URL) into a media source."""

    async def describe(self, locator: str) -> Tuple[str, int]:
        """Return ``(display_name, size_in_bytes)``; size is 0 when unknown."""
        ...

    async def open(self, locator: str) -> IMediaSource:
        ...
