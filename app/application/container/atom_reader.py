"""
Bounded random-access reads against media sources.

``read_range`` is the only primitive the box parser uses; it never buffers a
whole source. ``WindowedMediaSource`` and ``BufferMediaSource`` let the parser
run the same traversal over a sub-range or an in-memory copy with local
offsets.
"""

from __future__ import annotations

import mimetypes

from app.application.interfaces.media_source import IMediaSource
from app.core.exceptions import ShortReadError


async def read_range(source: IMediaSource, offset: int, length: int) -> bytes:
    """Read exactly ``length`` bytes at ``offset``.

    Raises:
        ValueError: negative offset or length
        ShortReadError: the source ends before ``offset + length``
    """
    if offset < 0 or length < 0:
        raise ValueError(f"invalid range offset={offset} length={length}")
    if length == 0:
        return b""
    if offset >= source.size:
        raise ShortReadError(offset, length, 0)
    data = await source.read(offset, length)
    if len(data) < length:
        raise ShortReadError(offset, length, len(data))
    return bytes(data[:length])


def guess_media_type(name: str, default: str = "video/mp4") -> str:
    media_type, _ = mimetypes.guess_type(name)
    return media_type or default


class BufferMediaSource(IMediaSource):
    """Media source over bytes already held in memory."""

    def __init__(self, data: bytes, *, name: str = "buffer", media_type: str | None = None):
        self._data = memoryview(bytes(data))
        self._name = name
        self._media_type = media_type or guess_media_type(name)

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def name(self) -> str:
        return self._name

    @property
    def media_type(self) -> str:
        return self._media_type

    async def read(self, offset: int, length: int) -> bytes:
        if offset < 0 or length < 0:
            raise ValueError(f"invalid range offset={offset} length={length}")
        return self._data[offset : offset + length].tobytes()

    async def aclose(self) -> None:
        self._data = memoryview(b"")


class WindowedMediaSource(IMediaSource):
    """``[base, base + length)`` of another source, addressed from 0.

    Reads never cross the window end. Closing a window does not close the
    underlying source.
    """

    def __init__(self, inner: IMediaSource, base: int, length: int):
        if base < 0 or length < 0:
            raise ValueError(f"invalid window base={base} length={length}")
        self._inner = inner
        self._base = min(base, inner.size)
        self._length = max(0, min(length, inner.size - self._base))

    @property
    def base(self) -> int:
        return self._base

    @property
    def size(self) -> int:
        return self._length

    @property
    def name(self) -> str:
        return self._inner.name

    @property
    def media_type(self) -> str:
        return self._inner.media_type

    async def read(self, offset: int, length: int) -> bytes:
        if offset < 0 or length < 0:
            raise ValueError(f"invalid range offset={offset} length={length}")
        length = max(0, min(length, self._length - offset))
        if length == 0:
            return b""
        return await self._inner.read(self._base + offset, length)

    async def aclose(self) -> None:
        return None
