from __future__ import annotations

import asyncio
from pathlib import Path
import aiofiles

from app.application.container.atom_reader import guess_media_type
from app.application.interfaces.media_source import IMediaSource
from app.core.exceptions import MediaSourceError


class FileMediaSource(IMediaSource):
    """Random-access reads against a local file through aiofiles.

    Only the requested ranges are read; the file is never loaded whole.
    Use ``await FileMediaSource.open(path)``.
    """

    def __init__(self, path: Path, size: int, handle) -> None:
        self._path = path
        self._size = size
        self._handle = handle
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, path: str | Path) -> "FileMediaSource":
        p = Path(path)
        try:
            size = p.stat().st_size
            handle = await aiofiles.open(p, "rb")
        except OSError as e:
            raise MediaSourceError(f"Cannot open {p}: {e}", locator=str(p)) from e
        return cls(p, size, handle)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def size(self) -> int:
        return self._size

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def media_type(self) -> str:
        return guess_media_type(self._path.name)

    async def read(self, offset: int, length: int) -> bytes:
        if offset < 0 or length < 0:
            raise ValueError(f"invalid range offset={offset} length={length}")
        if self._handle is None:
            raise MediaSourceError(f"{self._path} is closed", locator=str(self._path))
        # seek + read must not interleave with another reader
        async with self._lock:
            await self._handle.seek(offset)
            return await self._handle.read(length)

    async def aclose(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is not None:
            await handle.close()
