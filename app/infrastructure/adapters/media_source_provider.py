from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

from app.application.container.atom_reader import BufferMediaSource
from app.application.interfaces.media_source import IMediaSource, IMediaSourceProvider
from app.core.exceptions import MediaSourceError
from app.infrastructure.adapters.media_source_file import FileMediaSource
from utils.download_utils import fetch_bytes, is_remote_locator

logger = logging.getLogger(__name__)


class MediaSourceProvider(IMediaSourceProvider):
    """Local paths open as aiofiles-backed sources; http(s) URLs are fetched
    into memory with aiohttp."""

    def __init__(self, *, max_remote_bytes: Optional[int] = None) -> None:
        self._max_remote_bytes = max_remote_bytes

    async def describe(self, locator: str) -> Tuple[str, int]:
        if is_remote_locator(locator):
            name = Path(unquote(urlparse(locator).path)).name or locator
            return name, 0
        p = Path(locator)
        try:
            return p.name, p.stat().st_size
        except OSError as e:
            raise MediaSourceError(f"Cannot stat {p}: {e}", locator=locator) from e

    async def open(self, locator: str) -> IMediaSource:
        if is_remote_locator(locator):
            name, _ = await self.describe(locator)
            body, content_type = await fetch_bytes(locator, max_bytes=self._max_remote_bytes)
            media_type = content_type if content_type and content_type.startswith("video/") else None
            logger.debug("Opened remote source %s (%d bytes)", locator, len(body))
            return BufferMediaSource(body, name=name, media_type=media_type)
        return await FileMediaSource.open(locator)
