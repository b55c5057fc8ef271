"""
Download utility functions.
"""

import asyncio
import logging
from typing import Optional, Tuple

import aiohttp

from app.core.config import settings
from app.core.exceptions import MediaSourceError

logger = logging.getLogger(__name__)


def is_remote_locator(locator: str) -> bool:
    return locator.lower().startswith(("http://", "https://"))


async def fetch_bytes(
    url: str, *, timeout: Optional[float] = None, max_bytes: Optional[int] = None
) -> Tuple[bytes, Optional[str]]:
    """
    Fetch a remote media file into memory.

    Args:
        url: Source URL to download from
        timeout: Total timeout in seconds (defaults to settings.download_timeout)
        max_bytes: Optional size cap; larger bodies are rejected

    Returns:
        (body, content_type)

    Raises:
        MediaSourceError: On network errors, HTTP errors or oversized bodies
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout or settings.download_timeout)
    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url) as response:
                response.raise_for_status()
                chunks = []
                received = 0
                async for chunk in response.content.iter_chunked(64 * 1024):
                    received += len(chunk)
                    if max_bytes is not None and received > max_bytes:
                        raise MediaSourceError(
                            f"Remote media exceeds {max_bytes} bytes", locator=url
                        )
                    chunks.append(chunk)
                logger.debug("✅ Fetched %s (%d bytes)", url, received)
                return b"".join(chunks), response.content_type
    except aiohttp.ClientError as e:
        logger.error("Failed to fetch %s: %s", url, str(e))
        raise MediaSourceError(f"Network Error: {e}", locator=url) from e
    except asyncio.TimeoutError as e:
        logger.error("Timed out fetching %s", url)
        raise MediaSourceError("Network Error: timed out", locator=url) from e
