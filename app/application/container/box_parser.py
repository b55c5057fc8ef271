"""
ISO base media (MP4 / QuickTime) box traversal.

Only the timing fields of ``mvhd`` (whole movie) and ``mdhd`` (per track) are
decoded; every other box is skipped by its declared size without reading its
payload. Traversal is bounded twice: child ranges are clamped to their parent
range, and every header read spends one unit of an attempt budget.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import List, Optional

from app.application.container.atom_reader import (
    BufferMediaSource,
    WindowedMediaSource,
    read_range,
)
from app.application.interfaces.media_source import IMediaSource
from app.application.models import MediaHeaderFields
from app.core.config import settings
from app.core.exceptions import MalformedBoxError, ShortReadError

logger = logging.getLogger(__name__)

MOVIE_BOX = "moov"
CONTAINER_TYPES = frozenset({"moov", "trak", "mdia"})
# header tag -> the only parent it is accepted under
HEADER_PARENTS = {"mvhd": "moov", "mdhd": "mdia"}

_V0_FIELDS = struct.Struct(">II")  # timescale, duration at payload offset 12
_V1_FIELDS = struct.Struct(">IQ")  # timescale, duration at payload offset 20
_V0_PAYLOAD = 20
_V1_PAYLOAD = 32
_UNKNOWN_DURATION = {0: 0xFFFFFFFF, 1: 0xFFFFFFFFFFFFFFFF}


@dataclass(frozen=True, slots=True)
class BoxHeader:
    type: str
    offset: int
    size: int
    header_length: int

    @property
    def payload_start(self) -> int:
        return self.offset + self.header_length

    @property
    def end(self) -> int:
        return self.offset + self.size


class _Budget:
    __slots__ = ("remaining",)

    def __init__(self, attempts: int):
        self.remaining = attempts

    def take(self) -> bool:
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        return True


@dataclass(slots=True)
class _ScanState:
    movie: Optional[MediaHeaderFields] = None
    track: Optional[MediaHeaderFields] = None

    @property
    def done(self) -> bool:
        return self.track is not None

    def best(self) -> Optional[MediaHeaderFields]:
        return self.track or self.movie


async def read_box_header(source: IMediaSource, offset: int, limit: int) -> BoxHeader:
    """Decode the box header at ``offset``; ``limit`` is the end of the containing range.

    A declared size of 0 means the box runs to ``limit``.
    """
    if limit - offset < 8:
        raise ShortReadError(offset, 8, max(0, limit - offset))
    raw = await read_range(source, offset, 8)
    size = struct.unpack(">I", raw[:4])[0]
    box_type = raw[4:8].decode("latin-1")
    header_length = 8
    if size == 1:
        if limit - offset < 16:
            raise MalformedBoxError(
                f"extended header of '{box_type}' at {offset} crosses its container",
                box_type=box_type,
                offset=offset,
            )
        size = struct.unpack(">Q", await read_range(source, offset + 8, 8))[0]
        header_length = 16
    elif size == 0:
        size = limit - offset
    if size < header_length:
        raise MalformedBoxError(
            f"box '{box_type}' at {offset} declares size {size} < header {header_length}",
            box_type=box_type,
            offset=offset,
        )
    return BoxHeader(box_type, offset, size, header_length)


def decode_header_fields(payload: bytes, box_type: str) -> Optional[MediaHeaderFields]:
    """Decode timescale/duration from an ``mvhd``/``mdhd`` payload.

    Returns None when the header carries no usable duration (timescale 0,
    zero ticks, or the all-ones "unknown" marker).
    """
    if not payload:
        raise MalformedBoxError(f"empty '{box_type}' payload", box_type=box_type)
    version = payload[0]
    if version == 1:
        needed, fields, at = _V1_PAYLOAD, _V1_FIELDS, 20
    elif version == 0:
        needed, fields, at = _V0_PAYLOAD, _V0_FIELDS, 12
    else:
        raise MalformedBoxError(f"unsupported '{box_type}' version {version}", box_type=box_type)
    if len(payload) < needed:
        raise MalformedBoxError(
            f"'{box_type}' v{version} payload too short ({len(payload)} < {needed})",
            box_type=box_type,
        )

    timescale, ticks = fields.unpack_from(payload, at)
    if timescale == 0 or ticks == 0 or ticks == _UNKNOWN_DURATION[version]:
        logger.debug(
            "Ignoring %s v%d: timescale=%d duration=%d", box_type, version, timescale, ticks
        )
        return None
    return MediaHeaderFields(
        timescale=timescale, duration_ticks=ticks, version=version, box_type=box_type
    )


class BoxParser:
    """Locate the duration-bearing header of an MP4/QuickTime source.

    Scan order: a head window first, then a tail window for sources whose
    ``moov`` sits at the end. Within a scan the first valid ``mdhd`` (first
    track in file order) wins over ``mvhd``; ``mvhd`` is kept as fallback.
    """

    def __init__(
        self,
        *,
        head_window: Optional[int] = None,
        tail_window: Optional[int] = None,
        top_level_attempts: Optional[int] = None,
        movie_attempts: Optional[int] = None,
        tail_max_candidates: Optional[int] = None,
    ) -> None:
        self.head_window = head_window or settings.scan_head_window_bytes
        self.tail_window = tail_window or settings.scan_tail_window_bytes
        self.top_level_attempts = top_level_attempts or settings.scan_top_level_attempts
        self.movie_attempts = movie_attempts or settings.scan_movie_attempts
        self.tail_max_candidates = tail_max_candidates or settings.scan_tail_max_candidates

    async def find_header(self, source: IMediaSource) -> Optional[MediaHeaderFields]:
        fields = await self.scan_head(source)
        if fields is not None:
            return fields
        if source.size <= self.head_window:
            # head window already covered the whole source
            return None
        return await self.scan_tail(source)

    async def scan_head(self, source: IMediaSource) -> Optional[MediaHeaderFields]:
        window = WindowedMediaSource(source, 0, self.head_window)
        return await self.scan(window)

    async def scan_tail(self, source: IMediaSource) -> Optional[MediaHeaderFields]:
        base = max(0, source.size - self.tail_window)
        try:
            data = await read_range(source, base, source.size - base)
        except ShortReadError as e:
            logger.debug("Tail window unreadable for %s: %s", source.name, e)
            return None
        window = BufferMediaSource(data, name=source.name, media_type=source.media_type)

        for start in self._tail_candidates(data, whole_file=base == 0):
            fields = await self.scan(window, start=start)
            if fields is not None:
                logger.debug(
                    "Tail scan of %s found %s at window offset %d (file offset %d)",
                    source.name,
                    fields.box_type,
                    start,
                    base + start,
                )
                return fields
        return None

    def _tail_candidates(self, data: bytes, *, whole_file: bool) -> List[int]:
        candidates: List[int] = [0] if whole_file else []
        pos = data.find(MOVIE_BOX.encode("ascii"), 4)
        while pos != -1 and len(candidates) < self.tail_max_candidates:
            if pos - 4 not in candidates:
                candidates.append(pos - 4)
            pos = data.find(MOVIE_BOX.encode("ascii"), pos + 1)
        return candidates

    async def scan(
        self, source: IMediaSource, *, start: int = 0, end: Optional[int] = None
    ) -> Optional[MediaHeaderFields]:
        """Walk top-level boxes of ``source[start:end]`` and return the best header."""
        state = _ScanState()
        limit = source.size if end is None else min(end, source.size)
        await self._walk_top_level(source, start, limit, state)
        return state.best()

    async def _walk_top_level(
        self, source: IMediaSource, offset: int, end: int, state: _ScanState
    ) -> None:
        budget = _Budget(self.top_level_attempts)
        while offset < end:
            if not budget.take():
                logger.debug("Top-level attempt budget exhausted at offset %d", offset)
                return
            try:
                box = await read_box_header(source, offset, end)
            except (ShortReadError, MalformedBoxError) as e:
                logger.debug("Stopping top-level scan at %d: %s", offset, e)
                return

            if box.type == MOVIE_BOX:
                movie_budget = _Budget(self.movie_attempts)
                await self._walk_container(
                    source, box.payload_start, min(box.end, end), MOVIE_BOX, movie_budget, state
                )
                # a file has a single movie box
                return
            offset = box.end

    async def _walk_container(
        self,
        source: IMediaSource,
        offset: int,
        end: int,
        parent: str,
        budget: _Budget,
        state: _ScanState,
    ) -> None:
        while offset < end and not state.done:
            if not budget.take():
                logger.debug("Movie attempt budget exhausted inside '%s' at %d", parent, offset)
                return
            try:
                box = await read_box_header(source, offset, end)
            except (ShortReadError, MalformedBoxError) as e:
                logger.debug("Stopping scan of '%s' level at %d: %s", parent, offset, e)
                return
            box_end = min(box.end, end)

            if HEADER_PARENTS.get(box.type) == parent:
                try:
                    await self._read_header_box(source, box, box_end, state)
                except (ShortReadError, MalformedBoxError) as e:
                    # the box framing is intact, so its siblings are still reachable
                    logger.debug("Skipping unreadable '%s' at %d: %s", box.type, offset, e)
            elif box.type in CONTAINER_TYPES:
                await self._walk_container(
                    source, box.payload_start, box_end, box.type, budget, state
                )
            offset = box_end

    async def _read_header_box(
        self, source: IMediaSource, box: BoxHeader, box_end: int, state: _ScanState
    ) -> None:
        length = min(box_end - box.payload_start, _V1_PAYLOAD)
        payload = await read_range(source, box.payload_start, length)
        fields = decode_header_fields(payload, box.type)
        if fields is None:
            return
        if box.type == "mdhd":
            state.track = fields
        elif state.movie is None:
            state.movie = fields
