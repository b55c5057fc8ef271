from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from app.application.interfaces.media_source import IMediaSource
from app.application.interfaces.playback_probe import IPlaybackProbe, IProbeSession
from app.core.config import settings
from app.core.exceptions import FormatRejectedError
from utils.subprocess_utils import SubprocessError, run_subprocess

logger = logging.getLogger(__name__)

_SPILL_CHUNK = 1024 * 1024


def _to_float(value) -> Optional[float]:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


async def spill_to_temp_file(source: IMediaSource, directory: Optional[str] = None) -> str:
    """Copy a non-file source to a temporary file ffprobe can open."""
    suffix = Path(source.name).suffix or ".mp4"
    fd, path = tempfile.mkstemp(prefix="probe_", suffix=suffix, dir=directory)
    os.close(fd)
    try:
        async with aiofiles.open(path, "wb") as f:
            offset = 0
            while offset < source.size:
                chunk = await source.read(offset, min(_SPILL_CHUNK, source.size - offset))
                if not chunk:
                    break
                await f.write(chunk)
                offset += len(chunk)
    except BaseException:
        await aiofiles.os.remove(path)
        raise
    return path


class FFprobeSession(IProbeSession):
    """One ffprobe attachment.

    ``wait_ready`` reads container metadata; ``seek`` re-reads packet
    timestamps from shortly before ``position`` and reports where the last
    packet actually ends.
    """

    def __init__(
        self,
        path: str,
        *,
        binary: str,
        seek_window: float,
        cleanup_path: Optional[str] = None,
    ) -> None:
        self._path = path
        self._binary = binary
        self._seek_window = seek_window
        self._cleanup_path = cleanup_path
        self._start_time = 0.0
        self._detached = False

    async def wait_ready(self) -> float:
        cmd = [
            self._binary,
            "-v",
            "error",
            "-show_entries",
            "format=duration,start_time",
            "-of",
            "json",
            self._path,
        ]
        try:
            result = await run_subprocess(cmd, f"Probe metadata for {self._path}")
        except SubprocessError as e:
            raise FormatRejectedError(f"Format Error: {e.message}") from e
        try:
            fmt = json.loads(result.stdout or "{}").get("format", {})
        except json.JSONDecodeError as e:
            raise FormatRejectedError(f"Unreadable ffprobe output: {e}") from e
        self._start_time = _to_float(fmt.get("start_time")) or 0.0
        duration = _to_float(fmt.get("duration"))
        return duration if duration is not None else math.nan

    async def seek(self, position: float) -> float:
        start = self._start_time + max(0.0, position - self._seek_window)
        end = await self._last_packet_end(["-read_intervals", f"{start:.3f}%"])
        if end is None:
            # nothing after the seek point (unknown or overstated duration): scan everything
            end = await self._last_packet_end([])
        if end is None:
            return math.nan
        return end - self._start_time

    async def _last_packet_end(self, interval_args) -> Optional[float]:
        cmd = [
            self._binary,
            "-v",
            "error",
            *interval_args,
            "-show_entries",
            "packet=pts_time,duration_time",
            "-of",
            "csv=p=0",
            self._path,
        ]
        try:
            result = await run_subprocess(cmd, f"Probe packets for {self._path}")
        except SubprocessError as e:
            logger.debug("Packet probe failed: %s", e.message)
            return None

        last_end: Optional[float] = None
        for line in result.stdout.splitlines():
            parts = line.strip().split(",")
            pts = _to_float(parts[0]) if parts and parts[0] else None
            if pts is None:
                continue
            duration = _to_float(parts[1]) if len(parts) > 1 else None
            end = pts + (duration or 0.0)
            if last_end is None or end > last_end:
                last_end = end
        return last_end

    async def detach(self) -> None:
        if self._detached:
            return
        self._detached = True
        if self._cleanup_path:
            try:
                await aiofiles.os.remove(self._cleanup_path)
            except FileNotFoundError:
                pass


class FFprobePlaybackProbe(IPlaybackProbe):
    """Playback probe backed by ffprobe.

    File-backed sources are probed in place; in-memory sources are spilled to
    a temporary file that the session deletes on detach.
    """

    def __init__(
        self,
        binary: Optional[str] = None,
        *,
        seek_window: Optional[float] = None,
        spill_dir: Optional[str] = None,
    ) -> None:
        self._binary = binary or settings.ffprobe_binary_path
        self._seek_window = seek_window if seek_window is not None else settings.probe_seek_window
        self._spill_dir = spill_dir or settings.probe_spill_dir

    async def attach(self, source: IMediaSource) -> FFprobeSession:
        path = getattr(source, "path", None)
        cleanup_path = None
        if path is None:
            cleanup_path = await spill_to_temp_file(source, self._spill_dir)
            path = cleanup_path
        return FFprobeSession(
            str(path),
            binary=self._binary,
            seek_window=self._seek_window,
            cleanup_path=cleanup_path,
        )
