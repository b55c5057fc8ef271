"""
Shared test configuration and fixtures for duration resolution.
"""

import asyncio
import logging
import os
import struct
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional, Tuple

import pytest

from app.application.container.atom_reader import BufferMediaSource
from app.core.config import settings
from app.core.exceptions import MediaSourceError


def setup_logging():
    """Configure logging for the whole test run."""
    log_dir = Path("test/test_output/logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "test_run.log"

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)-8s [%(name)s:%(lineno)d] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(filename=log_file, mode="a", encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("app").setLevel(logging.DEBUG)

    return log_file


def pytest_configure(config):  # pylint: disable=unused-argument
    """Configure pytest for tests."""
    log_file = setup_logging()
    # keep the API app from writing data/app.log during tests
    settings.log_file = None

    logger = logging.getLogger("pytest")
    logger.info("=" * 80)
    logger.info("TEST RUN START")
    logger.info("Working directory: %s", os.getcwd())
    logger.info("Log file: %s", log_file)
    logger.info("-" * 80)


@pytest.fixture(autouse=True)
def log_test_name(request):
    """Log test name when test starts and finishes."""
    logger = logging.getLogger(request.node.nodeid)
    logger.info("🚀 Start: %s", request.node.name)
    start_time = datetime.now()

    def log_test_end():
        duration = (datetime.now() - start_time).total_seconds()
        logger.info("✅ Done in %.2fs", duration)

    request.addfinalizer(log_test_end)


# -------------------- MP4 byte builders --------------------
class Mp4Builder:
    """Builds minimal ISO BMFF byte strings for parser tests.

    Only the boxes the parser looks at carry real content; payloads of other
    boxes are zero-filled.
    """

    @staticmethod
    def box(box_type: str, payload: bytes = b"") -> bytes:
        return struct.pack(">I", 8 + len(payload)) + box_type.encode("latin-1") + payload

    @staticmethod
    def ext_box(box_type: str, payload: bytes = b"") -> bytes:
        """Box using the 64-bit extended size form (size field == 1)."""
        return (
            struct.pack(">I", 1)
            + box_type.encode("latin-1")
            + struct.pack(">Q", 16 + len(payload))
            + payload
        )

    @staticmethod
    def open_box(box_type: str, payload: bytes = b"") -> bytes:
        """Box with size field 0 ("extends to end of container")."""
        return struct.pack(">I", 0) + box_type.encode("latin-1") + payload

    @staticmethod
    def raw_box(declared_size: int, box_type: str, payload: bytes = b"") -> bytes:
        return struct.pack(">I", declared_size) + box_type.encode("latin-1") + payload

    @staticmethod
    def header_payload(timescale: int, duration: int, version: int = 0, pad: int = 0) -> bytes:
        if version == 1:
            body = struct.pack(">B3xQQIQ", 1, 0, 0, timescale, duration)
        else:
            body = struct.pack(">B3xIIII", 0, 0, 0, timescale, duration)
        return body + b"\x00" * pad

    def mvhd(self, timescale: int, duration: int, version: int = 0) -> bytes:
        # real mvhd payloads carry rate/volume/matrix after the timing fields
        return self.box("mvhd", self.header_payload(timescale, duration, version, pad=80))

    def mdhd(self, timescale: int, duration: int, version: int = 0) -> bytes:
        return self.box("mdhd", self.header_payload(timescale, duration, version, pad=4))

    def trak(self, timescale: int, duration: int, version: int = 0) -> bytes:
        mdia = self.box(
            "mdia", self.mdhd(timescale, duration, version) + self.box("hdlr", b"\x00" * 24)
        )
        return self.box("trak", self.box("tkhd", b"\x00" * 84) + mdia)

    def moov(self, *children: bytes) -> bytes:
        return self.box("moov", b"".join(children))

    def ftyp(self) -> bytes:
        return self.box("ftyp", b"isom" + struct.pack(">I", 0x200) + b"isomiso2mp41")

    def mdat(self, size: int) -> bytes:
        return self.box("mdat", b"\x00" * size)

    def faststart(self, timescale: int = 600, duration: int = 18000, mdat_size: int = 1024) -> bytes:
        """ftyp + moov(mvhd) + mdat: the moov-first layout."""
        return self.ftyp() + self.moov(self.mvhd(timescale, duration)) + self.mdat(mdat_size)


@pytest.fixture(scope="session")
def mp4() -> Mp4Builder:
    return Mp4Builder()


class CountingSource(BufferMediaSource):
    """In-memory source that records every read and whether it was closed."""

    def __init__(self, data: bytes, *, name: str = "clip.mp4", media_type: Optional[str] = None):
        super().__init__(data, name=name, media_type=media_type)
        self.reads: List[Tuple[int, int]] = []
        self.closed = False

    async def read(self, offset: int, length: int) -> bytes:
        self.reads.append((offset, length))
        return await super().read(offset, length)

    async def aclose(self) -> None:
        self.closed = True
        await super().aclose()


@pytest.fixture
def make_source():
    def _make(data: bytes, name: str = "clip.mp4") -> CountingSource:
        return CountingSource(data, name=name)

    return _make


# -------------------- Fake collaborators --------------------
class FakeSourceProvider:
    """Provider over a locator -> bytes mapping; opened sources are recorded."""

    def __init__(self, files: Dict[str, bytes]):
        self.files = dict(files)
        self.opened: List[CountingSource] = []

    async def describe(self, locator: str) -> Tuple[str, int]:
        if locator not in self.files:
            raise MediaSourceError(f"Cannot stat {locator}", locator=locator)
        return Path(locator).name, len(self.files[locator])

    async def open(self, locator: str) -> CountingSource:
        if locator not in self.files:
            raise MediaSourceError(f"Cannot open {locator}", locator=locator)
        source = CountingSource(self.files[locator], name=Path(locator).name)
        self.opened.append(source)
        return source


class FakeProbeSession:
    def __init__(
        self,
        initial: float = float("nan"),
        corrected: float = float("nan"),
        *,
        ready_delay: float = 0.0,
        seek_delay: float = 0.0,
        ready_error: Optional[Exception] = None,
        seek_error: Optional[Exception] = None,
    ):
        self.initial = initial
        self.corrected = corrected
        self.ready_delay = ready_delay
        self.seek_delay = seek_delay
        self.ready_error = ready_error
        self.seek_error = seek_error
        self.seek_positions: List[float] = []
        self.detach_calls = 0

    async def wait_ready(self) -> float:
        if self.ready_delay:
            await asyncio.sleep(self.ready_delay)
        if self.ready_error is not None:
            raise self.ready_error
        return self.initial

    async def seek(self, position: float) -> float:
        self.seek_positions.append(position)
        if self.seek_delay:
            await asyncio.sleep(self.seek_delay)
        if self.seek_error is not None:
            raise self.seek_error
        return self.corrected

    async def detach(self) -> None:
        self.detach_calls += 1


class FakePlaybackProbe:
    def __init__(self, session: FakeProbeSession):
        self.session = session
        self.attached: List[object] = []

    async def attach(self, source) -> FakeProbeSession:
        self.attached.append(source)
        return self.session


class FakeRemoteAgent:
    def __init__(self, seconds: float = 42.0, error: Optional[Exception] = None):
        self.seconds = seconds
        self.error = error
        self.calls: List[dict] = []

    async def estimate_duration(self, data: bytes, *, media_type: str, instruction: str) -> float:
        self.calls.append({"size": len(data), "media_type": media_type, "instruction": instruction})
        if self.error is not None:
            raise self.error
        return self.seconds


@pytest.fixture
def fake_adapters():
    """SimpleNamespace adapters with only the binary tier active.

    Tests swap in ``playback_probe`` / ``remote_agent`` as needed.
    """

    def _make(files: Dict[str, bytes], *, playback_probe=None, remote_agent=None):
        return SimpleNamespace(
            source_provider=FakeSourceProvider(files),
            playback_probe=playback_probe,
            remote_agent=remote_agent,
        )

    return _make


@pytest.fixture
def sample_files(mp4) -> Dict[str, bytes]:
    """30s and 45s clips plus one file with no readable header."""
    return {
        "a.mp4": mp4.faststart(600, 18000),
        "b.mp4": mp4.ftyp() + mp4.moov(mp4.mvhd(1000, 45000, version=1)) + mp4.mdat(256),
        "bad.mp4": b"\x00\x00\x00\x10junk" + b"\xff" * 64,
    }
