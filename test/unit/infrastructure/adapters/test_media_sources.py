import pytest

from app.application.container.atom_reader import BufferMediaSource
from app.core.exceptions import MediaSourceError
from app.infrastructure.adapters import FileMediaSource, MediaSourceProvider
import app.infrastructure.adapters.media_source_provider as provider_module

pytestmark = pytest.mark.adapters


@pytest.mark.asyncio
async def test_file_source_reads_ranges(tmp_path):
    path = tmp_path / "clip.mov"
    path.write_bytes(b"0123456789")

    src = await FileMediaSource.open(path)
    try:
        assert src.size == 10
        assert src.name == "clip.mov"
        assert src.media_type == "video/quicktime"
        assert await src.read(3, 4) == b"3456"
        assert await src.read(8, 10) == b"89"
    finally:
        await src.aclose()

    await src.aclose()
    with pytest.raises(MediaSourceError):
        await src.read(0, 1)


@pytest.mark.asyncio
async def test_file_source_missing_file(tmp_path):
    with pytest.raises(MediaSourceError) as ei:
        await FileMediaSource.open(tmp_path / "nope.mp4")
    assert ei.value.error_code == "MEDIA_SOURCE_ERROR"


@pytest.mark.asyncio
async def test_provider_describe(tmp_path):
    path = tmp_path / "movie.mp4"
    path.write_bytes(b"\x00" * 1536)
    provider = MediaSourceProvider()

    assert await provider.describe(str(path)) == ("movie.mp4", 1536)
    assert await provider.describe("https://cdn.example.com/v/My%20Clip.mp4?x=1") == ("My Clip.mp4", 0)
    with pytest.raises(MediaSourceError):
        await provider.describe(str(tmp_path / "missing.mp4"))


@pytest.mark.asyncio
async def test_provider_opens_local_file(tmp_path):
    path = tmp_path / "movie.mp4"
    path.write_bytes(b"abc")
    src = await MediaSourceProvider().open(str(path))
    try:
        assert isinstance(src, FileMediaSource)
        assert src.path == path
    finally:
        await src.aclose()


@pytest.mark.asyncio
async def test_provider_fetches_urls_into_memory(monkeypatch):
    seen = {}

    async def fake_fetch(url, *, timeout=None, max_bytes=None):
        seen["url"], seen["max_bytes"] = url, max_bytes
        return b"\x01" * 64, "application/octet-stream"

    monkeypatch.setattr(provider_module, "fetch_bytes", fake_fetch)
    provider = MediaSourceProvider(max_remote_bytes=4096)
    src = await provider.open("https://cdn.example.com/a/clip.mov")

    assert isinstance(src, BufferMediaSource)
    assert src.size == 64
    assert src.name == "clip.mov"
    # non-video content types fall back to the extension
    assert src.media_type == "video/quicktime"
    assert seen == {"url": "https://cdn.example.com/a/clip.mov", "max_bytes": 4096}


@pytest.mark.asyncio
async def test_provider_keeps_video_content_type(monkeypatch):
    async def fake_fetch(url, *, timeout=None, max_bytes=None):
        return b"\x01" * 8, "video/webm"

    monkeypatch.setattr(provider_module, "fetch_bytes", fake_fetch)
    src = await MediaSourceProvider().open("https://cdn.example.com/stream")
    assert src.media_type == "video/webm"
    assert src.name == "stream"
