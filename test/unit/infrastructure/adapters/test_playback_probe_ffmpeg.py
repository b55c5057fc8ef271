import json
import math

import pytest

from app.application.container.atom_reader import BufferMediaSource
from app.core.exceptions import FormatRejectedError
from app.infrastructure.adapters import FFprobePlaybackProbe, FFprobeSession
import app.infrastructure.adapters.playback_probe_ffmpeg as probe_module
from utils.subprocess_utils import SubprocessError, SubprocessResult

pytestmark = pytest.mark.adapters


class ScriptedFFprobe:
    """Stands in for run_subprocess; answers by the kind of ffprobe call."""

    def __init__(self, fmt=None, interval_packets="", full_packets="", fail_format=False):
        self.fmt = fmt if fmt is not None else {}
        self.interval_packets = interval_packets
        self.full_packets = full_packets
        self.fail_format = fail_format
        self.commands = []

    async def __call__(self, cmd, operation_name="FFprobe operation", custom_logger=None):
        self.commands.append(cmd)
        if "format=duration,start_time" in cmd:
            if self.fail_format:
                raise SubprocessError("Invalid data found when processing input", cmd, 1)
            stdout = json.dumps({"format": self.fmt})
        elif "-read_intervals" in cmd:
            stdout = self.interval_packets
        else:
            stdout = self.full_packets
        return SubprocessResult(command=cmd, returncode=0, stdout=stdout, stderr="")


def _session(monkeypatch, script, **kwargs):
    monkeypatch.setattr(probe_module, "run_subprocess", script)
    return FFprobeSession("/media/clip.mp4", binary="ffprobe", seek_window=5.0, **kwargs)


@pytest.mark.asyncio
async def test_wait_ready_reads_container_duration(monkeypatch):
    script = ScriptedFFprobe(fmt={"duration": "10.000000", "start_time": "0.000000"})
    session = _session(monkeypatch, script)

    assert await session.wait_ready() == pytest.approx(10.0)
    assert script.commands[0][0] == "ffprobe"
    assert script.commands[0][-1] == "/media/clip.mp4"


@pytest.mark.asyncio
async def test_wait_ready_without_duration_is_nan(monkeypatch):
    session = _session(monkeypatch, ScriptedFFprobe(fmt={"duration": "N/A"}))
    assert math.isnan(await session.wait_ready())


@pytest.mark.asyncio
async def test_wait_ready_rejected_format(monkeypatch):
    session = _session(monkeypatch, ScriptedFFprobe(fail_format=True))
    with pytest.raises(FormatRejectedError) as ei:
        await session.wait_ready()
    assert ei.value.message.startswith("Format Error")


@pytest.mark.asyncio
async def test_seek_reports_last_packet_end(monkeypatch):
    script = ScriptedFFprobe(
        fmt={"duration": "10.0", "start_time": "1.5"},
        interval_packets="11.400000,0.040000\n11.440000,0.040000\n11.420000,N/A\n",
    )
    session = _session(monkeypatch, script)
    await session.wait_ready()

    assert await session.seek(10.0) == pytest.approx(9.98)
    interval_cmd = script.commands[1]
    assert interval_cmd[interval_cmd.index("-read_intervals") + 1] == "6.500%"


@pytest.mark.asyncio
async def test_seek_past_end_falls_back_to_full_scan(monkeypatch):
    script = ScriptedFFprobe(fmt={}, interval_packets="", full_packets="0.0,0.5\n7.5,0.5\n")
    session = _session(monkeypatch, script)
    await session.wait_ready()

    assert await session.seek(999999.0) == pytest.approx(8.0)
    assert len(script.commands) == 3

    empty = _session(monkeypatch, ScriptedFFprobe(fmt={}))
    assert math.isnan(await empty.seek(5.0))


@pytest.mark.asyncio
async def test_attach_uses_file_path_in_place(monkeypatch, tmp_path):
    class PathSource(BufferMediaSource):
        path = tmp_path / "clip.mp4"

    probe = FFprobePlaybackProbe("ffprobe-custom", spill_dir=str(tmp_path / "spill"))
    session = await probe.attach(PathSource(b"\x00" * 8, name="clip.mp4"))

    script = ScriptedFFprobe(fmt={"duration": "3.0"})
    monkeypatch.setattr(probe_module, "run_subprocess", script)
    await session.wait_ready()
    assert script.commands[0][0] == "ffprobe-custom"
    assert script.commands[0][-1] == str(tmp_path / "clip.mp4")
    await session.detach()


@pytest.mark.asyncio
async def test_attach_spills_memory_sources_and_detach_removes_them(tmp_path):
    probe = FFprobePlaybackProbe(spill_dir=str(tmp_path))
    session = await probe.attach(BufferMediaSource(b"\x07" * 3000, name="remote.webm"))

    spilled = list(tmp_path.iterdir())
    assert len(spilled) == 1
    assert spilled[0].suffix == ".webm"
    assert spilled[0].read_bytes() == b"\x07" * 3000

    await session.detach()
    await session.detach()
    assert list(tmp_path.iterdir()) == []
