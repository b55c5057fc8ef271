import pytest

import app.presentation.cli as cli
from app.core.config import settings

pytestmark = pytest.mark.integration


@pytest.fixture
def patched_bundle(monkeypatch, fake_adapters, sample_files):
    calls = {}

    def fake_bundle(*, probe_enabled=None, remote_enabled=None, probe_timeout=None):
        calls["probe_enabled"] = probe_enabled
        calls["remote_enabled"] = remote_enabled
        calls["probe_timeout"] = probe_timeout
        return fake_adapters(sample_files)

    monkeypatch.setattr(cli, "get_duration_adapter_bundle", fake_bundle)
    return calls


@pytest.fixture
def captured_bundle(monkeypatch):
    """Real adapter bundle, recorded so tests can inspect what the flags built."""
    built = []
    real_bundle = cli.get_duration_adapter_bundle

    def recording_bundle(**kwargs):
        adapters = real_bundle(**kwargs)
        built.append(adapters)
        return adapters

    monkeypatch.setattr(cli, "get_duration_adapter_bundle", recording_bundle)
    return built


def test_cli_prints_items_and_aggregate(patched_bundle, capsys):
    code = cli.main(["--mode", "sum", "a.mp4", "b.mp4"])
    out = capsys.readouterr().out

    assert code == 0
    assert "a.mp4" in out and "00:00:30" in out
    assert "b.mp4" in out and "00:00:45" in out
    assert "SUM: 00:01:15 (2 resolved, 0 failed)" in out
    assert patched_bundle == {"probe_enabled": None, "remote_enabled": None, "probe_timeout": None}


def test_cli_exit_code_on_errors(patched_bundle, capsys):
    code = cli.main(["--mode", "AVERAGE", "--workers", "2", "--no-probe", "--remote", "a.mp4", "bad.mp4", "missing.mp4"])
    out = capsys.readouterr().out

    assert code == 1
    assert "bad.mp4" in out and "ERROR" in out
    assert "missing.mp4" in out
    assert "AVERAGE: 00:00:30 (1 resolved, 2 failed)" in out
    assert patched_bundle == {"probe_enabled": False, "remote_enabled": True, "probe_timeout": None}


def test_cli_flags_reach_real_adapters(captured_bundle, monkeypatch, mp4, tmp_path, capsys):
    monkeypatch.setattr(settings, "remote_fallback_enabled", False)
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    default_timeout = settings.probe_timeout
    clip = tmp_path / "clip.mp4"
    clip.write_bytes(mp4.faststart(600, 18000))

    code = cli.main(["--no-probe", "--remote", "--probe-timeout", "0.5", str(clip)])

    assert code == 0
    assert "00:00:30" in capsys.readouterr().out
    (adapters,) = captured_bundle
    assert adapters.playback_probe is None
    assert adapters.remote_agent is not None
    assert adapters.remote_agent._agent is not None
    assert adapters.probe_timeout == 0.5
    assert settings.probe_timeout == default_timeout


def test_cli_defaults_follow_settings(captured_bundle, monkeypatch, mp4, tmp_path, capsys):
    monkeypatch.setattr(settings, "remote_fallback_enabled", False)
    clip = tmp_path / "clip.mp4"
    clip.write_bytes(mp4.faststart(600, 18000))

    assert cli.main([str(clip)]) == 0
    (adapters,) = captured_bundle
    assert adapters.remote_agent is None
    assert adapters.probe_timeout is None


def test_cli_rejects_unknown_mode(capsys):
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--mode", "median", "a.mp4"])
