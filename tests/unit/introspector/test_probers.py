"""Tests for the probe backends and backend selection."""

import json
import subprocess
from pathlib import Path

import pytest

from stv.config.models import ProbeConfig, StvConfig, ToolPathsConfig
from stv.domain.models import MediaDescriptor, MediaFile
from stv.errors import MediaProbeError
from stv.introspector import FFprobeProber, PyAVProber, get_prober, probe_media
from stv.introspector import ffprobe as ffprobe_module

FFPROBE_JSON = json.dumps(
    {
        "streams": [{"codec_type": "video", "width": 1920, "height": 1080}],
        "format": {"duration": "12.0"},
    }
)


@pytest.fixture
def clip(tmp_path: Path) -> MediaFile:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00" * 32)
    return MediaFile.from_path(path)


@pytest.fixture
def fake_run(monkeypatch):
    calls = []
    result = {"value": (FFPROBE_JSON, "", 0)}

    def run_command(args, timeout=60):
        calls.append((args, timeout))
        outcome = result["value"]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    monkeypatch.setattr(ffprobe_module, "run_command", run_command)
    return calls, result


class TestFFprobeProber:
    """Tests for FFprobeProber."""

    def test_not_found(self, monkeypatch):
        monkeypatch.setattr(ffprobe_module.shutil, "which", lambda name: None)
        with pytest.raises(MediaProbeError, match="ffprobe is not installed"):
            FFprobeProber()

    def test_found_on_path(self, monkeypatch, clip, fake_run):
        monkeypatch.setattr(
            ffprobe_module.shutil, "which", lambda name: "/usr/bin/ffprobe"
        )
        calls, _ = fake_run
        result = FFprobeProber(timeout=5).probe(clip)
        assert result == MediaDescriptor(1920, 1080, 12.0)
        args, timeout = calls[0]
        assert args[0] == Path("/usr/bin/ffprobe")
        assert args[-1] == clip.path
        assert "-show_streams" in args
        assert timeout == 5

    def test_in_memory_file_rejected(self):
        prober = FFprobeProber(ffprobe_path=Path("/opt/ffprobe"))
        media = MediaFile(name="clip.mp4", data=b"data")
        with pytest.raises(MediaProbeError, match="in-memory"):
            prober.probe(media)

    def test_missing_file(self, tmp_path):
        prober = FFprobeProber(ffprobe_path=Path("/opt/ffprobe"))
        media = MediaFile(name="gone.mp4", path=tmp_path / "gone.mp4")
        with pytest.raises(MediaProbeError, match="File not found"):
            prober.probe(media)

    def test_nonzero_exit(self, clip, fake_run):
        _, result = fake_run
        result["value"] = ("", "moov atom not found\n", 1)
        prober = FFprobeProber(ffprobe_path=Path("/opt/ffprobe"))
        with pytest.raises(MediaProbeError, match="moov atom not found"):
            prober.probe(clip)

    def test_timeout(self, clip, fake_run):
        _, result = fake_run
        result["value"] = subprocess.TimeoutExpired(cmd="ffprobe", timeout=5)
        prober = FFprobeProber(ffprobe_path=Path("/opt/ffprobe"))
        with pytest.raises(MediaProbeError, match="timed out"):
            prober.probe(clip)

    def test_invalid_json(self, clip, fake_run):
        _, result = fake_run
        result["value"] = ("{not json", "", 0)
        prober = FFprobeProber(ffprobe_path=Path("/opt/ffprobe"))
        with pytest.raises(MediaProbeError, match="Invalid ffprobe output"):
            prober.probe(clip)


class TestPyAVProber:
    """Tests for PyAVProber error handling."""

    def test_garbage_data(self):
        media = MediaFile(name="junk.mp4", mime_type="video/mp4", data=b"\x00" * 64)
        with pytest.raises(MediaProbeError):
            PyAVProber().probe(media)


class TestGetProber:
    """Tests for get_prober."""

    def test_default_is_pyav(self):
        assert isinstance(get_prober(), PyAVProber)
        assert isinstance(get_prober(StvConfig()), PyAVProber)

    def test_ffprobe_backend(self):
        config = StvConfig(
            probe=ProbeConfig(backend="ffprobe", timeout_seconds=9),
            tools=ToolPathsConfig(ffprobe=Path("/opt/ffprobe")),
        )
        prober = get_prober(config)
        assert isinstance(prober, FFprobeProber)


class TestProbeMedia:
    """Tests for probe_media."""

    @pytest.mark.asyncio
    async def test_runs_prober(self):
        class StaticProber:
            def probe(self, file):
                return MediaDescriptor(10, 20, 1.0)

        media = MediaFile(name="a.mp4", data=b"x")
        assert await probe_media(StaticProber(), media) == MediaDescriptor(10, 20, 1.0)
