"""Tests for encoder candidate ordering, options and capability checks."""

import io

import pytest

from stv.domain.enums import CodecFamily, HardwarePreference
from stv.domain.models import MediaFile
from stv.platform.container import av_source
from stv.platform.encoders import (
    PyAVCodecCapabilities,
    all_encoder_names,
    candidate_encoders,
    encoder_options,
    is_hardware_encoder,
)
from stv.platform.environment import detect_environment
from stv.platform.interface import VideoEncoderRequest


class TestCandidateEncoders:
    """Tests for candidate_encoders."""

    def test_hardware_first(self):
        names = candidate_encoders(CodecFamily.AVC, HardwarePreference.PREFER_HARDWARE)
        assert names[0] == "h264_videotoolbox"
        assert names[-2:] == ["libx264", "libopenh264"]

    def test_software_first(self):
        names = candidate_encoders(CodecFamily.HEVC, HardwarePreference.PREFER_SOFTWARE)
        assert names[0] == "libx265"
        assert "hevc_nvenc" in names

    def test_no_preference_tries_everything(self):
        names = candidate_encoders(CodecFamily.AVC, HardwarePreference.NO_PREFERENCE)
        assert set(names) == {
            "h264_videotoolbox",
            "h264_nvenc",
            "h264_qsv",
            "h264_amf",
            "libx264",
            "libopenh264",
        }

    def test_hardware_detection(self):
        assert is_hardware_encoder("hevc_nvenc")
        assert not is_hardware_encoder("libx264")

    def test_all_names(self):
        names = all_encoder_names()
        assert {"libx264", "libx265", "hevc_qsv"} <= names
        assert "aac" not in names


class TestEncoderOptions:
    """Tests for encoder_options."""

    def test_global_header_always_set(self):
        for name in ("libx264", "libx265", "h264_nvenc", "libopenh264"):
            assert encoder_options(name, 2_800_000)["flags"] == "+global_header"

    def test_x264_rate_control(self):
        options = encoder_options("libx264", 2_800_000)
        assert options["maxrate"] == "2800000"
        assert options["bufsize"] == "5600000"

    def test_x265_params_in_kbps(self):
        options = encoder_options("libx265", 2_800_000)
        assert "vbv-maxrate=2800:vbv-bufsize=5600" in options["x265-params"]

    def test_videotoolbox_realtime(self):
        assert encoder_options("hevc_videotoolbox", 1_000_000)["realtime"] == "1"


class TestPyAVCodecCapabilities:
    """Tests for PyAVCodecCapabilities without opening real encoders."""

    def test_nothing_available(self):
        capabilities = PyAVCodecCapabilities(available=frozenset())
        request = VideoEncoderRequest(
            family=CodecFamily.HEVC,
            codec="hvc1.1.4.L123.B0",
            width=1280,
            height=720,
            framerate=30,
            bitrate=2_800_000,
        )
        support = capabilities.is_config_supported(request)
        assert not support.supported
        assert support.config is None
        assert capabilities.is_config_supported(request) is support


class TestDetectEnvironment:
    """Tests for detect_environment with an injected codec list."""

    def test_supported(self):
        env = detect_environment(["libx264", "aac", "mp3", "h264_nvenc"])
        assert env.video_encoders == ("h264_nvenc", "libx264")
        assert env.audio_encoder
        assert env.supported

    def test_no_video_encoder(self):
        env = detect_environment(["aac", "h264"])
        assert env.video_encoders == ()
        assert not env.supported

    def test_no_aac(self):
        assert not detect_environment(["libx265"]).supported


class TestAvSource:
    """Tests for av_source."""

    def test_path_backed(self, tmp_path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"x")
        assert av_source(MediaFile.from_path(path)) == str(path)

    def test_in_memory(self):
        source = av_source(MediaFile(name="clip.mp4", data=b"abc"))
        assert isinstance(source, io.BytesIO)
        assert source.read() == b"abc"


@pytest.mark.parametrize("family", list(CodecFamily))
def test_every_family_has_candidates(family):
    for preference in HardwarePreference:
        assert candidate_encoders(family, preference)
