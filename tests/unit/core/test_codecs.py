"""Tests for codec strings and the AAC AudioSpecificConfig."""

import pytest

from stv.core.codecs import (
    AVC_CODEC_STRING,
    CODEC_STRINGS,
    HEVC_CODEC_STRING,
    build_audio_specific_config,
    normalize_video_codec,
    sampling_frequency_index,
)
from stv.domain.enums import CodecFamily


class TestCodecStrings:
    """Tests for the fixed output codec strings."""

    def test_hevc_main_level_41(self):
        assert HEVC_CODEC_STRING == "hvc1.1.4.L123.B0"

    def test_avc_high_level_42(self):
        assert AVC_CODEC_STRING == "avc1.64002A"

    def test_registry_covers_both_families(self):
        assert CODEC_STRINGS[CodecFamily.HEVC] == HEVC_CODEC_STRING
        assert CODEC_STRINGS[CodecFamily.AVC] == AVC_CODEC_STRING


class TestNormalizeVideoCodec:
    """Tests for normalize_video_codec function."""

    @pytest.mark.parametrize("name", ["h264", "H.264", "avc1.64002A", "x264"])
    def test_avc_aliases(self, name):
        assert normalize_video_codec(name) is CodecFamily.AVC

    @pytest.mark.parametrize("name", ["hevc", "H265", "hvc1.1.4.L123.B0", "hev1"])
    def test_hevc_aliases(self, name):
        assert normalize_video_codec(name) is CodecFamily.HEVC

    def test_unknown_codec(self):
        assert normalize_video_codec("vp9") is None

    def test_empty_or_none(self):
        assert normalize_video_codec("") is None
        assert normalize_video_codec(None) is None


class TestAudioSpecificConfig:
    """Tests for build_audio_specific_config function."""

    def test_aac_lc_48k_stereo(self):
        """The pipeline's fixed audio format packs to 0x11 0x90."""
        assert build_audio_specific_config() == bytes([0x11, 0x90])

    def test_aac_lc_44k_stereo(self):
        assert build_audio_specific_config(44100, 2) == bytes([0x12, 0x10])

    def test_aac_lc_48k_mono(self):
        assert build_audio_specific_config(48000, 1) == bytes([0x11, 0x88])

    def test_unsupported_rate_raises(self):
        with pytest.raises(ValueError, match="Unsupported AAC sample rate"):
            build_audio_specific_config(12345)


class TestSamplingFrequencyIndex:
    """Tests for sampling_frequency_index function."""

    def test_known_rates(self):
        assert sampling_frequency_index(96000) == 0
        assert sampling_frequency_index(48000) == 3
        assert sampling_frequency_index(8000) == 11
