"""Tests for the muxer adapter."""

import struct

import pytest

from fakes import FAKE_AVCC, FakePlatform
from stv.domain.enums import CodecFamily, PacketType
from stv.domain.models import (
    AudioRenderResult,
    EncodedVideoPacket,
    EncoderSelection,
    TargetPlan,
    VideoEncoderConfig,
)
from stv.errors import MuxerError
from stv.pipeline.frame_pump import EncodedStream
from stv.pipeline.muxer import MuxerAdapter
from stv.platform.interface import AudioPacketMetadata, EncodedAudioPacket

PLAN = TargetPlan(width=1280, height=720, fps=30)
SELECTION = EncoderSelection(
    codec_id=CodecFamily.AVC,
    config=VideoEncoderConfig(
        codec="avc1.64002A",
        encoder="libx264",
        width=1280,
        height=720,
        framerate=30,
        bitrate=2_800_000,
    ),
)


def make_stream(count: int, planned: int, description=FAKE_AVCC) -> EncodedStream:
    packets = [
        EncodedVideoPacket(
            payload=b"frame-%d" % i,
            type=PacketType.KEY if i == 0 else PacketType.DELTA,
            timestamp=i * 33333,
            duration=33333,
            description=description if i == 0 else None,
        )
        for i in range(count)
    ]
    return EncodedStream(
        packets=packets, description=description, planned_frames=planned
    )


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def muxer(platform):
    return MuxerAdapter(SELECTION, PLAN, platform=platform)


class TestAddVideo:
    """Tests for MuxerAdapter.add_video."""

    def test_muxes_all_planned_packets(self, muxer):
        assert muxer.add_video(make_stream(4, 4)) == 4
        samples = muxer.video_track.samples
        assert [s.decode_time for s in samples] == [0, 1000, 2000, 3000]
        assert {s.duration for s in samples} == {1000}
        assert [s.is_sync for s in samples] == [True, False, False, False]

    def test_surplus_packets_dropped(self, muxer):
        assert muxer.add_video(make_stream(6, 4)) == 4
        assert len(muxer.video_track.samples) == 4

    def test_fewer_packets_than_planned(self, muxer):
        assert muxer.add_video(make_stream(3, 5)) == 3

    def test_sample_entry_uses_plan_geometry(self, muxer):
        muxer.add_video(make_stream(1, 1))
        assert muxer.video_track.dimensions() == (1280, 720)

    def test_missing_description_is_a_muxer_error(self, muxer):
        with pytest.raises(MuxerError):
            muxer.add_video(make_stream(2, 2, description=None))


class TestAudio:
    """Tests for the audio callback and add_audio."""

    def test_decoder_config_supplied_once(self, muxer):
        first, second = AudioPacketMetadata(), AudioPacketMetadata()
        muxer.on_encoded_audio(EncodedAudioPacket(b"a", -1024, 1024), first)
        muxer.on_encoded_audio(EncodedAudioPacket(b"b", 0, 1024), second)
        assert first.decoder_config is not None
        assert first.decoder_config.description == bytes([0x11, 0x90])
        assert first.decoder_config.sample_rate == 48000
        assert second.decoder_config is None
        assert muxer.audio_packets == 2

    def test_add_audio_encodes_one_interleaved_buffer(self, muxer, platform):
        muxer.add_audio(AudioRenderResult.silence(2048))
        (encoder,) = platform.audio_encoders
        assert encoder.bitrate == 96_000
        assert encoder.sample_rate == 48000
        assert encoder.channels == 2
        assert encoder.closed
        assert len(encoder.buffers) == 1
        assert encoder.buffers[0].shape == (4096,)
        # 2048 frames plus 1024 priming frames
        assert muxer.audio_packets == 3

    def test_audio_bitrate_configurable(self, platform):
        muxer = MuxerAdapter(SELECTION, PLAN, platform=platform, audio_bitrate=128_000)
        muxer.add_audio(AudioRenderResult.silence(1024))
        assert platform.audio_encoders[0].bitrate == 128_000


class TestFinalize:
    """Tests for MuxerAdapter.finalize."""

    def test_fast_start_file(self, muxer, parse_boxes, find_box):
        muxer.add_video(make_stream(30, 30))
        muxer.add_audio(AudioRenderResult.silence(30 * 1600 - 2048))
        data = muxer.finalize()
        assert [t for t, _, _ in parse_boxes(data)] == [b"ftyp", b"moov", b"mdat"]
        elst = find_box(data, b"elst")
        media_time = struct.unpack(">i", elst[20:24])[0]
        assert media_time == 1024

    def test_tracks_cannot_be_added_after_construction(self, muxer):
        with pytest.raises(MuxerError):
            muxer.writer.add_audio_track(48000, 2, 96000)
