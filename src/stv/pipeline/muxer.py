"""Muxer adapter: feeds encoded video and audio into the MP4 writer."""

from __future__ import annotations

import logging

from stv.core.codecs import AAC_LC_CODEC_STRING, build_audio_specific_config
from stv.domain.models import AudioRenderResult, EncoderSelection, TargetPlan
from stv.mp4.writer import AudioDecoderConfig, Mp4Writer, VideoDecoderConfig
from stv.pipeline.frame_pump import EncodedStream
from stv.platform.interface import (
    AudioPacketMetadata,
    EncodedAudioPacket,
    MediaPlatform,
)

logger = logging.getLogger(__name__)

AUDIO_SAMPLE_RATE = 48000
AUDIO_CHANNELS = 2
DEFAULT_AUDIO_BITRATE = 96_000


class MuxerAdapter:
    """Owns one fast-start Mp4Writer with a video and an audio track.

    Both tracks are registered and the writer started on construction, so
    no track can be added once data flows. Video is added from the captured
    EncodedStream; audio is added as one buffer which the platform's AAC
    encoder splits into access units.
    """

    def __init__(
        self,
        selection: EncoderSelection,
        plan: TargetPlan,
        *,
        platform: MediaPlatform,
        audio_bitrate: int = DEFAULT_AUDIO_BITRATE,
    ) -> None:
        self.selection = selection
        self.plan = plan
        self._platform = platform
        self._audio_bitrate = audio_bitrate
        self.writer = Mp4Writer(fast_start=True)
        self.video_track = self.writer.add_video_track(selection.codec_id, plan.fps)
        self.audio_track = self.writer.add_audio_track(
            AUDIO_SAMPLE_RATE, AUDIO_CHANNELS, audio_bitrate
        )
        self.writer.start()
        self._audio_config = AudioDecoderConfig(
            codec=AAC_LC_CODEC_STRING,
            channels=AUDIO_CHANNELS,
            sample_rate=AUDIO_SAMPLE_RATE,
            description=build_audio_specific_config(
                AUDIO_SAMPLE_RATE, AUDIO_CHANNELS
            ),
        )
        self._audio_config_sent = False
        self.audio_packets = 0

    def add_video(self, stream: EncodedStream) -> int:
        """Append the first min(planned, produced) packets on the CFR grid.

        Returns:
            The number of video samples muxed.
        """
        muxed = min(stream.planned_frames, len(stream.packets))
        step = self.plan.step_fraction
        config = VideoDecoderConfig(
            codec=self.selection.config.codec,
            coded_width=self.plan.width,
            coded_height=self.plan.height,
            description=stream.description,
        )
        for i, packet in enumerate(stream.packets[:muxed]):
            self.video_track.add_sample(
                packet.payload,
                timestamp=i * step,
                duration=step,
                is_sync=packet.is_key,
                decoder_config=config,
            )
        if muxed < len(stream.packets):
            logger.debug(
                "Dropped %d surplus video packets", len(stream.packets) - muxed
            )
        return muxed

    def on_encoded_audio(
        self, packet: EncodedAudioPacket, metadata: AudioPacketMetadata
    ) -> None:
        """Audio encoder callback; supplies the decoder config on first use."""
        if metadata.decoder_config is None and not self._audio_config_sent:
            metadata.decoder_config = self._audio_config
        self._audio_config_sent = True
        self.audio_track.add_sample(
            packet.payload,
            pts=packet.pts,
            duration=packet.duration,
            decoder_config=metadata.decoder_config,
        )
        self.audio_packets += 1

    def add_audio(self, audio: AudioRenderResult) -> None:
        """Encode ``audio`` as a single buffer starting at time 0. Blocking."""
        encoder = self._platform.create_audio_encoder(
            bitrate=self._audio_bitrate,
            sample_rate=audio.sample_rate,
            channels=audio.channels,
            on_encoded_packet=self.on_encoded_audio,
        )
        encoder.add(audio.interleaved())
        encoder.close()
        logger.debug(
            "Muxed %d audio packets for %d frames",
            self.audio_packets,
            audio.frame_count,
        )

    def finalize(self) -> bytes:
        """Serialize the file. Blocking."""
        return self.writer.finalize()
