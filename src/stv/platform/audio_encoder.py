"""AAC-LC encoding with PyAV."""

from __future__ import annotations

import logging
from fractions import Fraction

import av
import numpy as np

from stv.errors import EncoderError
from stv.platform.interface import (
    AudioPacketCallback,
    AudioPacketMetadata,
    EncodedAudioPacket,
)

logger = logging.getLogger(__name__)

AAC_FRAME_SAMPLES = 1024


class PyAVAudioEncoder:
    """Encodes interleaved float32 stereo PCM to AAC-LC.

    Each encoded access unit is handed to ``on_encoded_packet`` together
    with a fresh AudioPacketMetadata whose decoder_config the callback may
    fill in.
    """

    def __init__(
        self,
        *,
        bitrate: int,
        sample_rate: int,
        channels: int,
        on_encoded_packet: AudioPacketCallback,
        codec: str = "aac",
    ) -> None:
        if channels != 2:
            raise EncoderError(
                f"Only stereo output is supported, got {channels} channels"
            )
        self.sample_rate = sample_rate
        self.channels = channels
        self._callback = on_encoded_packet
        self._time_base = Fraction(1, sample_rate)
        try:
            self._ctx = av.CodecContext.create(codec, "w")
            self._ctx.sample_rate = sample_rate
            self._ctx.layout = "stereo"
            self._ctx.format = av.AudioFormat("fltp")
            self._ctx.bit_rate = bitrate
            self._ctx.time_base = self._time_base
            self._ctx.open()
        except (av.error.FFmpegError, ValueError) as e:
            raise EncoderError(f"Failed to open audio encoder {codec}: {e}") from e
        self._packets = 0

    def add(self, interleaved: np.ndarray) -> None:
        samples = np.ascontiguousarray(interleaved, dtype=np.float32).reshape(1, -1)
        frame = av.AudioFrame.from_ndarray(samples, format="flt", layout="stereo")
        frame.sample_rate = self.sample_rate
        frame.time_base = self._time_base
        frame.pts = 0
        try:
            packets = self._ctx.encode(frame)
        except av.error.FFmpegError as e:
            raise EncoderError(f"Audio encoding failed: {e}") from e
        self._deliver(packets)

    def close(self) -> None:
        try:
            packets = self._ctx.encode(None)
        except av.error.FFmpegError as e:
            raise EncoderError(f"Audio encoder flush failed: {e}") from e
        self._deliver(packets)
        logger.debug("Audio encoder produced %d packets", self._packets)

    def _deliver(self, packets: list[av.Packet]) -> None:
        for packet in packets:
            self._packets += 1
            self._callback(
                EncodedAudioPacket(
                    payload=bytes(packet),
                    pts=packet.pts if packet.pts is not None else 0,
                    duration=packet.duration or AAC_FRAME_SAMPLES,
                ),
                AudioPacketMetadata(),
            )
