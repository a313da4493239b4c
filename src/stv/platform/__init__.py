"""Media platform: the codec, decode and container collaborators.

PyAVPlatform wires the PyAV-backed implementations together and is what
the pipeline uses unless a caller passes its own MediaPlatform.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stv.config.models import StvConfig
from stv.domain.models import MediaFile, VideoEncoderConfig
from stv.platform.audio_encoder import PyAVAudioEncoder
from stv.platform.container import PyAVMediaInput
from stv.platform.decoder import PyAVDecodeSource
from stv.platform.encoders import PyAVCodecCapabilities, PyAVVideoEncoder
from stv.platform.environment import detect_environment
from stv.platform.interface import (
    AudioPacketCallback,
    EnvironmentCapabilities,
    MediaPlatform,
)
from stv.platform.raster import PyAVRasterizer

if TYPE_CHECKING:
    from stv.introspector.interface import MediaProber

logger = logging.getLogger(__name__)


class PyAVPlatform:
    """Default MediaPlatform backed by the local FFmpeg build via PyAV."""

    def __init__(self, config: StvConfig | None = None) -> None:
        self.config = config or StvConfig()
        self._prober: MediaProber | None = None
        self._codecs = PyAVCodecCapabilities(
            keyframe_interval=self.config.transcode.keyframe_interval_seconds
        )
        self._environment: EnvironmentCapabilities | None = None

    @property
    def prober(self) -> MediaProber:
        if self._prober is None:
            from stv.introspector import get_prober

            self._prober = get_prober(self.config)
        return self._prober

    @property
    def codecs(self) -> PyAVCodecCapabilities:
        return self._codecs

    def environment(self) -> EnvironmentCapabilities:
        if self._environment is None:
            self._environment = detect_environment()
        return self._environment

    def create_video_encoder(self, config: VideoEncoderConfig) -> PyAVVideoEncoder:
        return PyAVVideoEncoder(
            config, keyframe_interval=self.config.transcode.keyframe_interval_seconds
        )

    def open_decode_source(self, file: MediaFile) -> PyAVDecodeSource:
        return PyAVDecodeSource(
            file, seek_forward_window=self.config.transcode.seek_forward_window
        )

    def create_rasterizer(
        self, width: int, height: int, pix_fmt: str
    ) -> PyAVRasterizer:
        return PyAVRasterizer(width, height, pix_fmt)

    def open_media_input(self, file: MediaFile) -> PyAVMediaInput:
        return PyAVMediaInput(file)

    def create_audio_encoder(
        self,
        *,
        bitrate: int,
        sample_rate: int,
        channels: int,
        on_encoded_packet: AudioPacketCallback,
    ) -> PyAVAudioEncoder:
        return PyAVAudioEncoder(
            bitrate=bitrate,
            sample_rate=sample_rate,
            channels=channels,
            on_encoded_packet=on_encoded_packet,
        )


__all__ = [
    "EnvironmentCapabilities",
    "MediaPlatform",
    "PyAVAudioEncoder",
    "PyAVCodecCapabilities",
    "PyAVDecodeSource",
    "PyAVMediaInput",
    "PyAVPlatform",
    "PyAVRasterizer",
    "PyAVVideoEncoder",
    "detect_environment",
]
