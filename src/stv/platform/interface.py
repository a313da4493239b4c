"""Collaborator interfaces for the transcode pipeline.

The pipeline talks to codecs, the decode cursor and container I/O only
through these protocols. The PyAV-backed implementations live next to this
module; tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from stv.domain.enums import CodecFamily, HardwarePreference
from stv.domain.models import (
    EncodedVideoPacket,
    MediaFile,
    VideoEncoderConfig,
)

if TYPE_CHECKING:
    from stv.introspector.interface import MediaProber
    from stv.mp4.writer import AudioDecoderConfig


@dataclass(frozen=True)
class EnvironmentCapabilities:
    """What the runtime offers for transcoding.

    Attributes:
        video_encoders: Names of usable HEVC/AVC encoders, in no particular order.
        audio_encoder: True if an AAC encoder and a resampler are available.
        rasterizer: True if decoded frames can be scaled and converted.
    """

    video_encoders: tuple[str, ...] = ()
    audio_encoder: bool = False
    rasterizer: bool = False

    @property
    def supported(self) -> bool:
        return bool(self.video_encoders) and self.audio_encoder and self.rasterizer


@dataclass(frozen=True)
class VideoEncoderRequest:
    """A "can you encode this?" question for the capability collaborator."""

    family: CodecFamily
    codec: str
    width: int
    height: int
    framerate: int
    bitrate: int
    hardware_acceleration: HardwarePreference = HardwarePreference.PREFER_HARDWARE


@dataclass(frozen=True)
class EncoderSupport:
    """Answer to a VideoEncoderRequest; ``config`` is set when supported."""

    supported: bool
    config: VideoEncoderConfig | None = None


@dataclass(frozen=True)
class PcmChunk:
    """Decoded audio at the pipeline rate, shape (channels, frames).

    ``timestamp`` is the chunk's position in seconds from the start of the
    source's timeline.
    """

    samples: np.ndarray = field(repr=False)
    timestamp: float


@dataclass(frozen=True)
class EncodedAudioPacket:
    """One AAC access unit. ``pts`` and ``duration`` are in samples."""

    payload: bytes = field(repr=False)
    pts: int
    duration: int


@dataclass
class AudioPacketMetadata:
    """Per-packet metadata with a writable decoder configuration slot."""

    decoder_config: AudioDecoderConfig | None = None


AudioPacketCallback = Callable[[EncodedAudioPacket, AudioPacketMetadata], None]


class CodecCapabilities(Protocol):
    """Answers encoder support questions."""

    def is_config_supported(self, request: VideoEncoderRequest) -> EncoderSupport:
        """Return whether ``request`` can be encoded, with the normalized config."""
        ...


class VideoEncoder(Protocol):
    """Encodes raw frames into compressed packets in arrival order."""

    def encode(
        self, frame: Any, *, timestamp: int, duration: int, key_frame: bool
    ) -> list[EncodedVideoPacket]:
        """Submit one frame stamped in microseconds; return any ready packets."""
        ...

    def flush(self) -> list[EncodedVideoPacket]:
        """Drain buffered packets. No frames may be submitted afterwards."""
        ...


class DecodeSource(Protocol):
    """A stateful decode cursor over the source's video stream.

    Only one seek may be outstanding at a time.
    """

    @property
    def current_frame(self) -> Any:
        """The most recently decoded frame, or None before the first seek."""
        ...

    async def load(self) -> None:
        """Open the input and select its video stream."""
        ...

    async def seek(self, position: float) -> None:
        """Move the cursor to ``position`` seconds; returns once a frame is ready."""
        ...

    async def wait_frame_ready(self, budget: float) -> bool:
        """Wait up to ``budget`` seconds for a frame at the sought position."""
        ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> DecodeSource: ...

    async def __aexit__(self, *exc_info: object) -> None: ...


class Rasterizer(Protocol):
    """Draws decoded frames into fixed-size surfaces at target geometry."""

    def surface(self, frame: Any) -> AbstractContextManager[Any]:
        """Scoped surface holding ``frame`` resized to the target geometry."""
        ...


class InputTrack(Protocol):
    def is_audio_track(self) -> bool: ...


class MediaInput(Protocol):
    """Read-side container access used by the audio pipeline."""

    def get_tracks(self) -> list[InputTrack]: ...

    def iter_audio_chunks(
        self, track: InputTrack, start: float, end: float
    ) -> Iterator[PcmChunk]:
        """Yield decoded PCM chunks covering [start, end] seconds."""
        ...

    def close(self) -> None: ...


class AudioEncoder(Protocol):
    """Audio sink that encodes PCM and reports packets through a callback."""

    def add(self, interleaved: np.ndarray) -> None:
        """Encode one interleaved float32 sample buffer starting at time 0."""
        ...

    def close(self) -> None:
        """Flush the encoder, delivering any remaining packets."""
        ...


class MediaPlatform(Protocol):
    """Factory for every collaborator the pipeline needs."""

    @property
    def prober(self) -> MediaProber: ...

    @property
    def codecs(self) -> CodecCapabilities: ...

    def environment(self) -> EnvironmentCapabilities: ...

    def create_video_encoder(self, config: VideoEncoderConfig) -> VideoEncoder: ...

    def open_decode_source(self, file: MediaFile) -> DecodeSource: ...

    def create_rasterizer(
        self, width: int, height: int, pix_fmt: str
    ) -> Rasterizer: ...

    def open_media_input(self, file: MediaFile) -> MediaInput: ...

    def create_audio_encoder(
        self,
        *,
        bitrate: int,
        sample_rate: int,
        channels: int,
        on_encoded_packet: AudioPacketCallback,
    ) -> AudioEncoder: ...
