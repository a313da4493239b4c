"""Fake media collaborators for unit tests.

They stand in for the PyAV-backed platform so pipeline logic can be
tested without FFmpeg. Integration tests use the real platform instead.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from stv.domain.enums import CodecFamily, PacketType
from stv.domain.models import (
    EncodedVideoPacket,
    MediaDescriptor,
    MediaFile,
    VideoEncoderConfig,
)
from stv.errors import EncoderError
from stv.platform.interface import (
    AudioPacketMetadata,
    EncodedAudioPacket,
    EncoderSupport,
    EnvironmentCapabilities,
    PcmChunk,
    VideoEncoderRequest,
)

# A minimal avcC record; the MP4 writer uses records starting with 1 as-is
FAKE_AVCC = bytes([1, 0x64, 0x00, 0x2A, 0xFF, 0xE1, 0x00, 0x00, 0x01, 0x00, 0x00])

MP4_HEAD = b"\x00\x00\x00\x18ftypisom" + b"\x00" * 12


# =============================================================================
# Collaborators
# =============================================================================


class FakeProber:
    """Returns a fixed descriptor, or raises the configured error."""

    def __init__(
        self,
        descriptor: MediaDescriptor | None = None,
        error: Exception | None = None,
    ) -> None:
        self.descriptor = descriptor or MediaDescriptor(1280, 720, 2.0)
        self.error = error
        self.calls = 0

    def probe(self, file: MediaFile) -> MediaDescriptor:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.descriptor


class FakeCodecs:
    """Capability collaborator with per-family answers.

    ``errors`` maps a family to an exception raised for its request.
    """

    def __init__(
        self,
        supported: dict[CodecFamily, bool] | None = None,
        errors: dict[CodecFamily, Exception] | None = None,
    ) -> None:
        self.supported = (
            supported
            if supported is not None
            else {CodecFamily.HEVC: True, CodecFamily.AVC: True}
        )
        self.errors = errors or {}
        self.requests: list[VideoEncoderRequest] = []

    def is_config_supported(self, request: VideoEncoderRequest) -> EncoderSupport:
        self.requests.append(request)
        if request.family in self.errors:
            raise self.errors[request.family]
        if not self.supported.get(request.family, False):
            return EncoderSupport(supported=False)
        return EncoderSupport(
            supported=True,
            config=VideoEncoderConfig(
                codec=request.codec,
                encoder=f"fake-{request.family.value}",
                width=request.width,
                height=request.height,
                framerate=request.framerate,
                bitrate=request.bitrate,
            ),
        )


@dataclass
class FakeFrame:
    time: float


class FakeDecodeSource:
    """Decode cursor whose current frame is stamped with the sought position.

    ``ready`` lists the answers of successive wait_frame_ready calls; once
    exhausted every wait reports ready.
    """

    def __init__(
        self,
        ready: list[bool] | None = None,
        load_error: Exception | None = None,
    ):
        self.ready = list(ready or [])
        self.load_error = load_error
        self.seeks: list[float] = []
        self.budgets: list[float] = []
        self.loaded = False
        self.closed = False
        self._current: FakeFrame | None = None

    @property
    def current_frame(self) -> FakeFrame | None:
        return self._current

    async def load(self) -> None:
        if self.load_error is not None:
            raise self.load_error
        self.loaded = True

    async def seek(self, position: float) -> None:
        self.seeks.append(position)
        self._current = FakeFrame(position)

    async def wait_frame_ready(self, budget: float) -> bool:
        self.budgets.append(budget)
        if self.ready:
            return self.ready.pop(0)
        return True

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self) -> FakeDecodeSource:
        try:
            await self.load()
        except BaseException:
            await self.aclose()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class FakeRasterizer:
    """Tracks surface lifetimes; the yielded surface wraps the source frame."""

    def __init__(self, width: int = 1280, height: int = 720) -> None:
        self.width = width
        self.height = height
        self.opened = 0
        self.released = 0

    @contextmanager
    def surface(self, frame: Any) -> Iterator[tuple[str, Any]]:
        self.opened += 1
        try:
            yield ("surface", frame)
        finally:
            self.released += 1


class FakeVideoEncoder:
    """Emits one packet per frame; the first packet carries the description.

    With ``delay`` > 0 the first ``delay`` frames are held back and only
    released by flush(), like an encoder with lookahead.
    """

    def __init__(
        self,
        description: bytes | None = FAKE_AVCC,
        delay: int = 0,
        fail_at: int | None = None,
        extra_packets: int = 0,
    ) -> None:
        self.description = description
        self.delay = delay
        self.fail_at = fail_at
        self.extra_packets = extra_packets
        self.calls: list[dict[str, Any]] = []
        self.flushed = False
        self._held: list[EncodedVideoPacket] = []

    def encode(
        self, frame: Any, *, timestamp: int, duration: int, key_frame: bool
    ) -> list[EncodedVideoPacket]:
        index = len(self.calls)
        if self.fail_at is not None and index == self.fail_at:
            raise EncoderError(f"fake failure at frame {index}")
        self.calls.append(
            {
                "frame": frame,
                "timestamp": timestamp,
                "duration": duration,
                "key_frame": key_frame,
            }
        )
        packet = EncodedVideoPacket(
            payload=b"frame-%d" % index,
            type=PacketType.KEY if key_frame else PacketType.DELTA,
            timestamp=timestamp,
            duration=duration,
            description=self.description if index == 0 else None,
        )
        self._held.append(packet)
        if len(self._held) > self.delay:
            return [self._held.pop(0)]
        return []

    def flush(self) -> list[EncodedVideoPacket]:
        self.flushed = True
        remaining, self._held = self._held, []
        for i in range(self.extra_packets):
            remaining.append(
                EncodedVideoPacket(
                    payload=b"extra-%d" % i,
                    type=PacketType.DELTA,
                    timestamp=0,
                    duration=0,
                )
            )
        return remaining


@dataclass
class FakeTrack:
    audio: bool = True

    def is_audio_track(self) -> bool:
        return self.audio


@dataclass
class FakeMediaInput:
    tracks: list[FakeTrack] = field(default_factory=list)
    chunks: list[PcmChunk] = field(default_factory=list)
    tracks_error: Exception | None = None
    chunks_error: Exception | None = None
    closed: bool = False
    requested: list[tuple[Any, float, float]] = field(default_factory=list)

    def get_tracks(self) -> list[FakeTrack]:
        if self.tracks_error is not None:
            raise self.tracks_error
        return self.tracks

    def iter_audio_chunks(
        self, track: FakeTrack, start: float, end: float
    ) -> Iterator[PcmChunk]:
        self.requested.append((track, start, end))
        yield from self.chunks
        if self.chunks_error is not None:
            raise self.chunks_error

    def close(self) -> None:
        self.closed = True


class FakeAudioEncoder:
    """Splits the buffer into 1024-frame packets after one priming packet."""

    PRIMING = 1024

    def __init__(self, *, bitrate, sample_rate, channels, on_encoded_packet) -> None:
        self.bitrate = bitrate
        self.sample_rate = sample_rate
        self.channels = channels
        self.callback = on_encoded_packet
        self.buffers: list[np.ndarray] = []
        self.closed = False
        self.metadata: list[AudioPacketMetadata] = []

    def add(self, interleaved: np.ndarray) -> None:
        self.buffers.append(interleaved)
        frames = len(interleaved) // self.channels
        packets = -(-(frames + self.PRIMING) // 1024)
        for i in range(packets):
            metadata = AudioPacketMetadata()
            self.metadata.append(metadata)
            self.callback(
                EncodedAudioPacket(
                    payload=b"aac-%d" % i, pts=i * 1024 - self.PRIMING, duration=1024
                ),
                metadata,
            )

    def close(self) -> None:
        self.closed = True


class FakePlatform:
    """MediaPlatform assembled from the fakes above."""

    def __init__(
        self,
        *,
        environment: EnvironmentCapabilities | None = None,
        prober: FakeProber | None = None,
        codecs: FakeCodecs | None = None,
        source: FakeDecodeSource | None = None,
        encoder: FakeVideoEncoder | None = None,
        media_input: FakeMediaInput | None = None,
    ) -> None:
        self._environment = environment or EnvironmentCapabilities(
            video_encoders=("libx264",), audio_encoder=True, rasterizer=True
        )
        self._prober = prober or FakeProber()
        self._codecs = codecs or FakeCodecs()
        self.source = source or FakeDecodeSource()
        self.encoder = encoder or FakeVideoEncoder()
        self.media_input = media_input or FakeMediaInput()
        self.rasterizers: list[FakeRasterizer] = []
        self.audio_encoders: list[FakeAudioEncoder] = []
        self.encoder_configs: list[VideoEncoderConfig] = []

    @property
    def prober(self) -> FakeProber:
        return self._prober

    @property
    def codecs(self) -> FakeCodecs:
        return self._codecs

    def environment(self) -> EnvironmentCapabilities:
        return self._environment

    def create_video_encoder(self, config: VideoEncoderConfig) -> FakeVideoEncoder:
        self.encoder_configs.append(config)
        return self.encoder

    def open_decode_source(self, file: MediaFile) -> FakeDecodeSource:
        return self.source

    def create_rasterizer(
        self, width: int, height: int, pix_fmt: str
    ) -> FakeRasterizer:
        rasterizer = FakeRasterizer(width, height)
        self.rasterizers.append(rasterizer)
        return rasterizer

    def open_media_input(self, file: MediaFile) -> FakeMediaInput:
        return self.media_input

    def create_audio_encoder(self, **kwargs: Any) -> FakeAudioEncoder:
        encoder = FakeAudioEncoder(**kwargs)
        self.audio_encoders.append(encoder)
        return encoder


