"""Domain models for straight-to-video.

These types carry data between pipeline stages. Most are frozen: a value is
produced once by one stage and only read afterwards.
"""

from __future__ import annotations

import io
import math
import mimetypes
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import Any, BinaryIO

import numpy as np

from .enums import CodecFamily, FeasibilityReason, PacketType

OUTPUT_MIME_TYPE = "video/mp4"
OUTPUT_SUFFIX = "-optimized.mp4"


@dataclass(frozen=True)
class MediaFile:
    """An opaque media object plus its declared MIME type.

    Exactly one of ``path`` or ``data`` backs the content. The MIME type may
    be empty when the caller does not know it.
    """

    name: str
    mime_type: str = ""
    path: Path | None = None
    data: bytes | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if (self.path is None) == (self.data is None):
            raise ValueError("MediaFile needs exactly one of path or data")

    @classmethod
    def from_path(cls, path: Path | str, mime_type: str | None = None) -> MediaFile:
        """Build a path-backed MediaFile, guessing the MIME type if not given."""
        path = Path(path)
        if mime_type is None:
            guessed, _ = mimetypes.guess_type(path.name)
            mime_type = guessed or ""
        return cls(name=path.name, mime_type=mime_type, path=path)

    def open(self) -> BinaryIO:
        """Open the content for binary reading. Caller closes the handle."""
        if self.data is not None:
            return io.BytesIO(self.data)
        assert self.path is not None
        return self.path.open("rb")

    def read_head(self, size: int) -> bytes:
        """Read at most ``size`` bytes from the start of the content."""
        if self.data is not None:
            return self.data[:size]
        with self.open() as fh:
            return fh.read(size)


@dataclass(frozen=True)
class MediaDescriptor:
    """Probed source metadata: coded dimensions and duration in seconds."""

    width: int
    height: int
    duration: float


@dataclass(frozen=True)
class TargetPlan:
    """Output geometry and constant frame rate for one transcode."""

    width: int
    height: int
    fps: int

    @property
    def step(self) -> float:
        """Seconds between output frames."""
        return 1 / max(1, self.fps)

    @property
    def step_fraction(self) -> Fraction:
        """Exact frame step, used for container timestamps."""
        return Fraction(1, max(1, self.fps))

    def frame_count(self, duration: float) -> int:
        """Number of frames on the output timeline for a source duration."""
        return max(1, math.floor(duration / self.step))


@dataclass(frozen=True)
class VideoEncoderConfig:
    """Normalized encoder configuration returned by capability negotiation."""

    codec: str  # Codec string, e.g. "avc1.64002A"
    encoder: str  # FFmpeg encoder name, e.g. "libx264"
    width: int
    height: int
    framerate: int
    bitrate: int
    pix_fmt: str = "yuv420p"
    hardware: bool = False
    options: dict[str, str] = field(default_factory=dict, hash=False, compare=False)


@dataclass(frozen=True)
class EncoderSelection:
    """Codec family and config chosen once per transcode attempt."""

    codec_id: CodecFamily
    config: VideoEncoderConfig


@dataclass(frozen=True)
class FrameTask:
    """One iteration of the frame pump.

    ``presentation_time`` is the output timestamp. ``sample_time`` is where
    the decode cursor is sought, which differs for the first frame.
    """

    index: int
    presentation_time: float
    sample_time: float
    is_key_frame: bool


@dataclass(frozen=True)
class EncodedVideoPacket:
    """An encoded video chunk as delivered by the encoder.

    Timestamps and durations are in microseconds.
    """

    payload: bytes = field(repr=False)
    type: PacketType
    timestamp: int
    duration: int
    description: bytes | None = field(default=None, repr=False)

    @property
    def is_key(self) -> bool:
        return self.type is PacketType.KEY


@dataclass(frozen=True)
class AudioRenderResult:
    """Planar float PCM at a fixed rate, shape (channels, frames)."""

    samples: np.ndarray = field(repr=False)
    sample_rate: int = 48000
    channels: int = 2

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[1])

    @classmethod
    def silence(
        cls, frames: int, sample_rate: int = 48000, channels: int = 2
    ) -> AudioRenderResult:
        return cls(
            samples=np.zeros((channels, frames), dtype=np.float32),
            sample_rate=sample_rate,
            channels=channels,
        )

    def interleaved(self) -> np.ndarray:
        """Return one flat float32 array ordered L, R, L, R, ..."""
        return np.ascontiguousarray(self.samples.T, dtype=np.float32).reshape(-1)


@dataclass(frozen=True)
class FeasibilityResult:
    """Structured answer of the feasibility gate."""

    ok: bool
    reason: FeasibilityReason
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def fail(cls, reason: FeasibilityReason, **details: Any) -> FeasibilityResult:
        return cls(ok=False, reason=reason, details=details)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "reason": self.reason.value, "details": self.details}


@dataclass(frozen=True)
class TranscodeResult:
    """Result of optimize_video.

    When ``changed`` is False, ``file`` is the caller's original object.
    """

    changed: bool
    file: Any


def optimized_filename(name: str) -> str:
    """Name of the artifact produced from ``name``.

    The last extension is replaced; a name without one keeps its full text.

    >>> optimized_filename("clip.final.mov")
    'clip.final-optimized.mp4'
    """
    dot = name.rfind(".")
    base = name[:dot] if dot > 0 else name
    return f"{base}{OUTPUT_SUFFIX}"
