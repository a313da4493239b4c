"""Configuration data models.

This module defines dataclasses for stv configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal


@dataclass
class TranscodeConfig:
    """Video side of the transcode pipeline."""

    # Long-side cap for the output geometry, in pixels
    max_long_side: int = 1920

    # Constant target bitrate for the video encoder (bits/s)
    video_bitrate: int = 2_800_000

    # Try hardware encoders before software ones
    prefer_hardware: bool = True

    # Seconds between forced key frames (the first frame is always key)
    keyframe_interval_seconds: float = 2.0

    # Bound of the encoder -> muxer packet queue
    packet_queue_size: int = 64

    seek_forward_window: float = 2.0
    """Forward distance (seconds) the decode cursor covers by decoding
    instead of seeking the demuxer."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_long_side < 2:
            raise ValueError(
                f"max_long_side must be at least 2, got {self.max_long_side}"
            )
        if self.video_bitrate <= 0:
            raise ValueError(
                f"video_bitrate must be positive, got {self.video_bitrate}"
            )
        if self.keyframe_interval_seconds <= 0:
            raise ValueError(
                "keyframe_interval_seconds must be positive, "
                f"got {self.keyframe_interval_seconds}"
            )
        if self.packet_queue_size < 1:
            raise ValueError(
                f"packet_queue_size must be at least 1, got {self.packet_queue_size}"
            )
        if self.seek_forward_window < 0:
            raise ValueError(
                "seek_forward_window must be non-negative, "
                f"got {self.seek_forward_window}"
            )


@dataclass
class AudioConfig:
    """AAC output settings. Rate and layout are fixed at 48 kHz stereo."""

    bitrate: int = 96_000

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.bitrate <= 0:
            raise ValueError(f"bitrate must be positive, got {self.bitrate}")


@dataclass
class FeasibilityConfig:
    """Limits applied before a transcode is attempted."""

    # Output size budget in MB
    budget_mb: float = 300.0

    # Estimated output MB per second of source duration
    mb_per_second: float = 0.366

    # Bytes read to sniff the container when no MIME type is declared
    sniff_bytes: int = 4096

    @property
    def max_duration(self) -> float:
        """Longest duration (seconds) that fits the budget."""
        return self.budget_mb / self.mb_per_second

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.budget_mb <= 0:
            raise ValueError(f"budget_mb must be positive, got {self.budget_mb}")
        if self.mb_per_second <= 0:
            raise ValueError(
                f"mb_per_second must be positive, got {self.mb_per_second}"
            )
        if self.sniff_bytes < 4:
            raise ValueError(f"sniff_bytes must be at least 4, got {self.sniff_bytes}")


@dataclass
class ProbeConfig:
    """Metadata probing backend."""

    backend: Literal["pyav", "ffprobe"] = "pyav"

    # Timeout for the ffprobe subprocess
    timeout_seconds: int = 60

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_backends = {"pyav", "ffprobe"}
        if self.backend not in valid_backends:
            raise ValueError(
                f"backend must be one of {valid_backends}, got {self.backend}"
            )
        if self.timeout_seconds < 1:
            raise ValueError(
                f"timeout_seconds must be at least 1, got {self.timeout_seconds}"
            )


@dataclass
class ToolPathsConfig:
    """Paths to external tools (None = look up on PATH)."""

    ffprobe: Path | None = None


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class StvConfig:
    """Main configuration aggregating every section."""

    transcode: TranscodeConfig = field(default_factory=TranscodeConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    feasibility: FeasibilityConfig = field(default_factory=FeasibilityConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
