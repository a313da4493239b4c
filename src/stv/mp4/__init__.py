"""Minimal ISO-BMFF (MP4) writer for fast-start output files."""

from stv.mp4.writer import (
    AudioDecoderConfig,
    AudioTrack,
    Mp4Writer,
    VideoDecoderConfig,
    VideoTrack,
)

__all__ = [
    "AudioDecoderConfig",
    "AudioTrack",
    "Mp4Writer",
    "VideoDecoderConfig",
    "VideoTrack",
]
