"""Exception types raised by the transcode pipeline.

Feasibility evaluation never raises these to its caller; it converts every
failure into a FeasibilityResult reason. Once a transcode has started, they
propagate to the caller unchanged.
"""

from __future__ import annotations


class StvError(Exception):
    """Base class for all straight-to-video errors."""


class MediaProbeError(StvError):
    """Raised when media metadata cannot be read."""


class UnsupportedVideoConfigError(StvError):
    """Raised when no encoder supports the requested geometry and frame rate."""

    def __init__(self, message: str, width: int = 0, height: int = 0, fps: int = 0):
        super().__init__(message)
        self.width = width
        self.height = height
        self.fps = fps


class DecodeSourceError(StvError):
    """Raised when the decode source cannot load or seek the input."""


class EncoderError(StvError):
    """Raised when an encoder fails to configure, encode, or flush."""


class MuxerError(StvError):
    """Raised when the output container cannot be assembled."""
