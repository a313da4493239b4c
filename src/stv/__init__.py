"""straight-to-video: client-side video re-encoding before upload.

Usage:
    from stv import MediaFile, can_optimize_video, optimize_video

    file = MediaFile.from_path("clip.mov")
    result = await optimize_video(file, on_progress=print)
    if result.changed:
        Path(result.file.name).write_bytes(result.file.data)
"""

from stv.domain.enums import FeasibilityReason
from stv.domain.models import FeasibilityResult, MediaFile, TranscodeResult
from stv.errors import (
    DecodeSourceError,
    EncoderError,
    MediaProbeError,
    MuxerError,
    StvError,
    UnsupportedVideoConfigError,
)
from stv.pipeline.orchestrator import can_optimize_video, optimize_video

__version__ = "0.3.0"

__all__ = [
    "__version__",
    "can_optimize_video",
    "optimize_video",
    "FeasibilityReason",
    "FeasibilityResult",
    "MediaFile",
    "TranscodeResult",
    "StvError",
    "MediaProbeError",
    "UnsupportedVideoConfigError",
    "DecodeSourceError",
    "EncoderError",
    "MuxerError",
]
