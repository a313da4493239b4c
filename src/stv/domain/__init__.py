"""Domain models and enums for straight-to-video.

Usage:
    from stv.domain import MediaFile, FeasibilityResult, FeasibilityReason
"""

from .enums import CodecFamily, FeasibilityReason, HardwarePreference, PacketType
from .models import (
    OUTPUT_MIME_TYPE,
    AudioRenderResult,
    EncodedVideoPacket,
    EncoderSelection,
    FeasibilityResult,
    FrameTask,
    MediaDescriptor,
    MediaFile,
    TargetPlan,
    TranscodeResult,
    VideoEncoderConfig,
    optimized_filename,
)

__all__ = [
    # Models
    "AudioRenderResult",
    "EncodedVideoPacket",
    "EncoderSelection",
    "FeasibilityResult",
    "FrameTask",
    "MediaDescriptor",
    "MediaFile",
    "TargetPlan",
    "TranscodeResult",
    "VideoEncoderConfig",
    "OUTPUT_MIME_TYPE",
    "optimized_filename",
    # Enums
    "CodecFamily",
    "FeasibilityReason",
    "HardwarePreference",
    "PacketType",
]
