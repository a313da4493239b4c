"""Domain enums for straight-to-video.

This module contains enums shared by the feasibility gate, the encoder
negotiation and the muxer.
"""

from enum import Enum


class FeasibilityReason(Enum):
    """Outcome of the feasibility gate.

    Checks run in declaration order and stop at the first failure, so a
    reason also tells which checks already passed.
    """

    NOT_A_FILE = "not-a-file"
    UNSUPPORTED_ENVIRONMENT = "unsupported-environment"
    PROBE_FAILED = "probe-failed"
    UNSUPPORTED_VIDEO_CONFIG = "unsupported-video-config"
    UNKNOWN_CONTAINER = "unknown-container"
    TOO_LONG = "too-long"
    OK = "ok"


class CodecFamily(Enum):
    """Video codec families the pipeline can emit."""

    HEVC = "hevc"  # Preferred
    AVC = "avc"  # Fallback


class PacketType(Enum):
    """Encoded video packet type."""

    KEY = "key"
    DELTA = "delta"


class HardwarePreference(Enum):
    """Encoder placement hint passed to the capability collaborator."""

    PREFER_HARDWARE = "prefer-hardware"
    PREFER_SOFTWARE = "prefer-software"
    NO_PREFERENCE = "no-preference"
