"""Core utilities package.

Pure helpers shared across the pipeline: target planning, container
sniffing, codec strings and bitstream conversion.
"""

from stv.core.codecs import (
    AAC_LC_CODEC_STRING,
    AVC_CODEC_STRING,
    CODEC_STRINGS,
    HEVC_CODEC_STRING,
    build_audio_specific_config,
    normalize_video_codec,
)
from stv.core.geometry import (
    MAX_LONG_SIDE,
    clamp_time,
    compute_target_plan,
    frame_ready_budget,
    round_half_up,
)
from stv.core.sniff import SNIFF_BYTES, is_known_container, sniff_container

__all__ = [
    # Codecs
    "AAC_LC_CODEC_STRING",
    "AVC_CODEC_STRING",
    "CODEC_STRINGS",
    "HEVC_CODEC_STRING",
    "build_audio_specific_config",
    "normalize_video_codec",
    # Geometry
    "MAX_LONG_SIDE",
    "clamp_time",
    "compute_target_plan",
    "frame_ready_budget",
    "round_half_up",
    # Sniffing
    "SNIFF_BYTES",
    "is_known_container",
    "sniff_container",
]
