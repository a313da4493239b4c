"""Codec registry and codec-string helpers.

Single source of truth for the codec strings the pipeline writes into the
output container and for the AAC decoder configuration it synthesizes.
"""

from __future__ import annotations

from stv.domain.enums import CodecFamily

# =============================================================================
# Codec Alias Groups
# =============================================================================

VIDEO_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "hevc": frozenset({"hevc", "h265", "h.265", "x265", "hvc1", "hev1"}),
    "avc": frozenset({"h264", "h.264", "avc", "avc1", "x264"}),
}

# =============================================================================
# Output Codec Strings
# =============================================================================

# HEVC Main profile, main tier, level 4.1
HEVC_CODEC_STRING = "hvc1.1.4.L123.B0"

# H.264 High profile, level 4.2
AVC_CODEC_STRING = "avc1.64002A"

AAC_LC_CODEC_STRING = "mp4a.40.2"

CODEC_STRINGS: dict[CodecFamily, str] = {
    CodecFamily.HEVC: HEVC_CODEC_STRING,
    CodecFamily.AVC: AVC_CODEC_STRING,
}

# Sample entry four-character codes used in the MP4 stsd box
SAMPLE_ENTRY_TYPES: dict[CodecFamily, bytes] = {
    CodecFamily.HEVC: b"hvc1",
    CodecFamily.AVC: b"avc1",
}

# =============================================================================
# AAC
# =============================================================================

AAC_OBJECT_TYPE_LC = 2

# ISO/IEC 14496-3 sampling frequency index table
AAC_SAMPLING_FREQUENCIES: tuple[int, ...] = (
    96000,
    88200,
    64000,
    48000,
    44100,
    32000,
    24000,
    22050,
    16000,
    12000,
    11025,
    8000,
    7350,
)


def normalize_video_codec(codec: str | None) -> CodecFamily | None:
    """Map a codec name such as "h264" or "hvc1" to its family."""
    if not codec:
        return None
    name = codec.casefold()
    # Codec strings like "avc1.64002A" carry profile info after the first dot
    prefix = name.split(".")[0]
    for family, aliases in VIDEO_CODEC_ALIASES.items():
        if name in aliases or prefix in aliases:
            return CodecFamily(family)
    return None


def sampling_frequency_index(sample_rate: int) -> int:
    """Return the AAC sampling frequency index for a sample rate.

    Raises:
        ValueError: If the rate is not in the AAC table.
    """
    try:
        return AAC_SAMPLING_FREQUENCIES.index(sample_rate)
    except ValueError:
        raise ValueError(f"Unsupported AAC sample rate: {sample_rate}") from None


def build_audio_specific_config(
    sample_rate: int = 48000,
    channels: int = 2,
    object_type: int = AAC_OBJECT_TYPE_LC,
) -> bytes:
    """Pack the 2-byte AAC AudioSpecificConfig.

    Layout: 5 bits object type, 4 bits frequency index, 4 bits channel
    configuration, 3 zero bits. AAC-LC at 48 kHz stereo gives 0x11 0x90.
    """
    index = sampling_frequency_index(sample_rate)
    b0 = (object_type << 3) | (index >> 1)
    b1 = ((index & 1) << 7) | (channels << 3)
    return bytes([b0 & 0xFF, b1 & 0xFF])

