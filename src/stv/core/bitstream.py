"""H.264/HEVC bitstream helpers.

Encoders hand back either Annex B streams (start-code delimited NAL units)
or length-prefixed streams with an avcC/hvcC configuration record. MP4
sample data must be length-prefixed, and the sample entry needs a
configuration record, so this module converts between the two.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from stv.domain.enums import CodecFamily

logger = logging.getLogger(__name__)

NAL_LENGTH_SIZE = 4

# H.264 NAL unit types
AVC_NAL_IDR = 5
AVC_NAL_SPS = 7
AVC_NAL_PPS = 8

# HEVC NAL unit types
HEVC_NAL_VPS = 32
HEVC_NAL_SPS = 33
HEVC_NAL_PPS = 34

# Profiles that carry chroma format and bit depth in avcC
_AVC_HIGH_PROFILES = frozenset({100, 110, 122, 144})

_START_CODE = re.compile(b"\x00\x00\x01")
_EMULATION_PREVENTION = re.compile(b"\x00\x00\x03")


def is_annexb(data: bytes) -> bool:
    """True if ``data`` starts with a 3- or 4-byte start code."""
    return data.startswith(b"\x00\x00\x01") or data.startswith(b"\x00\x00\x00\x01")


def split_annexb(data: bytes) -> list[bytes]:
    """Split an Annex B byte stream into NAL units without start codes."""
    nals = []
    for part in _START_CODE.split(data):
        # A 4-byte start code leaves its leading zero on the previous unit
        part = part.rstrip(b"\x00")
        if part:
            nals.append(part)
    return nals


def annexb_to_length_prefixed(data: bytes) -> bytes:
    """Rewrite an Annex B access unit with 4-byte NAL length prefixes."""
    return b"".join(
        len(nal).to_bytes(NAL_LENGTH_SIZE, "big") + nal for nal in split_annexb(data)
    )


def strip_emulation_prevention(nal: bytes) -> bytes:
    """Remove emulation prevention bytes (00 00 03 -> 00 00)."""
    return _EMULATION_PREVENTION.sub(b"\x00\x00", nal)


def nal_type(nal: bytes, family: CodecFamily) -> int:
    if family is CodecFamily.HEVC:
        return (nal[0] >> 1) & 0x3F
    return nal[0] & 0x1F


def build_avcc(nals: list[bytes]) -> bytes:
    """Build an AVCDecoderConfigurationRecord from SPS and PPS units.

    Raises:
        ValueError: If no SPS or PPS is present.
    """
    sps_list = [n for n in nals if n and n[0] & 0x1F == AVC_NAL_SPS]
    pps_list = [n for n in nals if n and n[0] & 0x1F == AVC_NAL_PPS]
    if not sps_list or not pps_list:
        raise ValueError("avcC needs at least one SPS and one PPS")

    sps = sps_list[0]
    profile = sps[1]
    record = bytearray(
        [
            1,  # configurationVersion
            profile,
            sps[2],  # profile_compatibility
            sps[3],  # level
            0xFC | (NAL_LENGTH_SIZE - 1),
            0xE0 | len(sps_list),
        ]
    )
    for unit in sps_list:
        record += len(unit).to_bytes(2, "big") + unit
    record.append(len(pps_list))
    for unit in pps_list:
        record += len(unit).to_bytes(2, "big") + unit
    if profile in _AVC_HIGH_PROFILES:
        # 4:2:0, 8-bit luma and chroma, no SPS extensions
        record += bytes([0xFC | 1, 0xF8, 0xF8, 0])
    return bytes(record)


def build_hvcc(nals: list[bytes]) -> bytes:
    """Build an HEVCDecoderConfigurationRecord from VPS, SPS and PPS units.

    The profile/tier/level fields are copied from the SPS, whose RBSP starts
    with one byte of ids followed by the 12-byte general PTL block.

    Raises:
        ValueError: If the VPS, SPS or PPS is missing or the SPS is truncated.
    """
    arrays: dict[int, list[bytes]] = {
        HEVC_NAL_VPS: [],
        HEVC_NAL_SPS: [],
        HEVC_NAL_PPS: [],
    }
    for nal in nals:
        if len(nal) < 2:
            continue
        kind = (nal[0] >> 1) & 0x3F
        if kind in arrays:
            arrays[kind].append(nal)
    if not all(arrays.values()):
        raise ValueError("hvcC needs VPS, SPS and PPS units")

    rbsp = strip_emulation_prevention(arrays[HEVC_NAL_SPS][0][2:])
    if len(rbsp) < 13:
        raise ValueError("SPS too short for profile_tier_level")

    max_sub_layers = ((rbsp[0] >> 1) & 0x07) + 1
    temporal_id_nested = rbsp[0] & 0x01
    record = bytearray([1])  # configurationVersion
    record += rbsp[1:13]  # profile space/tier/idc, compat flags, constraints, level
    record += bytes(
        [
            0xF0,
            0x00,  # min_spatial_segmentation_idc
            0xFC,  # parallelismType
            0xFC | 1,  # chromaFormat 4:2:0
            0xF8,  # bitDepthLumaMinus8
            0xF8,  # bitDepthChromaMinus8
            0x00,
            0x00,  # avgFrameRate
            (max_sub_layers << 3) | (temporal_id_nested << 2) | (NAL_LENGTH_SIZE - 1),
            len(arrays),
        ]
    )
    for kind, units in arrays.items():
        record.append(0x80 | kind)  # array_completeness
        record += len(units).to_bytes(2, "big")
        for unit in units:
            record += len(unit).to_bytes(2, "big") + unit
    return bytes(record)


def extract_parameter_sets(data: bytes, family: CodecFamily) -> list[bytes]:
    """Return the parameter set NAL units found in an Annex B access unit."""
    wanted = (
        {HEVC_NAL_VPS, HEVC_NAL_SPS, HEVC_NAL_PPS}
        if family is CodecFamily.HEVC
        else {AVC_NAL_SPS, AVC_NAL_PPS}
    )
    return [nal for nal in split_annexb(data) if nal_type(nal, family) in wanted]


@dataclass(frozen=True)
class DecoderDescription:
    """A configuration record plus the sample layout it implies.

    ``annexb_samples`` is True when the encoder delivered its description as
    Annex B, which means its samples are start-code delimited too and must
    be converted before muxing.
    """

    record: bytes
    annexb_samples: bool


def normalize_description(raw: bytes, family: CodecFamily) -> DecoderDescription:
    """Turn encoder extradata into an avcC/hvcC record.

    A description whose first byte is 1 is already a configuration record
    and is used as-is.

    Raises:
        ValueError: If the data is neither a record nor Annex B parameter sets.
    """
    if raw and raw[0] == 1:
        return DecoderDescription(record=raw, annexb_samples=False)
    if not is_annexb(raw):
        raise ValueError("Unrecognized decoder description format")
    nals = split_annexb(raw)
    record = build_hvcc(nals) if family is CodecFamily.HEVC else build_avcc(nals)
    logger.debug(
        "Built %s record from Annex B parameter sets",
        "hvcC" if family is CodecFamily.HEVC else "avcC",
        extra={"nal_count": len(nals), "record_size": len(record)},
    )
    return DecoderDescription(record=record, annexb_samples=True)
