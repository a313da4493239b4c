"""ISO-BMFF box serialization primitives.

Boxes are built bottom-up as bytes. Sizes are computed from the payload so
callers never patch lengths after the fact.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable

# Unity transformation matrix (16.16 / 2.30 fixed point)
UNITY_MATRIX = struct.pack(
    ">9I", 0x00010000, 0, 0, 0, 0x00010000, 0, 0, 0, 0x40000000
)

# "und" packed as three 5-bit letters offset by 0x60
LANGUAGE_UNDETERMINED = ((ord("u") - 0x60) << 10) | ((ord("n") - 0x60) << 5) | (
    ord("d") - 0x60
)

_MAX_U32 = 0xFFFFFFFF


def box(box_type: bytes, *payloads: bytes) -> bytes:
    """Serialize a plain box from its type and payload parts."""
    if len(box_type) != 4:
        raise ValueError(f"Box type must be 4 bytes: {box_type!r}")
    body = b"".join(payloads)
    size = 8 + len(body)
    if size > _MAX_U32:
        return struct.pack(">I4sQ", 1, box_type, size + 8) + body
    return struct.pack(">I4s", size, box_type) + body


def full_box(box_type: bytes, version: int, flags: int, *payloads: bytes) -> bytes:
    """Serialize a full box (version byte + 24-bit flags before the payload)."""
    header = struct.pack(">I", ((version & 0xFF) << 24) | (flags & 0xFFFFFF))
    return box(box_type, header, *payloads)


def container(box_type: bytes, children: Iterable[bytes]) -> bytes:
    return box(box_type, *children)


def mdat_header(payload_size: int) -> bytes:
    """Header for an mdat box, using a 64-bit largesize when needed."""
    if payload_size + 8 > _MAX_U32:
        return struct.pack(">I4sQ", 1, b"mdat", payload_size + 16)
    return struct.pack(">I4s", payload_size + 8, b"mdat")


def mdat_header_size(payload_size: int) -> int:
    return 16 if payload_size + 8 > _MAX_U32 else 8


def descriptor(tag: int, *payloads: bytes) -> bytes:
    """Serialize an MPEG-4 descriptor with a 4-byte expandable length."""
    body = b"".join(payloads)
    size = len(body)
    length = bytes(
        [
            0x80 | ((size >> 21) & 0x7F),
            0x80 | ((size >> 14) & 0x7F),
            0x80 | ((size >> 7) & 0x7F),
            size & 0x7F,
        ]
    )
    return bytes([tag]) + length + body


def ftyp(major: bytes, minor_version: int, compatible: Iterable[bytes]) -> bytes:
    return box(b"ftyp", major, struct.pack(">I", minor_version), *compatible)


def mvhd(timescale: int, duration: int, next_track_id: int) -> bytes:
    return full_box(
        b"mvhd",
        0,
        0,
        struct.pack(">IIII", 0, 0, timescale, min(duration, _MAX_U32)),
        struct.pack(">IH", 0x00010000, 0x0100),  # rate 1.0, volume 1.0
        bytes(10),
        UNITY_MATRIX,
        bytes(24),  # pre_defined
        struct.pack(">I", next_track_id),
    )


def tkhd(
    track_id: int, duration: int, width: int, height: int, is_audio: bool
) -> bytes:
    return full_box(
        b"tkhd",
        0,
        0x000003,  # enabled, in movie
        struct.pack(">IIII", 0, 0, track_id, 0),
        struct.pack(">I", min(duration, _MAX_U32)),
        bytes(8),
        struct.pack(">hhhH", 0, 0, 0x0100 if is_audio else 0, 0),
        UNITY_MATRIX,
        struct.pack(">II", width << 16, height << 16),
    )


def elst(segment_duration: int, media_time: int) -> bytes:
    return box(
        b"edts",
        full_box(
            b"elst",
            0,
            0,
            struct.pack(">IIihh", 1, min(segment_duration, _MAX_U32), media_time, 1, 0),
        ),
    )


def mdhd(timescale: int, duration: int) -> bytes:
    return full_box(
        b"mdhd",
        0,
        0,
        struct.pack(
            ">IIIIHH",
            0,
            0,
            timescale,
            min(duration, _MAX_U32),
            LANGUAGE_UNDETERMINED,
            0,
        ),
    )


def hdlr(handler_type: bytes, name: str) -> bytes:
    return full_box(
        b"hdlr",
        0,
        0,
        struct.pack(">I", 0),
        handler_type,
        bytes(12),
        name.encode("utf-8") + b"\x00",
    )


def vmhd() -> bytes:
    return full_box(b"vmhd", 0, 1, bytes(8))


def smhd() -> bytes:
    return full_box(b"smhd", 0, 0, bytes(4))


def dinf() -> bytes:
    url = full_box(b"url ", 0, 1)  # media is in this file
    return box(b"dinf", full_box(b"dref", 0, 0, struct.pack(">I", 1), url))


def visual_sample_entry(
    entry_type: bytes, width: int, height: int, config_box: bytes
) -> bytes:
    compressor = bytes(32)
    return box(
        entry_type,
        bytes(6),
        struct.pack(">H", 1),  # data_reference_index
        bytes(16),
        struct.pack(">HH", width, height),
        struct.pack(">II", 0x00480000, 0x00480000),  # 72 dpi
        struct.pack(">I", 0),
        struct.pack(">H", 1),  # frame_count
        compressor,
        struct.pack(">Hh", 0x0018, -1),
        config_box,
    )


def audio_sample_entry(channels: int, sample_rate: int, esds_box: bytes) -> bytes:
    return box(
        b"mp4a",
        bytes(6),
        struct.pack(">H", 1),
        bytes(8),
        struct.pack(">HHHH", channels, 16, 0, 0),
        struct.pack(">I", sample_rate << 16),
        esds_box,
    )


def esds(
    track_id: int,
    audio_specific_config: bytes,
    avg_bitrate: int,
    max_bitrate: int,
    buffer_size: int,
) -> bytes:
    decoder_config = descriptor(
        0x04,
        bytes([0x40, (0x05 << 2) | 0x01]),  # MPEG-4 audio, audio stream
        buffer_size.to_bytes(3, "big"),
        struct.pack(">II", max_bitrate, avg_bitrate),
        descriptor(0x05, audio_specific_config),
    )
    es = descriptor(
        0x03,
        struct.pack(">HB", track_id, 0),
        decoder_config,
        descriptor(0x06, b"\x02"),
    )
    return full_box(b"esds", 0, 0, es)


def stsd(entry: bytes) -> bytes:
    return full_box(b"stsd", 0, 0, struct.pack(">I", 1), entry)


def stts(runs: list[tuple[int, int]]) -> bytes:
    body = b"".join(struct.pack(">II", count, delta) for count, delta in runs)
    return full_box(b"stts", 0, 0, struct.pack(">I", len(runs)), body)


def stss(sync_samples: list[int]) -> bytes:
    body = b"".join(struct.pack(">I", n) for n in sync_samples)
    return full_box(b"stss", 0, 0, struct.pack(">I", len(sync_samples)), body)


def stsc(entries: list[tuple[int, int]]) -> bytes:
    body = b"".join(struct.pack(">III", first, count, 1) for first, count in entries)
    return full_box(b"stsc", 0, 0, struct.pack(">I", len(entries)), body)


def stsz(sizes: list[int]) -> bytes:
    body = b"".join(struct.pack(">I", s) for s in sizes)
    return full_box(b"stsz", 0, 0, struct.pack(">II", 0, len(sizes)), body)


def chunk_offsets(offsets: list[int], wide: bool) -> bytes:
    """stco, or co64 when any offset needs 64 bits."""
    if wide:
        body = b"".join(struct.pack(">Q", o) for o in offsets)
        return full_box(b"co64", 0, 0, struct.pack(">I", len(offsets)), body)
    body = b"".join(struct.pack(">I", o) for o in offsets)
    return full_box(b"stco", 0, 0, struct.pack(">I", len(offsets)), body)
