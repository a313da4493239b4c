"""Container signature sniffing.

Used when an input arrives without a declared MIME type. Only the two
families the decoder is expected to handle are recognised.
"""

from __future__ import annotations

SNIFF_BYTES = 4096

# ISO-BMFF (MP4/MOV/3GP) files carry an ftyp box, usually at offset 4
FTYP_SIGNATURE = b"ftyp"

# Matroska/WebM EBML header
EBML_MAGIC = b"\x1a\x45\xdf\xa3"

CONTAINER_ISO_BMFF = "iso-bmff"
CONTAINER_MATROSKA = "matroska"


def sniff_container(head: bytes) -> str | None:
    """Identify the container family from the leading bytes of a file.

    Args:
        head: The first bytes of the file (normally 4096).

    Returns:
        "iso-bmff", "matroska", or None when neither signature is present.
    """
    if FTYP_SIGNATURE in head:
        return CONTAINER_ISO_BMFF
    if head[:4] == EBML_MAGIC:
        return CONTAINER_MATROSKA
    return None


def is_known_container(head: bytes) -> bool:
    return sniff_container(head) is not None
