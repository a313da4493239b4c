"""Pure parsing functions for probe output.

These functions turn raw probe values into MediaDescriptors. They do no
I/O, so every edge case can be tested with literal data.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from stv.domain.models import MediaDescriptor
from stv.errors import MediaProbeError

logger = logging.getLogger(__name__)


def parse_duration(value: Any) -> float | None:
    """Parse a duration in seconds; None for missing, non-finite or <= 0."""
    if value is None or value == "N/A":
        return None
    try:
        duration = float(value)
    except (TypeError, ValueError):
        logger.warning("Unparseable duration: %r", value)
        return None
    if not math.isfinite(duration) or duration <= 0:
        return None
    return duration


def validate_dimensions(width: Any, height: Any, name: str) -> tuple[int, int]:
    """Return (width, height) as positive ints or raise MediaProbeError."""
    if not isinstance(width, int) or not isinstance(height, int):
        raise MediaProbeError(f"No coded dimensions for {name}")
    if width <= 0 or height <= 0:
        raise MediaProbeError(f"Invalid dimensions {width}x{height} for {name}")
    return width, height


def build_descriptor(
    name: str,
    width: Any,
    height: Any,
    *durations: Any,
) -> MediaDescriptor:
    """Build a descriptor from raw values, taking the first usable duration.

    Args:
        name: File name for error messages.
        width: Coded width as reported by the probe.
        height: Coded height as reported by the probe.
        *durations: Candidate durations in preference order (container
            first, then stream).

    Raises:
        MediaProbeError: If the dimensions are invalid or no duration is usable.
    """
    w, h = validate_dimensions(width, height, name)
    for candidate in durations:
        duration = parse_duration(candidate)
        if duration is not None:
            return MediaDescriptor(width=w, height=h, duration=duration)
    raise MediaProbeError(f"No usable duration for {name}")


def parse_ffprobe_output(name: str, data: dict[str, Any]) -> MediaDescriptor:
    """Parse ``ffprobe -show_streams -show_format`` JSON output.

    The first stream with codec_type "video" is used; attached pictures
    (cover art) are skipped.

    Raises:
        MediaProbeError: If there is no video stream or the values are unusable.
    """
    streams = data.get("streams")
    if not isinstance(streams, list):
        raise MediaProbeError(f"Missing 'streams' in ffprobe output for {name}")

    for stream in streams:
        if stream.get("codec_type") != "video":
            continue
        if stream.get("disposition", {}).get("attached_pic"):
            continue
        return build_descriptor(
            name,
            stream.get("width"),
            stream.get("height"),
            data.get("format", {}).get("duration"),
            stream.get("duration"),
        )
    raise MediaProbeError(f"No video stream in {name}")
