"""Runtime capability detection for the PyAV backend."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import av

from stv.platform.encoders import all_encoder_names
from stv.platform.interface import EnvironmentCapabilities

logger = logging.getLogger(__name__)

AUDIO_ENCODER_NAME = "aac"


def detect_environment(
    available: Iterable[str] | None = None,
) -> EnvironmentCapabilities:
    """Report which of the pipeline's building blocks this FFmpeg build has.

    This only checks that encoders are compiled in. Whether a particular
    geometry opens is decided later by encoder negotiation.

    Args:
        available: Codec names to check against. Defaults to
            av.codecs_available; injectable for testing.

    Returns:
        EnvironmentCapabilities describing the runtime.
    """
    codecs = frozenset(av.codecs_available if available is None else available)
    video_encoders = tuple(sorted(all_encoder_names() & codecs))
    capabilities = EnvironmentCapabilities(
        video_encoders=video_encoders,
        audio_encoder=AUDIO_ENCODER_NAME in codecs,
        rasterizer=hasattr(av.VideoFrame, "reformat"),
    )
    logger.debug(
        "Detected environment",
        extra={
            "video_encoders": list(video_encoders),
            "audio_encoder": capabilities.audio_encoder,
            "supported": capabilities.supported,
        },
    )
    return capabilities
