"""PyAV-based implementation of the MediaProber protocol."""

from __future__ import annotations

import logging

import av

from stv.domain.models import MediaDescriptor, MediaFile
from stv.errors import MediaProbeError
from stv.introspector.parsers import build_descriptor
from stv.platform.container import av_source, primary_video_stream

logger = logging.getLogger(__name__)


class PyAVProber:
    """Reads metadata by opening the container in-process.

    Works for both path-backed and in-memory files. Only the headers are
    read; no frames are decoded.
    """

    def probe(self, file: MediaFile) -> MediaDescriptor:
        try:
            container = av.open(av_source(file), mode="r")
        except (av.error.FFmpegError, OSError) as e:
            raise MediaProbeError(f"Cannot open {file.name}: {e}") from e

        try:
            stream = primary_video_stream(container)
            if stream is None:
                raise MediaProbeError(f"No video stream in {file.name}")

            container_duration = None
            if container.duration is not None:
                container_duration = container.duration / av.time_base
            stream_duration = None
            if stream.duration is not None and stream.time_base is not None:
                stream_duration = float(stream.duration * stream.time_base)

            descriptor = build_descriptor(
                file.name,
                stream.codec_context.width,
                stream.codec_context.height,
                container_duration,
                stream_duration,
            )
        finally:
            container.close()

        logger.debug(
            "Probed %s: %dx%d, %.3fs",
            file.name,
            descriptor.width,
            descriptor.height,
            descriptor.duration,
        )
        return descriptor

