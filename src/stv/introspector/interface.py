"""MediaProber interface for video metadata extraction."""

from __future__ import annotations

import asyncio
from typing import Protocol

from stv.domain.models import MediaDescriptor, MediaFile


class MediaProber(Protocol):
    """Protocol for metadata probe implementations.

    A probe reads coded width, height and duration without decoding the
    whole file. Implementations must release any handle they open, so a
    probe can be repeated on the same file.
    """

    def probe(self, file: MediaFile) -> MediaDescriptor:
        """Extract the descriptor for ``file``.

        Raises:
            MediaProbeError: If the container cannot be opened, has no
                video stream, or reports no usable dimensions or duration.
        """
        ...


async def probe_media(prober: MediaProber, file: MediaFile) -> MediaDescriptor:
    """Run a blocking probe off the event loop."""
    return await asyncio.to_thread(prober.probe, file)
