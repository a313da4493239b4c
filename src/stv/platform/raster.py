"""Scales decoded frames to the target geometry and encoder pixel format."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import av

from stv.errors import DecodeSourceError


class PyAVRasterizer:
    """Fixed-size drawing surface backed by swscale.

    The surface yielded by surface() is only valid inside the ``with`` block;
    the reference is dropped on exit whether or not encoding succeeded.
    """

    def __init__(self, width: int, height: int, pix_fmt: str = "yuv420p") -> None:
        self.width = width
        self.height = height
        self.pix_fmt = pix_fmt
        self._live: Any = None

    @contextmanager
    def surface(self, frame: Any) -> Iterator[Any]:
        if frame is None:
            raise DecodeSourceError("No decoded frame to draw")
        try:
            self._live = frame.reformat(
                width=self.width, height=self.height, format=self.pix_fmt
            )
        except (av.error.FFmpegError, ValueError) as e:
            raise DecodeSourceError(
                f"Cannot scale frame to {self.width}x{self.height} {self.pix_fmt}: {e}"
            ) from e
        try:
            yield self._live
        finally:
            self._live = None
