"""Seekable decode cursor over a file's first video stream."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import av

from stv.domain.models import MediaFile
from stv.errors import DecodeSourceError
from stv.platform.container import av_source, primary_video_stream

logger = logging.getLogger(__name__)

# Forward targets closer than this are reached by decoding, not seeking
DEFAULT_SEEK_FORWARD_WINDOW = 2.0

# A frame counts as presented at t if it starts no later than t + this
PRESENTATION_TOLERANCE = 1e-3


class PyAVDecodeSource:
    """Decode cursor that presents the frame showing at a requested time.

    Seeking backwards, or further forward than ``seek_forward_window``,
    repositions the demuxer at the preceding key frame; nearer targets are
    reached by decoding forward. Times are relative to the stream start.

    Use as an async context manager, or call load() and aclose() directly.
    """

    def __init__(
        self,
        file: MediaFile,
        seek_forward_window: float = DEFAULT_SEEK_FORWARD_WINDOW,
    ) -> None:
        self._file = file
        self._seek_forward_window = seek_forward_window
        self._container: Any = None
        self._stream: Any = None
        self._frames: Any = None
        self._start = 0.0
        self._current: Any = None
        self._current_time: float | None = None
        self._pending: Any = None
        # Current frame starts after the last target; nothing earlier exists
        self._overshot = False
        self._ready = asyncio.Event()

    @property
    def current_frame(self) -> Any:
        return self._current

    async def load(self) -> None:
        await asyncio.to_thread(self._load)

    def _load(self) -> None:
        try:
            self._container = av.open(av_source(self._file), mode="r")
        except (av.error.FFmpegError, OSError) as e:
            raise DecodeSourceError(f"Cannot open {self._file.name}: {e}") from e
        self._stream = primary_video_stream(self._container)
        if self._stream is None:
            raise DecodeSourceError(f"{self._file.name} has no video stream")
        self._stream.thread_type = "AUTO"
        if self._stream.start_time is not None and self._stream.time_base:
            self._start = float(self._stream.start_time * self._stream.time_base)

    async def seek(self, position: float) -> None:
        if self._stream is None:
            raise DecodeSourceError("Decode source used before load()")
        self._ready.clear()
        await asyncio.to_thread(self._seek, position)
        if self._current is not None:
            self._ready.set()

    def _seek(self, position: float) -> None:
        if self._needs_demuxer_seek(position):
            target = int((position + self._start) / self._stream.time_base)
            logger.debug("Seeking demuxer to %.3fs", position)
            try:
                self._container.seek(
                    target, stream=self._stream, backward=True, any_frame=False
                )
            except av.error.FFmpegError as e:
                raise DecodeSourceError(f"Seek to {position:.3f}s failed: {e}") from e
            self._frames = None
            self._pending = None
            self._current = None
            self._current_time = None

        while True:
            frame = self._pending if self._pending is not None else self._next_frame()
            self._pending = None
            if frame is None:
                # End of stream: keep showing the last frame
                return
            frame_time = self._frame_time(frame)
            past_target = frame_time > position + PRESENTATION_TOLERANCE
            if self._current is not None and past_target:
                self._pending = frame
                return
            self._current = frame
            self._current_time = frame_time
            self._overshot = frame_time > position + PRESENTATION_TOLERANCE
            if self._overshot:
                return

    def _needs_demuxer_seek(self, position: float) -> bool:
        if self._current_time is None:
            return position > 0
        if position < self._current_time:
            return not self._overshot
        return position - self._current_time > self._seek_forward_window

    def _next_frame(self) -> Any:
        if self._frames is None:
            self._frames = self._container.decode(self._stream)
        try:
            return next(self._frames)
        except StopIteration:
            return None
        except av.error.FFmpegError as e:
            raise DecodeSourceError(f"Decoding failed: {e}") from e

    def _frame_time(self, frame: Any) -> float:
        if frame.time is None:
            return self._current_time or 0.0
        return frame.time - self._start

    async def wait_frame_ready(self, budget: float) -> bool:
        try:
            await asyncio.wait_for(self._ready.wait(), budget)
        except TimeoutError:
            return False
        return True

    async def aclose(self) -> None:
        if self._container is not None:
            self._container.close()
            self._container = None
            self._stream = None
            self._frames = None

    async def __aenter__(self) -> PyAVDecodeSource:
        try:
            await self.load()
        except BaseException:
            await self.aclose()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
