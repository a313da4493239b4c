"""Container input for the audio pipeline, backed by PyAV.

Tracks are enumerated from the demuxer's streams. Audio is decoded and
resampled to 48 kHz stereo float before it leaves this module, so the
pipeline only ever sees one PCM layout.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import av
import numpy as np
from av.audio.resampler import AudioResampler

from stv.domain.models import MediaFile
from stv.errors import DecodeSourceError
from stv.platform.interface import PcmChunk

logger = logging.getLogger(__name__)


def av_source(file: MediaFile) -> str | io.BytesIO:
    """Argument for av.open(): a filesystem path or an in-memory stream."""
    if file.path is not None:
        return str(file.path)
    assert file.data is not None
    return io.BytesIO(file.data)


@dataclass(frozen=True)
class PyAVTrack:
    """A demuxer stream seen as a track."""

    index: int
    kind: str
    codec_name: str
    decodable: bool

    def is_audio_track(self) -> bool:
        return self.kind == "audio" and self.decodable


class PyAVMediaInput:
    """Track enumeration and chunked PCM extraction for one input file.

    Audio streams whose codec this FFmpeg build cannot decode are listed but
    report is_audio_track() False, with a warning naming the codec.
    """

    def __init__(
        self, file: MediaFile, sample_rate: int = 48000, layout: str = "stereo"
    ) -> None:
        self._file = file
        self._sample_rate = sample_rate
        self._layout = layout
        self._container: Any = None

    def _open(self) -> Any:
        if self._container is None:
            try:
                self._container = av.open(av_source(self._file), mode="r")
            except (av.error.FFmpegError, OSError) as e:
                raise DecodeSourceError(f"Cannot open {self._file.name}: {e}") from e
        return self._container

    def get_tracks(self) -> list[PyAVTrack]:
        container = self._open()
        tracks = []
        for stream in container.streams:
            codec_name = stream.codec_context.name if stream.codec_context else "none"
            decodable = True
            if stream.type == "audio" and stream.codec_context is None:
                decodable = False
                logger.warning(
                    "Unsupported audio codec (%s) in track %d",
                    getattr(stream, "codec_tag", "") or "unknown",
                    stream.index,
                )
            tracks.append(
                PyAVTrack(
                    index=stream.index,
                    kind=stream.type,
                    codec_name=codec_name,
                    decodable=decodable,
                )
            )
        return tracks

    def iter_audio_chunks(
        self, track: PyAVTrack, start: float, end: float
    ) -> Iterator[PcmChunk]:
        """Decode ``track`` and yield resampled chunks within [start, end].

        Chunk timestamps are relative to the stream's first timestamp. Demux,
        decode and resample failures surface as DecodeSourceError.
        """
        container = self._open()
        try:
            yield from self._decode_track(container.streams[track.index], start, end)
        except av.error.FFmpegError as e:
            raise DecodeSourceError(
                f"Cannot decode audio track {track.index} of {self._file.name}: {e}"
            ) from e

    def _decode_track(
        self, stream: Any, start: float, end: float
    ) -> Iterator[PcmChunk]:
        offset = 0.0
        if stream.start_time is not None and stream.time_base is not None:
            offset = float(stream.start_time * stream.time_base)
        resampler = AudioResampler(
            format="fltp", layout=self._layout, rate=self._sample_rate
        )
        position = 0.0
        for frame in self._container.decode(stream):
            if frame.time is not None:
                position = frame.time - offset
            for samples in self._resample(resampler, frame):
                if position > end:
                    return
                if position + samples.shape[1] / self._sample_rate >= start:
                    yield PcmChunk(samples=samples, timestamp=position)
                position += samples.shape[1] / self._sample_rate
        for samples in self._resample(resampler, None):
            if position <= end:
                yield PcmChunk(samples=samples, timestamp=position)
            position += samples.shape[1] / self._sample_rate

    def _resample(self, resampler: AudioResampler, frame: Any) -> Iterator[np.ndarray]:
        for out in resampler.resample(frame):
            yield out.to_ndarray().astype(np.float32, copy=False)

    def close(self) -> None:
        if self._container is not None:
            self._container.close()
            self._container = None


def primary_video_stream(container: Any) -> Any:
    """First video stream that is not an attached picture, or None."""
    for stream in container.streams.video:
        if not stream.disposition & av.stream.Disposition.attached_pic:
            return stream
    return None
