"""In-memory MP4 writer with a front-loaded index.

The writer buffers every sample, then lays out ``ftyp``, ``moov`` and
``mdat`` in one pass at finalize time. Because the index sits in front of
the media data, the chunk offsets depend on the size of ``moov`` itself;
the size is fixed by the table lengths, so it is computed once with
placeholder offsets and then rebuilt with the real ones.

Example:
    writer = Mp4Writer()
    video = writer.add_video_track(CodecFamily.AVC, frame_rate=30)
    audio = writer.add_audio_track(sample_rate=48000, channels=2, bitrate=96000)
    writer.start()
    video.add_sample(data, timestamp=0, duration=Fraction(1, 30), is_sync=True,
                     decoder_config=VideoDecoderConfig(...))
    payload = writer.finalize()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fractions import Fraction

from stv.core.bitstream import annexb_to_length_prefixed, normalize_description
from stv.core.codecs import SAMPLE_ENTRY_TYPES
from stv.domain.enums import CodecFamily
from stv.errors import MuxerError
from stv.mp4 import boxes

logger = logging.getLogger(__name__)

MOVIE_TIMESCALE = 1000
CHUNK_SECONDS = 1
_MAX_U32 = 0xFFFFFFFF


@dataclass(frozen=True)
class VideoDecoderConfig:
    """Decoder configuration attached to a video sample."""

    codec: str
    coded_width: int
    coded_height: int
    description: bytes | None = None


@dataclass(frozen=True)
class AudioDecoderConfig:
    """Decoder configuration attached to an audio sample."""

    codec: str
    channels: int
    sample_rate: int
    description: bytes


@dataclass
class _Sample:
    data: bytes
    decode_time: int
    duration: int
    is_sync: bool


@dataclass
class _Chunk:
    track: Track
    bucket: int
    samples: list[_Sample] = field(default_factory=list)
    offset: int = 0

    @property
    def size(self) -> int:
        return sum(len(s.data) for s in self.samples)


class Track:
    """Common sample bookkeeping for one track."""

    handler_type = b""
    handler_name = ""

    def __init__(self, writer: Mp4Writer, track_id: int, timescale: int) -> None:
        self._writer = writer
        self.track_id = track_id
        self.timescale = timescale
        self.samples: list[_Sample] = []
        self._next_decode_time: int | None = None

    @property
    def media_duration(self) -> int:
        """Total sample duration in media timescale ticks."""
        return sum(s.duration for s in self.samples)

    @property
    def presentation_start(self) -> int:
        """Ticks at the start of the track that an edit list hides."""
        return 0

    def _to_ticks(self, seconds: Fraction | float) -> int:
        return round(Fraction(seconds) * self.timescale)

    def _append(
        self, data: bytes, decode_time: int, duration: int, is_sync: bool
    ) -> None:
        self._writer._require_started()
        if duration <= 0:
            raise MuxerError(f"Track {self.track_id}: sample duration must be positive")
        if self._next_decode_time is not None and decode_time < self._next_decode_time:
            raise MuxerError(
                f"Track {self.track_id}: timestamps must increase "
                f"({decode_time} < {self._next_decode_time})"
            )
        if self._next_decode_time is not None and decode_time > self._next_decode_time:
            # Gaps are absorbed into the previous sample so stts stays contiguous
            self.samples[-1].duration += decode_time - self._next_decode_time
        self.samples.append(_Sample(data, decode_time, duration, is_sync))
        self._next_decode_time = decode_time + duration

    def sample_entry(self) -> bytes:
        raise NotImplementedError

    def media_header_box(self) -> bytes:
        raise NotImplementedError

    def dimensions(self) -> tuple[int, int]:
        return 0, 0

    @property
    def is_audio(self) -> bool:
        return False


class VideoTrack(Track):
    """H.264 or HEVC track with one sample per frame."""

    handler_type = b"vide"
    handler_name = "VideoHandler"

    def __init__(
        self, writer: Mp4Writer, track_id: int, codec: CodecFamily, frame_rate: int
    ) -> None:
        super().__init__(writer, track_id, timescale=max(1, frame_rate) * 1000)
        self.codec = codec
        self.frame_rate = frame_rate
        self.width = 0
        self.height = 0
        self._record: bytes | None = None
        self._annexb_samples = False

    def add_sample(
        self,
        data: bytes,
        *,
        timestamp: Fraction | float,
        duration: Fraction | float,
        is_sync: bool,
        decoder_config: VideoDecoderConfig | None = None,
    ) -> None:
        """Append one encoded frame.

        The first decoder config that carries a description fixes the
        sample entry; configs passed with later samples are ignored.

        Raises:
            MuxerError: If no description has been seen yet or timestamps
                go backwards.
        """
        if decoder_config is not None and self._record is None:
            self.width = decoder_config.coded_width
            self.height = decoder_config.coded_height
            if decoder_config.description:
                try:
                    description = normalize_description(
                        decoder_config.description, self.codec
                    )
                except ValueError as e:
                    raise MuxerError(f"Invalid video decoder description: {e}") from e
                self._record = description.record
                self._annexb_samples = description.annexb_samples
        if self._record is None:
            raise MuxerError("Video sample added before a decoder description")

        payload = annexb_to_length_prefixed(data) if self._annexb_samples else data
        self._append(
            payload, self._to_ticks(timestamp), self._to_ticks(duration), is_sync
        )

    def sample_entry(self) -> bytes:
        assert self._record is not None
        config_type = b"hvcC" if self.codec is CodecFamily.HEVC else b"avcC"
        return boxes.visual_sample_entry(
            SAMPLE_ENTRY_TYPES[self.codec],
            self.width,
            self.height,
            boxes.box(config_type, self._record),
        )

    def media_header_box(self) -> bytes:
        return boxes.vmhd()

    def dimensions(self) -> tuple[int, int]:
        return self.width, self.height


class AudioTrack(Track):
    """AAC track. Timestamps are in samples at the track's sample rate."""

    handler_type = b"soun"
    handler_name = "SoundHandler"

    def __init__(
        self,
        writer: Mp4Writer,
        track_id: int,
        sample_rate: int,
        channels: int,
        bitrate: int,
    ) -> None:
        super().__init__(writer, track_id, timescale=sample_rate)
        self.sample_rate = sample_rate
        self.channels = channels
        self.bitrate = bitrate
        self.decoder_config: AudioDecoderConfig | None = None
        self._first_pts: int | None = None

    @property
    def is_audio(self) -> bool:
        return True

    @property
    def presentation_start(self) -> int:
        return max(0, -(self._first_pts or 0))

    def add_sample(
        self,
        data: bytes,
        *,
        pts: int,
        duration: int,
        decoder_config: AudioDecoderConfig | None = None,
    ) -> None:
        """Append one AAC access unit.

        ``pts`` may be negative for the encoder's priming frames; the
        track is shifted so decoding starts at zero and an edit list skips
        the priming samples on playback.
        """
        if decoder_config is not None and self.decoder_config is None:
            self.decoder_config = decoder_config
        if self.decoder_config is None:
            raise MuxerError("Audio sample added before a decoder config")
        if self._first_pts is None:
            self._first_pts = pts
        self._append(data, pts - min(0, self._first_pts), duration, True)

    def sample_entry(self) -> bytes:
        assert self.decoder_config is not None
        sizes = [len(s.data) for s in self.samples] or [0]
        return boxes.audio_sample_entry(
            self.channels,
            self.sample_rate,
            boxes.esds(
                self.track_id,
                self.decoder_config.description,
                avg_bitrate=self.bitrate,
                max_bitrate=self.bitrate,
                buffer_size=max(sizes),
            ),
        )

    def media_header_box(self) -> bytes:
        return boxes.smhd()


class Mp4Writer:
    """Collects samples for a fixed set of tracks and emits an MP4 file.

    Tracks must be registered before start(); samples only after it.
    """

    def __init__(self, fast_start: bool = True) -> None:
        self.fast_start = fast_start
        self.tracks: list[Track] = []
        self._started = False
        self._finalized = False

    def add_video_track(self, codec: CodecFamily, frame_rate: int) -> VideoTrack:
        self._require_registering()
        track = VideoTrack(self, len(self.tracks) + 1, codec, frame_rate)
        self.tracks.append(track)
        return track

    def add_audio_track(
        self, sample_rate: int, channels: int, bitrate: int
    ) -> AudioTrack:
        self._require_registering()
        track = AudioTrack(self, len(self.tracks) + 1, sample_rate, channels, bitrate)
        self.tracks.append(track)
        return track

    def start(self) -> None:
        if not self.tracks:
            raise MuxerError("Cannot start a writer with no tracks")
        self._require_registering()
        self._started = True

    def finalize(self) -> bytes:
        """Lay out and serialize the file.

        Raises:
            MuxerError: If not started, already finalized, or a track has
                no samples.
        """
        self._require_started()
        for track in self.tracks:
            if not track.samples:
                raise MuxerError(f"Track {track.track_id} has no samples")

        chunks = self._layout_chunks()
        payload_size = sum(c.size for c in chunks)
        ftyp = self._ftyp()
        header_size = boxes.mdat_header_size(payload_size)

        # Offsets shift by the moov size, which does not depend on offset values
        wide = False
        moov = self._moov(chunks, wide)
        if len(ftyp) + len(moov) + header_size + payload_size > _MAX_U32:
            wide = True
            moov = self._moov(chunks, wide)

        data_start = len(ftyp) + header_size
        if self.fast_start:
            data_start += len(moov)
        offset = data_start
        for chunk in chunks:
            chunk.offset = offset
            offset += chunk.size
        moov = self._moov(chunks, wide)

        mdat = [boxes.mdat_header(payload_size)]
        mdat.extend(s.data for chunk in chunks for s in chunk.samples)
        parts = [ftyp, moov, *mdat] if self.fast_start else [ftyp, *mdat, moov]
        self._finalized = True

        output = b"".join(parts)
        logger.debug(
            "Finalized MP4",
            extra={
                "size_bytes": len(output),
                "chunk_count": len(chunks),
                "fast_start": self.fast_start,
            },
        )
        return output

    def _require_registering(self) -> None:
        if self._started:
            raise MuxerError("Tracks must be added before start()")

    def _require_started(self) -> None:
        if not self._started:
            raise MuxerError("Writer has not been started")
        if self._finalized:
            raise MuxerError("Writer is already finalized")

    def _ftyp(self) -> bytes:
        brands = [b"isom", b"iso2", b"mp41"]
        for track in self.tracks:
            if isinstance(track, VideoTrack):
                brands.append(SAMPLE_ENTRY_TYPES[track.codec])
        return boxes.ftyp(b"isom", 0x200, brands)

    def _layout_chunks(self) -> list[_Chunk]:
        """Group samples into per-track chunks of about one second, interleaved."""
        chunks: list[_Chunk] = []
        for track in self.tracks:
            current: _Chunk | None = None
            for sample in track.samples:
                bucket = sample.decode_time // (track.timescale * CHUNK_SECONDS)
                if current is None or bucket != current.bucket:
                    current = _Chunk(track=track, bucket=bucket)
                    chunks.append(current)
                current.samples.append(sample)
        chunks.sort(key=lambda c: (c.bucket, c.track.track_id))
        return chunks

    def _movie_duration(self, track: Track) -> int:
        presented = track.media_duration - track.presentation_start
        return round(presented * MOVIE_TIMESCALE / track.timescale)

    def _moov(self, chunks: list[_Chunk], wide: bool) -> bytes:
        traks = [
            self._trak(t, [c for c in chunks if c.track is t], wide)
            for t in self.tracks
        ]
        duration = max(self._movie_duration(t) for t in self.tracks)
        return boxes.box(
            b"moov",
            boxes.mvhd(MOVIE_TIMESCALE, duration, len(self.tracks) + 1),
            *traks,
        )

    def _trak(self, track: Track, chunks: list[_Chunk], wide: bool) -> bytes:
        width, height = track.dimensions()
        movie_duration = self._movie_duration(track)
        parts = [
            boxes.tkhd(
                track.track_id, movie_duration, width, height, track.is_audio
            )
        ]
        if track.presentation_start:
            parts.append(boxes.elst(movie_duration, track.presentation_start))

        stbl = [
            boxes.stsd(track.sample_entry()),
            boxes.stts(_duration_runs(track.samples)),
        ]
        if not all(s.is_sync for s in track.samples):
            stbl.append(
                boxes.stss([i + 1 for i, s in enumerate(track.samples) if s.is_sync])
            )
        stbl.append(boxes.stsc(_chunk_runs(chunks)))
        stbl.append(boxes.stsz([len(s.data) for s in track.samples]))
        stbl.append(boxes.chunk_offsets([c.offset for c in chunks], wide))

        minf = boxes.box(
            b"minf",
            track.media_header_box(),
            boxes.dinf(),
            boxes.box(b"stbl", *stbl),
        )
        mdia = boxes.box(
            b"mdia",
            boxes.mdhd(track.timescale, track.media_duration),
            boxes.hdlr(track.handler_type, track.handler_name),
            minf,
        )
        parts.append(mdia)
        return boxes.box(b"trak", *parts)


def _duration_runs(samples: list[_Sample]) -> list[tuple[int, int]]:
    runs: list[tuple[int, int]] = []
    for sample in samples:
        if runs and runs[-1][1] == sample.duration:
            runs[-1] = (runs[-1][0] + 1, sample.duration)
        else:
            runs.append((1, sample.duration))
    return runs


def _chunk_runs(chunks: list[_Chunk]) -> list[tuple[int, int]]:
    """stsc entries: (first chunk number, samples per chunk) on every change."""
    runs: list[tuple[int, int]] = []
    for number, chunk in enumerate(chunks, start=1):
        count = len(chunk.samples)
        if not runs or runs[-1][1] != count:
            runs.append((number, count))
    return runs
