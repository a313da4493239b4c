"""Audio pipeline: decode or synthesize PCM, then render it to exact length.

Stage A (decode_audio_pcm) turns the source's first decodable audio track
into a 48 kHz stereo buffer covering the source duration, or silence when
there is none. Stage B (aligned_sample_count, render_exact) runs after the
video has been captured and fixes the length from the realized frame count.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from stv.domain.models import AudioRenderResult
from stv.logging.context import suppress_log_messages
from stv.platform import container as container_module
from stv.platform.interface import InputTrack, MediaInput

logger = logging.getLogger(__name__)

SAMPLE_RATE = 48000
CHANNELS = 2
AAC_BLOCK = 1024

# Decode-layer notices about incidental tracks we never use (Apple spatial audio)
UNSUPPORTED_CODEC_NOTICE = ("Unsupported audio codec", "apac")


class OfflineAudioRenderer:
    """Mixing buffer of fixed length that decoded chunks are summed into."""

    def __init__(
        self, frames: int, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._buffer = np.zeros((channels, max(1, frames)), dtype=np.float32)

    @property
    def frames(self) -> int:
        return int(self._buffer.shape[1])

    def add(self, samples: np.ndarray, timestamp: float) -> int:
        """Sum ``samples`` (channels, n) in at ``timestamp`` seconds.

        Negative timestamps start at 0. Samples past the buffer end are
        dropped. Returns the number of frames actually mixed.
        """
        offset = round(max(0.0, timestamp) * self.sample_rate)
        if offset >= self.frames:
            return 0
        count = min(samples.shape[1], self.frames - offset)
        channels = min(self.channels, samples.shape[0])
        self._buffer[:channels, offset : offset + count] += samples[
            :channels, :count
        ]
        return count

    def render(self) -> AudioRenderResult:
        return AudioRenderResult(
            samples=self._buffer.copy(),
            sample_rate=self.sample_rate,
            channels=self.channels,
        )


def silence_frames(duration: float, sample_rate: int = SAMPLE_RATE) -> int:
    return max(1, math.ceil(duration * sample_rate))


def _first_audio_track(media_input: MediaInput) -> InputTrack | None:
    try:
        tracks = media_input.get_tracks()
    except Exception as e:
        logger.debug("Track enumeration failed, treating as no tracks: %s", e)
        return None
    for track in tracks:
        if track.is_audio_track():
            return track
    return None


def decode_audio_pcm(media_input: MediaInput, duration: float) -> AudioRenderResult:
    """Stage A: source audio as a 48 kHz stereo buffer of the source duration.

    Blocking; run it in a worker thread. Notices about unsupported
    incidental audio codecs are suppressed for the duration of the call.
    """
    frames = silence_frames(duration)
    with suppress_log_messages(
        *UNSUPPORTED_CODEC_NOTICE, loggers=[container_module.logger]
    ):
        track = _first_audio_track(media_input)
        if track is None:
            logger.info("No decodable audio track; using %d frames of silence", frames)
            return AudioRenderResult.silence(frames, SAMPLE_RATE, CHANNELS)

        renderer = OfflineAudioRenderer(frames)
        mixed = 0
        for chunk in media_input.iter_audio_chunks(track, 0.0, duration):
            mixed += renderer.add(chunk.samples, chunk.timestamp)
    logger.debug("Decoded %d audio frames into a %d-frame buffer", mixed, frames)
    return renderer.render()


def aligned_sample_count(muxed_frames: int, fps: int) -> int:
    """Stage B target length: whole AAC blocks, one block short of the video.

    The block of headroom keeps the audio track from outlasting the video
    once the encoder's priming samples are accounted for.
    """
    raw = muxed_frames * SAMPLE_RATE / fps
    return max(AAC_BLOCK, math.floor(raw / AAC_BLOCK) * AAC_BLOCK - AAC_BLOCK)


def render_exact(buffer: AudioRenderResult, frames: int) -> AudioRenderResult:
    """Trim or silence-pad ``buffer`` to exactly ``frames`` (at least one block)."""
    frames = max(AAC_BLOCK, frames)
    current = buffer.frame_count
    if current >= frames:
        samples = buffer.samples[:, :frames]
    else:
        samples = np.pad(buffer.samples, ((0, 0), (0, frames - current)))
    return AudioRenderResult(
        samples=np.ascontiguousarray(samples, dtype=np.float32),
        sample_rate=buffer.sample_rate,
        channels=buffer.channels,
    )
