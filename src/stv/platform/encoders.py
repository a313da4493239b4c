"""Video encoder detection, selection and encoding with PyAV.

Functions and classes in this module:
- candidate_encoders: Ordered FFmpeg encoder names for a codec family
- open_encoder_context: Create and open a configured av.CodecContext
- PyAVCodecCapabilities: Answers "is this config supported?" by test-opening
- PyAVVideoEncoder: Encodes av.VideoFrames into EncodedVideoPackets
"""

from __future__ import annotations

import logging
from fractions import Fraction

import av
from av.video.frame import PictureType

from stv.core.bitstream import extract_parameter_sets, is_annexb
from stv.core.codecs import normalize_video_codec
from stv.domain.enums import CodecFamily, HardwarePreference, PacketType
from stv.domain.models import EncodedVideoPacket, VideoEncoderConfig
from stv.errors import EncoderError
from stv.platform.interface import EncoderSupport, VideoEncoderRequest

logger = logging.getLogger(__name__)

# Frame and packet timestamps are carried in microseconds
ENCODER_TIME_BASE = Fraction(1, 1_000_000)

# Software encoder names by codec family, in preference order
SOFTWARE_ENCODERS: dict[CodecFamily, tuple[str, ...]] = {
    CodecFamily.HEVC: ("libx265",),
    CodecFamily.AVC: ("libx264", "libopenh264"),
}

# Hardware encoder names by codec family and platform
HARDWARE_ENCODERS: dict[CodecFamily, dict[str, str]] = {
    CodecFamily.HEVC: {
        "videotoolbox": "hevc_videotoolbox",
        "nvenc": "hevc_nvenc",
        "qsv": "hevc_qsv",
        "amf": "hevc_amf",
    },
    CodecFamily.AVC: {
        "videotoolbox": "h264_videotoolbox",
        "nvenc": "h264_nvenc",
        "qsv": "h264_qsv",
        "amf": "h264_amf",
    },
}

HW_PRIORITY = ("videotoolbox", "nvenc", "qsv", "amf")

# Input pixel formats that differ from yuv420p
ENCODER_PIX_FMTS: dict[str, str] = {
    "hevc_qsv": "nv12",
    "h264_qsv": "nv12",
}


def all_encoder_names() -> frozenset[str]:
    """Every encoder name the pipeline knows how to drive."""
    names: set[str] = set()
    for family in CodecFamily:
        names.update(SOFTWARE_ENCODERS[family])
        names.update(HARDWARE_ENCODERS[family].values())
    return frozenset(names)


def is_hardware_encoder(name: str) -> bool:
    return any(name in table.values() for table in HARDWARE_ENCODERS.values())


def candidate_encoders(
    family: CodecFamily, preference: HardwarePreference
) -> list[str]:
    """Ordered encoder names to try for a codec family.

    Args:
        family: Target codec family.
        preference: Whether hardware encoders are tried before software ones.

    Returns:
        Encoder names in the order they should be attempted.
    """
    hardware = [HARDWARE_ENCODERS[family][hw] for hw in HW_PRIORITY]
    software = list(SOFTWARE_ENCODERS[family])
    if preference is HardwarePreference.PREFER_SOFTWARE:
        return software + hardware
    return hardware + software


def encoder_options(name: str, bitrate: int) -> dict[str, str]:
    """Private and generic AVOptions for an encoder at a constant bitrate."""
    kbps = max(1, bitrate // 1000)
    options = {"flags": "+global_header"}
    if name == "libx264":
        options.update(
            {
                "preset": "veryfast",
                "maxrate": str(bitrate),
                "bufsize": str(bitrate * 2),
            }
        )
    elif name == "libx265":
        options.update(
            {
                "preset": "fast",
                "x265-params": (
                    f"log-level=error:vbv-maxrate={kbps}:vbv-bufsize={kbps * 2}"
                ),
            }
        )
    elif name.endswith("_nvenc"):
        options.update({"preset": "p4", "rc": "cbr"})
    elif name.endswith("_videotoolbox"):
        options.update({"realtime": "1"})
    return options


def open_encoder_context(
    config: VideoEncoderConfig, keyframe_interval: float = 2.0
) -> av.VideoCodecContext:
    """Create and open an encoder context for ``config``.

    Raises:
        av.error.FFmpegError: If the encoder rejects the configuration.
        ValueError: If the encoder name is unknown to this FFmpeg build.
    """
    ctx = av.CodecContext.create(config.encoder, "w")
    ctx.width = config.width
    ctx.height = config.height
    ctx.pix_fmt = config.pix_fmt
    ctx.time_base = ENCODER_TIME_BASE
    ctx.framerate = Fraction(config.framerate, 1)
    ctx.bit_rate = config.bitrate
    ctx.gop_size = max(1, round(config.framerate * keyframe_interval))
    # No B-frames: packets arrive in presentation order, no composition offsets
    ctx.max_b_frames = 0
    ctx.options = dict(config.options)
    ctx.open()
    return ctx


class PyAVCodecCapabilities:
    """Encoder support checks backed by the local FFmpeg build.

    A candidate counts as supported only if it opens at the requested
    geometry and rate; listing in av.codecs_available is not enough for
    hardware encoders without a device. Answers are cached per request.
    """

    def __init__(
        self,
        available: frozenset[str] | None = None,
        keyframe_interval: float = 2.0,
    ) -> None:
        self._available = available
        self._keyframe_interval = keyframe_interval
        self._cache: dict[VideoEncoderRequest, EncoderSupport] = {}

    @property
    def available(self) -> frozenset[str]:
        if self._available is None:
            self._available = frozenset(av.codecs_available)
        return self._available

    def is_config_supported(self, request: VideoEncoderRequest) -> EncoderSupport:
        cached = self._cache.get(request)
        if cached is not None:
            return cached

        support = EncoderSupport(supported=False)
        for name in candidate_encoders(request.family, request.hardware_acceleration):
            if name not in self.available:
                continue
            config = VideoEncoderConfig(
                codec=request.codec,
                encoder=name,
                width=request.width,
                height=request.height,
                framerate=request.framerate,
                bitrate=request.bitrate,
                pix_fmt=ENCODER_PIX_FMTS.get(name, "yuv420p"),
                hardware=is_hardware_encoder(name),
                options=encoder_options(name, request.bitrate),
            )
            try:
                open_encoder_context(config, self._keyframe_interval)
            except (av.error.FFmpegError, ValueError) as e:
                logger.debug(
                    "Encoder %s rejected %dx%d@%d: %s",
                    name,
                    request.width,
                    request.height,
                    request.framerate,
                    e,
                )
                continue
            logger.info(
                "Selected %s encoder: %s",
                "hardware" if config.hardware else "software",
                name,
                extra={"encoder": name, "codec": request.codec},
            )
            support = EncoderSupport(supported=True, config=config)
            break

        self._cache[request] = support
        return support


class PyAVVideoEncoder:
    """Encodes frames with one opened FFmpeg encoder.

    The decoder configuration description (encoder extradata, or the
    parameter sets found in the first key packet when the encoder does not
    export extradata) is attached to the first packet only.
    """

    def __init__(
        self, config: VideoEncoderConfig, keyframe_interval: float = 2.0
    ) -> None:
        self.config = config
        self.family = normalize_video_codec(config.codec) or CodecFamily.AVC
        try:
            self._ctx = open_encoder_context(config, keyframe_interval)
        except (av.error.FFmpegError, ValueError) as e:
            raise EncoderError(f"Failed to open encoder {config.encoder}: {e}") from e
        self._description_sent = False
        self._frame_duration = round(1_000_000 / max(1, config.framerate))
        self._flushed = False

    def encode(
        self, frame: av.VideoFrame, *, timestamp: int, duration: int, key_frame: bool
    ) -> list[EncodedVideoPacket]:
        if self._flushed:
            raise EncoderError("Encoder already flushed")
        frame.pts = timestamp
        frame.time_base = ENCODER_TIME_BASE
        frame.pict_type = PictureType.I if key_frame else PictureType.NONE
        self._frame_duration = duration
        try:
            packets = self._ctx.encode(frame)
        except av.error.FFmpegError as e:
            raise EncoderError(f"Encoding failed at {timestamp}us: {e}") from e
        return [self._convert(p) for p in packets]

    def flush(self) -> list[EncodedVideoPacket]:
        self._flushed = True
        try:
            packets = self._ctx.encode(None)
        except av.error.FFmpegError as e:
            raise EncoderError(f"Encoder flush failed: {e}") from e
        return [self._convert(p) for p in packets]

    def _convert(self, packet: av.Packet) -> EncodedVideoPacket:
        payload = bytes(packet)
        description = None
        if not self._description_sent:
            description = self._description(payload)
            self._description_sent = description is not None
        return EncodedVideoPacket(
            payload=payload,
            type=PacketType.KEY if packet.is_keyframe else PacketType.DELTA,
            timestamp=packet.pts if packet.pts is not None else 0,
            duration=packet.duration or self._frame_duration,
            description=description,
        )

    def _description(self, first_payload: bytes) -> bytes | None:
        extradata = self._ctx.extradata
        if extradata:
            return bytes(extradata)
        if is_annexb(first_payload):
            units = extract_parameter_sets(first_payload, self.family)
            if units:
                logger.debug(
                    "Encoder %s exported no extradata; using in-band parameter sets",
                    self.config.encoder,
                )
                return b"".join(b"\x00\x00\x00\x01" + unit for unit in units)
        return None
