"""Video encoder configuration negotiation.

HEVC is asked for first and AVC second. Any failure while asking about
HEVC counts as "not supported" so the AVC fallback always gets its turn;
the AVC request itself is unguarded.
"""

from __future__ import annotations

import logging

from stv.core.codecs import AVC_CODEC_STRING, HEVC_CODEC_STRING
from stv.domain.enums import CodecFamily, HardwarePreference
from stv.domain.models import EncoderSelection, TargetPlan
from stv.errors import UnsupportedVideoConfigError
from stv.platform.interface import CodecCapabilities, VideoEncoderRequest

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_BITRATE = 2_800_000


def _request(
    family: CodecFamily,
    codec: str,
    plan: TargetPlan,
    bitrate: int,
    preference: HardwarePreference,
) -> VideoEncoderRequest:
    return VideoEncoderRequest(
        family=family,
        codec=codec,
        width=plan.width,
        height=plan.height,
        framerate=plan.fps,
        bitrate=bitrate,
        hardware_acceleration=preference,
    )


def select_video_encoder_config(
    codecs: CodecCapabilities,
    plan: TargetPlan,
    *,
    bitrate: int = DEFAULT_VIDEO_BITRATE,
    preference: HardwarePreference = HardwarePreference.PREFER_HARDWARE,
) -> EncoderSelection:
    """Pick the encoder configuration for ``plan``.

    Args:
        codecs: Capability collaborator answering support questions.
        plan: Target geometry and frame rate.
        bitrate: Constant target bitrate in bits per second.
        preference: Hardware acceleration preference for both requests.

    Returns:
        EncoderSelection for HEVC if supported, otherwise AVC.

    Raises:
        UnsupportedVideoConfigError: If neither codec is supported.
        Exception: Whatever the AVC support request raises, unchanged.
    """
    hevc = _request(CodecFamily.HEVC, HEVC_CODEC_STRING, plan, bitrate, preference)
    try:
        support = codecs.is_config_supported(hevc)
    except Exception as e:
        logger.debug("HEVC support query failed, treating as unsupported: %s", e)
    else:
        if support.supported and support.config is not None:
            return EncoderSelection(codec_id=CodecFamily.HEVC, config=support.config)

    avc = _request(CodecFamily.AVC, AVC_CODEC_STRING, plan, bitrate, preference)
    support = codecs.is_config_supported(avc)
    if support.supported and support.config is not None:
        logger.info(
            "HEVC unavailable at %dx%d@%d, falling back to AVC",
            plan.width,
            plan.height,
            plan.fps,
        )
        return EncoderSelection(codec_id=CodecFamily.AVC, config=support.config)

    raise UnsupportedVideoConfigError(
        f"No encoder supports {plan.width}x{plan.height}@{plan.fps}",
        width=plan.width,
        height=plan.height,
        fps=plan.fps,
    )
