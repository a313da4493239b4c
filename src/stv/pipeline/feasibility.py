"""Feasibility gate evaluated before any transcode work.

evaluate_feasibility never raises. Every failure maps to a
FeasibilityReason, checked in a fixed order so the first failing check
decides the answer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from stv.config.models import StvConfig
from stv.core.geometry import compute_target_plan
from stv.core.sniff import is_known_container
from stv.domain.enums import FeasibilityReason, HardwarePreference
from stv.domain.models import FeasibilityResult, MediaFile
from stv.introspector.interface import probe_media
from stv.pipeline.negotiation import select_video_encoder_config
from stv.platform.interface import MediaPlatform

logger = logging.getLogger(__name__)


def hardware_preference(config: StvConfig) -> HardwarePreference:
    if config.transcode.prefer_hardware:
        return HardwarePreference.PREFER_HARDWARE
    return HardwarePreference.PREFER_SOFTWARE


def environment_supported(platform: MediaPlatform) -> bool:
    """True if the platform reports every capability a transcode needs."""
    try:
        return platform.environment().supported
    except Exception as e:
        logger.warning("Environment detection failed: %s", e)
        return False


async def evaluate_feasibility(
    file: Any,
    *,
    platform: MediaPlatform,
    config: StvConfig,
) -> FeasibilityResult:
    """Decide whether ``file`` can be transcoded here.

    Checks, in order: the input is a MediaFile; the environment has the
    required capabilities; the metadata probes; an encoder accepts the
    target geometry; an undeclared container is recognisable; the
    estimated output fits the size budget.

    Returns:
        FeasibilityResult. ``ok`` results carry width, height and duration.
    """
    if not isinstance(file, MediaFile):
        return FeasibilityResult.fail(FeasibilityReason.NOT_A_FILE)

    if not environment_supported(platform):
        return FeasibilityResult.fail(FeasibilityReason.UNSUPPORTED_ENVIRONMENT)

    try:
        descriptor = await probe_media(platform.prober, file)

        plan = compute_target_plan(
            descriptor.width,
            descriptor.height,
            max_long_side=config.transcode.max_long_side,
        )
        try:
            await asyncio.to_thread(
                select_video_encoder_config,
                platform.codecs,
                plan,
                bitrate=config.transcode.video_bitrate,
                preference=hardware_preference(config),
            )
        except Exception as e:
            logger.info("No encoder for %s: %s", file.name, e)
            return FeasibilityResult.fail(
                FeasibilityReason.UNSUPPORTED_VIDEO_CONFIG,
                width=descriptor.width,
                height=descriptor.height,
            )

        if not file.mime_type:
            head = await asyncio.to_thread(
                file.read_head, config.feasibility.sniff_bytes
            )
            if not is_known_container(head):
                return FeasibilityResult.fail(FeasibilityReason.UNKNOWN_CONTAINER)

        feasibility = config.feasibility
        if descriptor.duration * feasibility.mb_per_second > feasibility.budget_mb:
            return FeasibilityResult.fail(
                FeasibilityReason.TOO_LONG, duration=descriptor.duration
            )
    except Exception as e:
        logger.info("Probe failed for %s: %s", file.name, e)
        return FeasibilityResult.fail(FeasibilityReason.PROBE_FAILED, error=str(e))

    return FeasibilityResult(
        ok=True,
        reason=FeasibilityReason.OK,
        details={
            "width": descriptor.width,
            "height": descriptor.height,
            "duration": descriptor.duration,
        },
    )
