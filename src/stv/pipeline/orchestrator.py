"""Pipeline orchestrator: the two public entry points.

can_optimize_video answers whether a file can be transcoded here and never
raises. optimize_video passes anything it cannot or should not handle
through unchanged; once a transcode has started, failures propagate.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any

from stv.config.models import StvConfig
from stv.core.geometry import compute_target_plan
from stv.domain.models import (
    OUTPUT_MIME_TYPE,
    FeasibilityResult,
    MediaFile,
    TranscodeResult,
    optimized_filename,
)
from stv.introspector.interface import probe_media
from stv.logging.context import media_context, stage_context
from stv.pipeline.audio import aligned_sample_count, decode_audio_pcm, render_exact
from stv.pipeline.feasibility import (
    environment_supported,
    evaluate_feasibility,
    hardware_preference,
)
from stv.pipeline.frame_pump import ProgressCallback, capture_video
from stv.pipeline.muxer import MuxerAdapter
from stv.pipeline.negotiation import select_video_encoder_config
from stv.platform.interface import MediaPlatform

logger = logging.getLogger(__name__)

VIDEO_MIME_PATTERN = re.compile(r"^video/", re.IGNORECASE)


def _resolve(
    config: StvConfig | None, platform: MediaPlatform | None
) -> tuple[StvConfig, MediaPlatform]:
    config = config or StvConfig()
    if platform is None:
        from stv.platform import PyAVPlatform

        platform = PyAVPlatform(config)
    return config, platform


async def can_optimize_video(
    file: Any,
    *,
    config: StvConfig | None = None,
    platform: MediaPlatform | None = None,
) -> FeasibilityResult:
    """Evaluate whether ``file`` can be transcoded in this environment."""
    config, platform = _resolve(config, platform)
    return await evaluate_feasibility(file, platform=platform, config=config)


async def optimize_video(
    file: Any,
    *,
    on_progress: ProgressCallback | None = None,
    config: StvConfig | None = None,
    platform: MediaPlatform | None = None,
) -> TranscodeResult:
    """Transcode ``file`` into a delivery-ready MP4 when possible.

    Returns the input untouched (``changed=False``, same object) when it is
    not a MediaFile, its MIME type is not video/*, the environment lacks a
    capability, or the feasibility gate fails.

    Raises:
        StvError: Any failure after the feasibility gate passed.
    """
    if not isinstance(file, MediaFile):
        return TranscodeResult(changed=False, file=file)
    if not VIDEO_MIME_PATTERN.match(file.mime_type or ""):
        logger.debug("Not a video MIME type (%r); passing through", file.mime_type)
        return TranscodeResult(changed=False, file=file)

    config, platform = _resolve(config, platform)
    if not environment_supported(platform):
        logger.info("Environment cannot transcode; passing %s through", file.name)
        return TranscodeResult(changed=False, file=file)

    feasibility = await evaluate_feasibility(file, platform=platform, config=config)
    if not feasibility.ok:
        logger.info(
            "Passing %s through: %s",
            file.name,
            feasibility.reason.value,
            extra={"reason": feasibility.reason.value, "details": feasibility.details},
        )
        return TranscodeResult(changed=False, file=file)

    artifact = await transcode(
        file, platform=platform, config=config, on_progress=on_progress
    )
    return TranscodeResult(changed=True, file=artifact)


async def transcode(
    file: MediaFile,
    *,
    platform: MediaPlatform,
    config: StvConfig,
    on_progress: ProgressCallback | None = None,
) -> MediaFile:
    """Run the full transcode. No feasibility checks; errors propagate."""
    with media_context(file.name):
        started = time.monotonic()
        descriptor = await probe_media(platform.prober, file)
        plan = compute_target_plan(
            descriptor.width,
            descriptor.height,
            max_long_side=config.transcode.max_long_side,
        )

        with stage_context("negotiate"):
            selection = await asyncio.to_thread(
                select_video_encoder_config,
                platform.codecs,
                plan,
                bitrate=config.transcode.video_bitrate,
                preference=hardware_preference(config),
            )
            logger.info(
                "Encoding %dx%d -> %dx%d@%d with %s",
                descriptor.width,
                descriptor.height,
                plan.width,
                plan.height,
                plan.fps,
                selection.config.encoder,
                extra={"codec": selection.codec_id.value},
            )

        with stage_context("audio"):
            media_input = platform.open_media_input(file)
            try:
                pcm = await asyncio.to_thread(
                    decode_audio_pcm, media_input, descriptor.duration
                )
            finally:
                media_input.close()

        muxer = MuxerAdapter(
            selection, plan, platform=platform, audio_bitrate=config.audio.bitrate
        )

        with stage_context("video"):
            encoder = await asyncio.to_thread(
                platform.create_video_encoder, selection.config
            )
            rasterizer = platform.create_rasterizer(
                plan.width, plan.height, selection.config.pix_fmt
            )
            async with platform.open_decode_source(file) as source:
                stream = await capture_video(
                    source,
                    rasterizer,
                    encoder,
                    plan,
                    descriptor.duration,
                    queue_size=config.transcode.packet_queue_size,
                    on_progress=on_progress,
                )

        with stage_context("mux"):
            muxed = await asyncio.to_thread(muxer.add_video, stream)
            audio = render_exact(pcm, aligned_sample_count(muxed, plan.fps))
            await asyncio.to_thread(muxer.add_audio, audio)
            data = await asyncio.to_thread(muxer.finalize)

        logger.info(
            "Optimized %s: %d frames, %d bytes in %.1fs",
            file.name,
            muxed,
            len(data),
            time.monotonic() - started,
            extra={"frames": muxed, "size_bytes": len(data)},
        )
        return MediaFile(
            name=optimized_filename(file.name),
            mime_type=OUTPUT_MIME_TYPE,
            data=data,
        )
