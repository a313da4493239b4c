"""Frame pump: drives the decode cursor along a constant-rate timeline.

For each output frame the cursor is sought to the frame's sample time, the
decoded picture is drawn at target geometry and handed to the encoder.
Encoder output flows through a bounded queue to a collector that keeps the
packets in arrival order and captures the decoder description once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from stv.core.geometry import clamp_time, frame_ready_budget
from stv.domain.models import EncodedVideoPacket, FrameTask, TargetPlan
from stv.platform.interface import DecodeSource, Rasterizer, VideoEncoder

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], object]

# Longest first-frame nudge, in seconds
MAX_NUDGE = 0.004

DEFAULT_QUEUE_SIZE = 64


class _EndOfStream:
    def __repr__(self) -> str:
        return "<end of stream>"


END_OF_STREAM = _EndOfStream()


class DescriptionSlot:
    """Write-once holder for the decoder configuration description."""

    def __init__(self) -> None:
        self._value: bytes | None = None

    @property
    def value(self) -> bytes | None:
        return self._value

    def offer(self, description: bytes | None) -> bool:
        """Store ``description`` if the slot is empty. Returns True if stored."""
        if self._value is not None or description is None:
            return False
        self._value = description
        return True


@dataclass(frozen=True)
class EncodedStream:
    """Everything the muxer needs from the video side."""

    packets: list[EncodedVideoPacket] = field(repr=False)
    description: bytes | None
    planned_frames: int


def plan_frame_tasks(duration: float, plan: TargetPlan) -> Iterator[FrameTask]:
    """Yield one FrameTask per output frame.

    Sample times are clamped into the source's duration. The first frame
    samples half a step in, away from the very first timestamp, where
    decoders commonly have nothing presentable yet.
    """
    step = plan.step
    for i in range(plan.frame_count(duration)):
        t = i * step
        sample = t + step / 2 if i == 0 else t
        yield FrameTask(
            index=i,
            presentation_time=t,
            sample_time=clamp_time(sample, duration),
            is_key_frame=i == 0,
        )


def _report(on_progress: ProgressCallback | None, value: float) -> None:
    if on_progress is None:
        return
    try:
        on_progress(value)
    except Exception as e:
        logger.debug("Progress callback raised %r; ignoring", e)


async def pump_frames(
    source: DecodeSource,
    rasterizer: Rasterizer,
    encoder: VideoEncoder,
    plan: TargetPlan,
    duration: float,
    queue: asyncio.Queue,
    *,
    on_progress: ProgressCallback | None = None,
) -> int:
    """Capture and encode every frame of the output timeline.

    Encoder packets are put on ``queue`` in arrival order, and END_OF_STREAM
    is put last whether or not the pump succeeds.

    Returns:
        Number of frames submitted to the encoder.
    """
    step = plan.step
    budget = frame_ready_budget(step)
    frame_duration = round(step * 1_000_000)
    tasks = list(plan_frame_tasks(duration, plan))
    total = len(tasks)
    submitted = 0

    logger.info(
        "Capturing %d frames at %dx%d@%d",
        total,
        plan.width,
        plan.height,
        plan.fps,
        extra={"frames": total, "fps": plan.fps},
    )

    try:
        for task in tasks:
            await source.seek(task.sample_time)
            ready = await source.wait_frame_ready(budget)
            if not ready and task.index == 0:
                nudge = min(step / 4, MAX_NUDGE)
                nudged = clamp_time(task.sample_time + nudge, duration)
                logger.debug("First frame not ready; nudging to %.6fs", nudged)
                await source.seek(nudged)

            def _draw_and_encode(task: FrameTask = task) -> list[EncodedVideoPacket]:
                with rasterizer.surface(source.current_frame) as surface:
                    return encoder.encode(
                        surface,
                        timestamp=round(task.presentation_time * 1_000_000),
                        duration=frame_duration,
                        key_frame=task.is_key_frame,
                    )

            for packet in await asyncio.to_thread(_draw_and_encode):
                await queue.put(packet)
            submitted += 1
            _report(on_progress, min(1.0, (task.index + 1) / total))

        for packet in await asyncio.to_thread(encoder.flush):
            await queue.put(packet)
    finally:
        await queue.put(END_OF_STREAM)

    return submitted


async def collect_encoded_packets(
    queue: asyncio.Queue,
) -> tuple[list[EncodedVideoPacket], DescriptionSlot]:
    """Drain ``queue`` until END_OF_STREAM, keeping arrival order."""
    packets: list[EncodedVideoPacket] = []
    slot = DescriptionSlot()
    while True:
        item = await queue.get()
        if item is END_OF_STREAM:
            break
        slot.offer(item.description)
        packets.append(item)
    return packets, slot


async def capture_video(
    source: DecodeSource,
    rasterizer: Rasterizer,
    encoder: VideoEncoder,
    plan: TargetPlan,
    duration: float,
    *,
    queue_size: int = DEFAULT_QUEUE_SIZE,
    on_progress: ProgressCallback | None = None,
) -> EncodedStream:
    """Run the pump and the collector together over a bounded queue."""
    queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
    _, (packets, slot) = await asyncio.gather(
        pump_frames(
            source,
            rasterizer,
            encoder,
            plan,
            duration,
            queue,
            on_progress=on_progress,
        ),
        collect_encoded_packets(queue),
    )
    logger.debug("Collected %d video packets", len(packets))
    return EncodedStream(
        packets=packets,
        description=slot.value,
        planned_frames=plan.frame_count(duration),
    )
