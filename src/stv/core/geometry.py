"""Target geometry and frame rate planning.

compute_target_plan is the only place the output size and frame rate are
derived. The feasibility gate and the frame pump both call it, so the
geometry that was negotiated is the geometry that gets encoded.
"""

from __future__ import annotations

import math

from stv.domain.models import TargetPlan

MAX_LONG_SIDE = 1920
LOW_FPS = 30
HIGH_FPS = 60


def round_half_up(value: float) -> int:
    """Round to nearest integer with halves going up (2.5 -> 3).

    Python's round() uses banker's rounding, which would make 1279.5 and
    1280.5 both land on the even neighbour.
    """
    return math.floor(value + 0.5)


def compute_target_plan(
    width: int, height: int, max_long_side: int = MAX_LONG_SIDE
) -> TargetPlan:
    """Compute the output geometry and constant frame rate for a source.

    The long side is capped at ``max_long_side``; sources already within
    the cap keep their size. Sources above the cap are encoded at 60 fps,
    everything else at 30 fps.

    Args:
        width: Source width in pixels.
        height: Source height in pixels.
        max_long_side: Largest allowed output long side.

    Returns:
        TargetPlan with width, height and fps.
    """
    long_side = max(width, height)
    scale = min(1.0, max_long_side / max(2, long_side))
    target_width = max(2, round_half_up(width * scale))
    target_height = max(2, round_half_up(height * scale))
    fps = LOW_FPS if long_side <= max_long_side else HIGH_FPS
    return TargetPlan(width=target_width, height=target_height, fps=fps)


def clamp_time(value: float, duration: float, epsilon: float = 1e-6) -> float:
    """Clamp a timeline position into [0, duration - epsilon].

    The upper bound never drops below ``epsilon`` so very short sources
    still get a positive seek target.
    """
    return min(max(0.0, value), max(epsilon, duration - epsilon))


def frame_ready_budget(step: float) -> float:
    """Per-frame wait budget in seconds: round(step in ms), clamped to 17..34."""
    millis = min(34, max(17, round_half_up(step * 1000)))
    return millis / 1000
