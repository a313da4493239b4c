"""Transcode pipeline stages and the public entry points."""

from stv.pipeline.feasibility import evaluate_feasibility
from stv.pipeline.negotiation import select_video_encoder_config
from stv.pipeline.orchestrator import can_optimize_video, optimize_video, transcode

__all__ = [
    "can_optimize_video",
    "evaluate_feasibility",
    "optimize_video",
    "select_video_encoder_config",
    "transcode",
]
