"""Introspector module for stv.

This module provides metadata probing:

- MediaProber: Protocol defining the probe interface
- PyAVProber: In-process implementation (default)
- FFprobeProber: Implementation using the ffprobe executable
- get_prober: Select the backend from configuration
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from stv.introspector.ffprobe import FFprobeProber
from stv.introspector.interface import MediaProber, probe_media
from stv.introspector.parsers import build_descriptor, parse_ffprobe_output
from stv.introspector.pyav import PyAVProber

if TYPE_CHECKING:
    from stv.config.models import StvConfig


def get_prober(config: StvConfig | None = None) -> MediaProber:
    """Return the probe backend named by ``config.probe.backend``."""
    if config is None or config.probe.backend == "pyav":
        return PyAVProber()
    return FFprobeProber(
        ffprobe_path=config.tools.ffprobe,
        timeout=config.probe.timeout_seconds,
    )


__all__ = [
    "MediaProber",
    "PyAVProber",
    "FFprobeProber",
    "build_descriptor",
    "get_prober",
    "parse_ffprobe_output",
    "probe_media",
]
