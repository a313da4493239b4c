"""FFprobe-based implementation of the MediaProber protocol."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess  # nosec B404 - TimeoutExpired is raised by run_command
from pathlib import Path

from stv.core.subprocess_utils import run_command
from stv.domain.models import MediaDescriptor, MediaFile
from stv.errors import MediaProbeError
from stv.introspector.parsers import parse_ffprobe_output

logger = logging.getLogger(__name__)


class FFprobeProber:
    """Probe backend that shells out to ffprobe.

    Only path-backed files can be probed this way; in-memory files raise
    MediaProbeError.
    """

    def __init__(self, ffprobe_path: Path | None = None, timeout: float = 60) -> None:
        """Initialize the prober.

        Args:
            ffprobe_path: Explicit ffprobe executable. Looked up on PATH if None.
            timeout: Seconds before the ffprobe process is killed.

        Raises:
            MediaProbeError: If ffprobe cannot be found.
        """
        if ffprobe_path is None:
            found = shutil.which("ffprobe")
            ffprobe_path = Path(found) if found else None
        if ffprobe_path is None:
            raise MediaProbeError(
                "ffprobe is not installed or not in PATH. "
                "Configure a path via STV_FFPROBE_PATH or ~/.stv/config.toml, "
                "or use the pyav probe backend"
            )
        self._ffprobe_path = ffprobe_path
        self._timeout = timeout

    @staticmethod
    def is_available() -> bool:
        return shutil.which("ffprobe") is not None

    def probe(self, file: MediaFile) -> MediaDescriptor:
        if file.path is None:
            raise MediaProbeError(
                f"ffprobe backend cannot probe in-memory file {file.name}"
            )
        if not file.path.exists():
            raise MediaProbeError(f"File not found: {file.path}")

        try:
            stdout, stderr, returncode = run_command(
                [
                    self._ffprobe_path,
                    "-v",
                    "error",
                    "-print_format",
                    "json",
                    "-show_streams",
                    "-show_format",
                    file.path,
                ],
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise MediaProbeError(
                f"ffprobe timed out for {file.name} after {e.timeout}s"
            ) from e
        except OSError as e:
            raise MediaProbeError(f"Cannot run ffprobe: {e}") from e

        if returncode != 0:
            raise MediaProbeError(
                f"ffprobe failed for {file.name}: {stderr.strip() or returncode}"
            )
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise MediaProbeError(f"Invalid ffprobe output for {file.name}: {e}") from e

        return parse_ffprobe_output(file.name, data)
