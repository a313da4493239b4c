"""Subprocess wrapper for external tool invocation.

Only the ffprobe metadata backend shells out; everything else goes through
PyAV in-process.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - needed for the optional ffprobe backend
import time
from pathlib import Path

logger = logging.getLogger(__name__)


def run_command(
    args: list[str | Path],
    timeout: float = 60,
) -> tuple[str, str, int]:
    """Run an external command and capture its text output.

    Output is decoded as UTF-8 with replacement so malformed tags in media
    metadata never raise UnicodeDecodeError.

    Args:
        args: Command and arguments. Path objects are converted to strings.
        timeout: Timeout in seconds.

    Returns:
        Tuple of (stdout, stderr, returncode).

    Raises:
        subprocess.TimeoutExpired: If the command times out. The child is
            killed by subprocess.run before this propagates.
        FileNotFoundError: If the executable does not exist.
    """
    str_args = [str(arg) for arg in args]
    command_name = Path(str_args[0]).name if str_args else "unknown"

    logger.debug(
        "Executing command: %s",
        " ".join(str_args),
        extra={"command": command_name, "arg_count": len(str_args)},
    )
    start_time = time.monotonic()

    try:
        result = subprocess.run(  # nosec B603 - args are built by the caller
            str_args,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "Command timed out after %ss: %s",
            timeout,
            command_name,
            extra={
                "command": command_name,
                "timeout_seconds": timeout,
                "elapsed_seconds": round(time.monotonic() - start_time, 3),
            },
        )
        raise

    logger.debug(
        "Command completed",
        extra={
            "command": command_name,
            "elapsed_seconds": round(time.monotonic() - start_time, 3),
            "returncode": result.returncode,
        },
    )
    return result.stdout or "", result.stderr or "", result.returncode
