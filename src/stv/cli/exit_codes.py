"""Exit codes for stv CLI commands."""

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0

    # At least one file failed a check or a transcode
    FAILURE = 1

    # Environment cannot transcode at all (doctor)
    UNSUPPORTED = 2

    CONFIG_ERROR = 11
