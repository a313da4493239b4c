"""Merge CLI logging flags into the configured LoggingConfig."""

from __future__ import annotations

import dataclasses
from pathlib import Path

from stv.config.models import LoggingConfig


def build_logging_config(
    base: LoggingConfig,
    *,
    level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
    include_stderr: bool | None = None,
) -> LoggingConfig:
    """Return a copy of ``base`` with every non-None override applied.

    Rotation settings only come from the config file. The copy is
    validated again, so a bad override raises ValueError.
    """
    overrides = {
        "level": level,
        "file": file,
        "format": format,
        "include_stderr": include_stderr,
    }
    return dataclasses.replace(
        base, **{key: value for key, value in overrides.items() if value is not None}
    )


def configure_logging_from_cli(
    base: LoggingConfig,
    *,
    level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
    include_stderr: bool | None = None,
) -> None:
    """Apply CLI flags to the resolved logging section and install handlers."""
    from stv.logging import configure_logging

    configure_logging(
        build_logging_config(
            base,
            level=level,
            file=file,
            format=format,
            include_stderr=include_stderr,
        )
    )
