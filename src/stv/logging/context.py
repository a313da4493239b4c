"""Per-file context and scoped suppression for structured logging.

media_context() tags every record emitted while a file is processed with
the file name and pipeline stage, using contextvars so the tags follow the
task through asyncio.to_thread. suppress_log_messages() temporarily drops
known-harmless notices from specific loggers.
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Iterable
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_media_name: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "media_name", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@contextmanager
def media_context(
    name: str, stage: str | None = None
) -> Generator[None, None, None]:
    """Tag log records with the media file (and optionally stage) in scope.

    Nested contexts restore the outer values on exit.

    Example:
        with media_context("clip.mov", stage="video"):
            logger.info("Encoding")  # [clip.mov:video] Encoding
    """
    name_token = _media_name.set(name)
    stage_token = _stage.set(stage)
    try:
        yield
    finally:
        _stage.reset(stage_token)
        _media_name.reset(name_token)


@contextmanager
def stage_context(stage: str) -> Generator[None, None, None]:
    """Change only the stage tag, keeping the current media name."""
    token = _stage.set(stage)
    try:
        yield
    finally:
        _stage.reset(token)


def get_media_context() -> tuple[str | None, str | None]:
    """Return (media_name, stage) for the current context."""
    return _media_name.get(), _stage.get()


class MediaContextFilter(logging.Filter):
    """Logging filter that injects media context into log records.

    Adds media_name and stage for JSON output, and a compact media_tag
    like "[clip.mov:video] " for the text format.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        media_name, stage = get_media_context()
        record.media_name = media_name
        record.stage = stage
        if media_name:
            if stage:
                record.media_tag = f"[{media_name}:{stage}] "
            else:
                record.media_tag = f"[{media_name}] "
        else:
            record.media_tag = ""
        return True


class MessageSuppressionFilter(logging.Filter):
    """Drops records whose message contains every one of ``fragments``."""

    def __init__(self, fragments: Iterable[str]) -> None:
        super().__init__()
        self.fragments = tuple(fragments)
        self.suppressed = 0

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.fragments:
            return True
        message = record.getMessage()
        if all(fragment in message for fragment in self.fragments):
            self.suppressed += 1
            return False
        return True


@contextmanager
def suppress_log_messages(
    *fragments: str,
    loggers: Iterable[logging.Logger | str] = ("",),
) -> Generator[MessageSuppressionFilter, None, None]:
    """Drop matching records from ``loggers`` while the block runs.

    Logger-level filters only see records created on that exact logger, so
    pass the loggers that emit the notices (the default is the root logger).
    The filter is removed on exit, including when the block raises.

    Yields:
        The installed filter; its ``suppressed`` count is readable after exit.
    """
    suppression = MessageSuppressionFilter(fragments)
    targets = [
        target if isinstance(target, logging.Logger) else logging.getLogger(target)
        for target in loggers
    ]
    for target in targets:
        target.addFilter(suppression)
    try:
        yield suppression
    finally:
        for target in targets:
            target.removeFilter(suppression)
