"""Structured logging for stv."""

from stv.logging.config import configure_logging
from stv.logging.context import (
    MediaContextFilter,
    MessageSuppressionFilter,
    get_media_context,
    media_context,
    stage_context,
    suppress_log_messages,
)
from stv.logging.handlers import JSONFormatter

__all__ = [
    "configure_logging",
    "JSONFormatter",
    "MediaContextFilter",
    "MessageSuppressionFilter",
    "get_media_context",
    "media_context",
    "stage_context",
    "suppress_log_messages",
]
