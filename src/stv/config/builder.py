"""Configuration builder with explicit layering.

This module provides ConfigBuilder for building StvConfig by composing
multiple configuration sources with explicit precedence handling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from stv.config.env import EnvReader
from stv.config.models import (
    AudioConfig,
    FeasibilityConfig,
    LoggingConfig,
    ProbeConfig,
    StvConfig,
    ToolPathsConfig,
    TranscodeConfig,
)

logger = logging.getLogger(__name__)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Transcode config
    max_long_side: int | None = None
    video_bitrate: int | None = None
    prefer_hardware: bool | None = None
    keyframe_interval_seconds: float | None = None
    packet_queue_size: int | None = None
    seek_forward_window: float | None = None

    # Audio config
    audio_bitrate: int | None = None

    # Feasibility config
    budget_mb: float | None = None
    mb_per_second: float | None = None
    sniff_bytes: int | None = None

    # Probe config
    probe_backend: str | None = None
    probe_timeout: int | None = None

    # Tool paths
    ffprobe_path: Path | None = None

    # Logging config
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds StvConfig by layering ConfigSources with precedence.

    Later sources override earlier ones (for non-None values).

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config), source_name="file")
        builder.apply(source_from_env(reader), source_name="env")
        builder.apply(cli_source, source_name="cli")
        config = builder.build()
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource, source_name: str = "unknown") -> None:
        """Apply configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
            source_name: Label used in debug logging.
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                if field_obj.name in self._values:
                    logger.debug(
                        "Config %s overridden by %s source", field_obj.name, source_name
                    )
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> StvConfig:
        """Build the final StvConfig with defaults for unset values.

        Raises:
            ValueError: If a layered value fails section validation.
        """
        transcode = TranscodeConfig(
            max_long_side=self._get("max_long_side", 1920),
            video_bitrate=self._get("video_bitrate", 2_800_000),
            prefer_hardware=self._get("prefer_hardware", True),
            keyframe_interval_seconds=self._get("keyframe_interval_seconds", 2.0),
            packet_queue_size=self._get("packet_queue_size", 64),
            seek_forward_window=self._get("seek_forward_window", 2.0),
        )

        audio = AudioConfig(bitrate=self._get("audio_bitrate", 96_000))

        feasibility = FeasibilityConfig(
            budget_mb=self._get("budget_mb", 300.0),
            mb_per_second=self._get("mb_per_second", 0.366),
            sniff_bytes=self._get("sniff_bytes", 4096),
        )

        probe = ProbeConfig(
            backend=self._get("probe_backend", "pyav"),
            timeout_seconds=self._get("probe_timeout", 60),
        )

        tools = ToolPathsConfig(ffprobe=self._get("ffprobe_path", None))

        logging_config = LoggingConfig(
            level=self._get("logging_level", "info"),
            file=self._get("logging_file", None),
            format=self._get("logging_format", "text"),
            include_stderr=self._get("logging_include_stderr", False),
            max_bytes=self._get("logging_max_bytes", 10_485_760),
            backup_count=self._get("logging_backup_count", 5),
        )

        return StvConfig(
            transcode=transcode,
            audio=audio,
            feasibility=feasibility,
            probe=probe,
            tools=tools,
            logging=logging_config,
        )


def _path_or_none(value: Any) -> Path | None:
    if not value:
        return None
    return Path(value).expanduser()


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from a parsed TOML config file.

    Recognized tables: [transcode], [audio], [feasibility], [probe],
    [tools] and [logging].
    """
    transcode = file_config.get("transcode", {})
    audio = file_config.get("audio", {})
    feasibility = file_config.get("feasibility", {})
    probe = file_config.get("probe", {})
    tools = file_config.get("tools", {})
    logging_conf = file_config.get("logging", {})

    return ConfigSource(
        max_long_side=transcode.get("max_long_side"),
        video_bitrate=transcode.get("video_bitrate"),
        prefer_hardware=transcode.get("prefer_hardware"),
        keyframe_interval_seconds=transcode.get("keyframe_interval_seconds"),
        packet_queue_size=transcode.get("packet_queue_size"),
        seek_forward_window=transcode.get("seek_forward_window"),
        audio_bitrate=audio.get("bitrate"),
        budget_mb=feasibility.get("budget_mb"),
        mb_per_second=feasibility.get("mb_per_second"),
        sniff_bytes=feasibility.get("sniff_bytes"),
        probe_backend=probe.get("backend"),
        probe_timeout=probe.get("timeout_seconds"),
        ffprobe_path=_path_or_none(tools.get("ffprobe")),
        logging_level=logging_conf.get("level"),
        logging_file=_path_or_none(logging_conf.get("file")),
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from STV_* environment variables."""
    return ConfigSource(
        max_long_side=reader.get_int("STV_MAX_LONG_SIDE"),
        video_bitrate=reader.get_int("STV_VIDEO_BITRATE"),
        prefer_hardware=reader.get_bool("STV_PREFER_HARDWARE"),
        keyframe_interval_seconds=reader.get_float("STV_KEYFRAME_INTERVAL"),
        packet_queue_size=reader.get_int("STV_PACKET_QUEUE_SIZE"),
        seek_forward_window=reader.get_float("STV_SEEK_FORWARD_WINDOW"),
        audio_bitrate=reader.get_int("STV_AUDIO_BITRATE"),
        budget_mb=reader.get_float("STV_BUDGET_MB"),
        mb_per_second=reader.get_float("STV_MB_PER_SECOND"),
        sniff_bytes=reader.get_int("STV_SNIFF_BYTES"),
        probe_backend=reader.get_str("STV_PROBE_BACKEND"),
        probe_timeout=reader.get_int("STV_PROBE_TIMEOUT"),
        ffprobe_path=reader.get_path("STV_FFPROBE_PATH"),
        logging_level=reader.get_str("STV_LOG_LEVEL"),
        logging_file=reader.get_path("STV_LOG_FILE", must_exist=False),
        logging_format=reader.get_str("STV_LOG_FORMAT"),
    )
