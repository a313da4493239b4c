"""Tests for ConfigBuilder and config sources."""

from __future__ import annotations

from pathlib import Path

import pytest

from stv.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from stv.config.env import EnvReader


class TestConfigBuilder:
    """Tests for ConfigBuilder layering."""

    def test_defaults_when_nothing_applied(self) -> None:
        config = ConfigBuilder().build()
        assert config.transcode.max_long_side == 1920
        assert config.transcode.video_bitrate == 2_800_000
        assert config.audio.bitrate == 96_000
        assert config.feasibility.budget_mb == 300.0
        assert config.probe.backend == "pyav"
        assert config.tools.ffprobe is None
        assert config.logging.level == "info"

    def test_later_source_wins(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(video_bitrate=1_000_000), source_name="file")
        builder.apply(ConfigSource(video_bitrate=2_000_000), source_name="env")
        assert builder.build().transcode.video_bitrate == 2_000_000

    def test_none_does_not_override(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(max_long_side=1280), source_name="file")
        builder.apply(ConfigSource(max_long_side=None), source_name="env")
        assert builder.build().transcode.max_long_side == 1280

    def test_false_overrides_true(self) -> None:
        """Falsy values other than None are real settings."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(prefer_hardware=True))
        builder.apply(ConfigSource(prefer_hardware=False))
        assert builder.build().transcode.prefer_hardware is False

    def test_invalid_value_raises_on_build(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(probe_backend="mediainfo"))
        with pytest.raises(ValueError, match="backend must be one of"):
            builder.build()


class TestSourceFromFile:
    """Tests for source_from_file function."""

    def test_reads_every_table(self) -> None:
        source = source_from_file(
            {
                "transcode": {
                    "max_long_side": 1280,
                    "video_bitrate": 2_000_000,
                    "prefer_hardware": False,
                    "keyframe_interval_seconds": 1.0,
                    "packet_queue_size": 16,
                    "seek_forward_window": 0.5,
                },
                "audio": {"bitrate": 128_000},
                "feasibility": {"budget_mb": 100.0, "mb_per_second": 0.5},
                "probe": {"backend": "ffprobe", "timeout_seconds": 10},
                "tools": {"ffprobe": "/opt/ffmpeg/bin/ffprobe"},
                "logging": {"level": "debug", "format": "json"},
            }
        )
        assert source.max_long_side == 1280
        assert source.prefer_hardware is False
        assert source.packet_queue_size == 16
        assert source.seek_forward_window == 0.5
        assert source.audio_bitrate == 128_000
        assert source.mb_per_second == 0.5
        assert source.probe_backend == "ffprobe"
        assert source.probe_timeout == 10
        assert source.ffprobe_path == Path("/opt/ffmpeg/bin/ffprobe")
        assert source.logging_format == "json"

    def test_missing_tables_leave_none(self) -> None:
        source = source_from_file({})
        assert source.max_long_side is None
        assert source.ffprobe_path is None
        assert source.logging_file is None


class TestSourceFromEnv:
    """Tests for source_from_env function."""

    def test_reads_stv_variables(self, tmp_path: Path) -> None:
        reader = EnvReader(
            env={
                "STV_MAX_LONG_SIDE": "1280",
                "STV_VIDEO_BITRATE": "1500000",
                "STV_PREFER_HARDWARE": "no",
                "STV_AUDIO_BITRATE": "64000",
                "STV_BUDGET_MB": "50",
                "STV_PROBE_BACKEND": "ffprobe",
                "STV_FFPROBE_PATH": str(tmp_path),
                "STV_LOG_FILE": str(tmp_path / "logs" / "stv.log"),
            }
        )
        source = source_from_env(reader)
        assert source.max_long_side == 1280
        assert source.video_bitrate == 1_500_000
        assert source.prefer_hardware is False
        assert source.audio_bitrate == 64_000
        assert source.budget_mb == 50.0
        assert source.probe_backend == "ffprobe"
        assert source.ffprobe_path == tmp_path
        assert source.logging_file == tmp_path / "logs" / "stv.log"

    def test_missing_ffprobe_path_ignored(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"STV_FFPROBE_PATH": str(tmp_path / "missing")})
        assert source_from_env(reader).ffprobe_path is None

    def test_empty_environment(self) -> None:
        source = source_from_env(EnvReader(env={}))
        assert source == ConfigSource()
