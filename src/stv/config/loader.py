"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables (STV_*)
3. Config file (~/.stv/config.toml)
4. Default values

Environment variables:
- STV_CONFIG_PATH: Path to config file (overrides default location)
- STV_MAX_LONG_SIDE, STV_VIDEO_BITRATE, STV_PREFER_HARDWARE
- STV_KEYFRAME_INTERVAL, STV_PACKET_QUEUE_SIZE, STV_SEEK_FORWARD_WINDOW
- STV_AUDIO_BITRATE
- STV_BUDGET_MB, STV_MB_PER_SECOND, STV_SNIFF_BYTES
- STV_PROBE_BACKEND, STV_PROBE_TIMEOUT, STV_FFPROBE_PATH
- STV_LOG_LEVEL, STV_LOG_FILE, STV_LOG_FORMAT
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from stv.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from stv.config.env import EnvReader
from stv.config.models import StvConfig
from stv.config.toml_parser import load_toml_file

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".stv"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Config file location, overridable with STV_CONFIG_PATH."""
    reader = env_reader or EnvReader()
    env_path = reader.get_str("STV_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from a TOML file.

    Results are cached with mtime-based invalidation; use
    clear_config_cache() to force a reload. Thread-safe.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise TomlParseError on parse failures.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    max_long_side: int | None = None,
    video_bitrate: int | None = None,
    prefer_hardware: bool | None = None,
    probe_backend: str | None = None,
    ffprobe_path: Path | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> StvConfig:
    """Get stv configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides STV_CONFIG_PATH).
        max_long_side: CLI override for the output long-side cap.
        video_bitrate: CLI override for the video bitrate.
        prefer_hardware: CLI override for hardware encoder preference.
        probe_backend: CLI override for the metadata probe backend.
        ffprobe_path: CLI override for the ffprobe executable.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise TomlParseError on config file parse failures.

    Returns:
        StvConfig with merged configuration.

    Raises:
        TomlParseError: When strict=True and the config file cannot be parsed.
        ValueError: When a merged value fails validation.
    """
    reader = env_reader or EnvReader()

    path = config_path or get_default_config_path(reader)
    file_config = load_config_file(path, strict=strict)

    cli_source = ConfigSource(
        max_long_side=max_long_side,
        video_bitrate=video_bitrate,
        prefer_hardware=prefer_hardware,
        probe_backend=probe_backend,
        ffprobe_path=ffprobe_path,
    )

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config), source_name="file")
    builder.apply(source_from_env(reader), source_name="env")
    builder.apply(cli_source, source_name="cli")
    return builder.build()
