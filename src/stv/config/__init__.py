"""Configuration management for stv.

This module provides configuration loading with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (STV_*)
3. Config file (~/.stv/config.toml)
4. Default values (lowest priority)
"""

from stv.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from stv.config.env import EnvReader
from stv.config.loader import (
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from stv.config.logging_factory import (
    build_logging_config,
    configure_logging_from_cli,
)
from stv.config.models import (
    AudioConfig,
    FeasibilityConfig,
    LoggingConfig,
    ProbeConfig,
    StvConfig,
    ToolPathsConfig,
    TranscodeConfig,
)
from stv.config.toml_parser import TomlParseError, load_toml_file

__all__ = [
    # Models
    "AudioConfig",
    "FeasibilityConfig",
    "LoggingConfig",
    "ProbeConfig",
    "StvConfig",
    "ToolPathsConfig",
    "TranscodeConfig",
    # Loader
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
    # Layering
    "ConfigBuilder",
    "ConfigSource",
    "EnvReader",
    "source_from_env",
    "source_from_file",
    "build_logging_config",
    "configure_logging_from_cli",
    "TomlParseError",
    "load_toml_file",
]
