"""CLI module for straight-to-video."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import click

from stv.cli.exit_codes import ExitCode

if TYPE_CHECKING:
    from stv.config.models import LoggingConfig

_logging_configured: bool = False

logger = logging.getLogger(__name__)


def _configure_logging(
    logging_config: "LoggingConfig",
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from the resolved config and CLI options, once."""
    global _logging_configured
    if _logging_configured:
        return

    from stv.config.logging_factory import configure_logging_from_cli

    configure_logging_from_cli(
        logging_config,
        level=log_level,
        file=log_file,
        format="json" if log_json else None,
    )
    _logging_configured = True


@click.group()
@click.version_option(package_name="straight-to-video")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Config file (default: ~/.stv/config.toml or STV_CONFIG_PATH).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.option(
    "--max-long-side",
    type=click.IntRange(min=2),
    default=None,
    help="Override the output long-side cap in pixels (default: 1920).",
)
@click.option(
    "--video-bitrate",
    type=click.IntRange(min=1),
    default=None,
    help="Override the video bitrate in bits per second.",
)
@click.option(
    "--prefer-hardware/--prefer-software",
    default=None,
    help="Try hardware or software encoders first.",
)
@click.option(
    "--probe-backend",
    type=click.Choice(["pyav", "ffprobe"]),
    default=None,
    help="Override the metadata probe backend.",
)
@click.option(
    "--ffprobe-path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="ffprobe executable for the ffprobe backend.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
    max_long_side: int | None,
    video_bitrate: int | None,
    prefer_hardware: bool | None,
    probe_backend: str | None,
    ffprobe_path: Path | None,
) -> None:
    """straight-to-video - Re-encode videos for upload, on this machine."""
    ctx.ensure_object(dict)

    # Preserve config/platform if passed in by tests
    if "config" not in ctx.obj:
        from stv.config import TomlParseError, get_config

        try:
            ctx.obj["config"] = get_config(
                config_path=config_path,
                max_long_side=max_long_side,
                video_bitrate=video_bitrate,
                prefer_hardware=prefer_hardware,
                probe_backend=probe_backend,
                ffprobe_path=ffprobe_path,
                strict=True,
            )
        except (TomlParseError, ValueError) as e:
            click.echo(f"Error: invalid configuration: {e}", err=True)
            raise SystemExit(ExitCode.CONFIG_ERROR) from e

    _configure_logging(ctx.obj["config"].logging, log_level, log_file, log_json)

    if "platform" not in ctx.obj:
        from stv.platform import PyAVPlatform

        ctx.obj["platform"] = PyAVPlatform(ctx.obj["config"])


# Defer import to avoid circular dependency
def _register_commands():
    from stv.cli.check import check_command
    from stv.cli.doctor import doctor_command
    from stv.cli.optimize import optimize_command

    main.add_command(check_command)
    main.add_command(doctor_command)
    main.add_command(optimize_command)


_register_commands()
