"""stv doctor command: report what this machine can transcode.

Shows the capabilities PyAV's FFmpeg build offers and which encoder the
pipeline would pick for typical 1080p and 4K sources.
"""

import json

import click

from stv.cli.exit_codes import ExitCode
from stv.core.geometry import compute_target_plan
from stv.pipeline.feasibility import hardware_preference
from stv.pipeline.negotiation import select_video_encoder_config

# Representative sources: (label, width, height)
PROBE_SOURCES = (
    ("1080p", 1920, 1080),
    ("2160p", 3840, 2160),
)


def _format_status(available: bool) -> str:
    """Format status for display."""
    return "✓" if available else "✗"


def _negotiate(platform, config, width: int, height: int) -> dict:
    plan = compute_target_plan(
        width, height, max_long_side=config.transcode.max_long_side
    )
    entry: dict = {
        "source": f"{width}x{height}",
        "target": f"{plan.width}x{plan.height}@{plan.fps}",
        "codec": None,
        "encoder": None,
        "hardware": None,
        "error": None,
    }
    try:
        selection = select_video_encoder_config(
            platform.codecs,
            plan,
            bitrate=config.transcode.video_bitrate,
            preference=hardware_preference(config),
        )
    except Exception as e:
        entry["error"] = str(e)
        return entry
    entry["codec"] = selection.codec_id.value
    entry["encoder"] = selection.config.encoder
    entry["hardware"] = selection.config.hardware
    return entry


@click.command("doctor")
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output results as JSON",
)
@click.pass_context
def doctor_command(ctx: click.Context, json_output: bool) -> None:
    """Check transcoding capabilities of this environment.

    Exit codes:
      0 - Environment can transcode
      2 - A required capability is missing
    """
    config = ctx.obj["config"]
    platform = ctx.obj["platform"]

    env = platform.environment()
    encoders = {}
    if env.supported:
        for label, width, height in PROBE_SOURCES:
            encoders[label] = _negotiate(platform, config, width, height)

    if json_output:
        click.echo(
            json.dumps(
                {
                    "supported": env.supported,
                    "video_encoders": list(env.video_encoders),
                    "audio_encoder": env.audio_encoder,
                    "rasterizer": env.rasterizer,
                    "negotiated": encoders,
                },
                indent=2,
            )
        )
    else:
        click.echo("straight-to-video Environment Check")
        click.echo("=" * 40)
        click.echo()
        click.echo("Capabilities:")
        click.echo("-" * 20)
        video_list = ", ".join(env.video_encoders) or "none"
        click.echo(
            f"  {_format_status(bool(env.video_encoders))} Video encoders: {video_list}"
        )
        click.echo(f"  {_format_status(env.audio_encoder)} AAC encoder")
        click.echo(f"  {_format_status(env.rasterizer)} Frame scaling")
        click.echo()

        if encoders:
            click.echo("Negotiated Encoders:")
            click.echo("-" * 20)
            for label, entry in encoders.items():
                if entry["encoder"]:
                    kind = "hardware" if entry["hardware"] else "software"
                    click.echo(
                        f"  ✓ {label} -> {entry['target']}: "
                        f"{entry['codec']} via {entry['encoder']} ({kind})"
                    )
                else:
                    click.echo(f"  ✗ {label} -> {entry['target']}: {entry['error']}")
            click.echo()

        if env.supported:
            click.echo("Environment can transcode.")
        else:
            click.echo("Environment cannot transcode; files will pass through.")

    if not env.supported:
        raise SystemExit(ExitCode.UNSUPPORTED)
