"""stv check command: run the feasibility gate on files."""

import asyncio
import json
from pathlib import Path

import click

from stv.cli.exit_codes import ExitCode
from stv.domain.models import MediaFile
from stv.pipeline.orchestrator import can_optimize_video


def _format_status(ok: bool) -> str:
    return "✓" if ok else "✗"


def _format_details(details: dict) -> str:
    if not details:
        return ""
    parts = []
    for key, value in details.items():
        if isinstance(value, float):
            value = f"{value:.2f}"
        parts.append(f"{key}={value}")
    return " (" + ", ".join(parts) + ")"


@click.command("check")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--mime",
    "mime_type",
    default=None,
    help="Declared MIME type for every file (default: guessed from the name).",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output results as JSON",
)
@click.pass_context
def check_command(
    ctx: click.Context,
    files: tuple[Path, ...],
    mime_type: str | None,
    json_output: bool,
) -> None:
    """Check whether FILES can be optimized here.

    Exit codes:
      0 - Every file can be optimized
      1 - At least one file cannot
    """
    config = ctx.obj["config"]
    platform = ctx.obj["platform"]

    async def _check_all() -> list[tuple[Path, dict]]:
        results = []
        for path in files:
            media = MediaFile.from_path(path, mime_type=mime_type)
            result = await can_optimize_video(media, config=config, platform=platform)
            results.append((path, result.to_dict()))
        return results

    results = asyncio.run(_check_all())

    if json_output:
        click.echo(
            json.dumps(
                [{"file": str(path), **result} for path, result in results], indent=2
            )
        )
    else:
        for path, result in results:
            click.echo(
                f"{_format_status(result['ok'])} {path.name}: {result['reason']}"
                f"{_format_details(result['details'])}"
            )

    if not all(result["ok"] for _, result in results):
        raise SystemExit(ExitCode.FAILURE)
