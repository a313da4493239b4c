"""stv optimize command: transcode files to delivery-ready MP4."""

import asyncio
import json
import logging
from pathlib import Path

import click

from stv.cli.exit_codes import ExitCode
from stv.domain.models import MediaFile
from stv.errors import StvError
from stv.pipeline.orchestrator import optimize_video

logger = logging.getLogger(__name__)

# Progress bar resolution per file
PROGRESS_STEPS = 1000


def _optimize_one(
    media: MediaFile,
    output_dir: Path,
    config,
    platform,
    show_progress: bool,
) -> dict:
    """Optimize a single file and write the artifact. Returns a result row."""
    row: dict = {"file": str(media.path), "status": "unchanged", "output": None}

    if show_progress:
        with click.progressbar(
            length=PROGRESS_STEPS, label=media.name, show_percent=True
        ) as bar:
            done = 0

            def _on_progress(value: float) -> None:
                nonlocal done
                target = int(value * PROGRESS_STEPS)
                if target > done:
                    bar.update(target - done)
                    done = target

            result = asyncio.run(
                optimize_video(
                    media, on_progress=_on_progress, config=config, platform=platform
                )
            )
    else:
        result = asyncio.run(optimize_video(media, config=config, platform=platform))

    if result.changed:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / result.file.name
        output_path.write_bytes(result.file.data)
        row["status"] = "optimized"
        row["output"] = str(output_path)
        row["size_bytes"] = len(result.file.data)
    return row


@click.command("optimize")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Where to write <name>-optimized.mp4 (default: next to each input).",
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
def optimize_command(
    ctx: click.Context,
    files: tuple[Path, ...],
    output_dir: Path | None,
    mime_type: str | None,
    json_output: bool,
) -> None:
    """Optimize FILES one after another.

    Files that cannot or need not be optimized are reported as unchanged.
    A failure on one file is reported and the remaining files still run.

    Exit codes:
      0 - No file failed
      1 - At least one file failed
    """
    config = ctx.obj["config"]
    platform = ctx.obj["platform"]

    rows = []
    for path in files:
        media = MediaFile.from_path(path, mime_type=mime_type)
        try:
            row = _optimize_one(
                media,
                output_dir or path.parent,
                config,
                platform,
                show_progress=not json_output,
            )
        except (StvError, OSError) as e:
            logger.error("Failed to optimize %s: %s", path.name, e)
            row = {"file": str(path), "status": "failed", "error": str(e)}
        rows.append(row)
        if not json_output:
            if row["status"] == "optimized":
                click.echo(f"✓ {path.name} -> {row['output']}")
            elif row["status"] == "unchanged":
                click.echo(f"- {path.name}: unchanged")
            else:
                click.echo(f"✗ {path.name}: {row['error']}", err=True)

    if json_output:
        click.echo(json.dumps(rows, indent=2))

    if any(row["status"] == "failed" for row in rows):
        raise SystemExit(ExitCode.FAILURE)
