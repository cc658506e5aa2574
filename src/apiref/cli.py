"""Command line interface.

Usage:
    apiref build --settings settings.json -v
    apiref build --force --range -10
    apiref manifest ref/manifest --json
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from apiref.codec import decode_manifest, manifest_to_json
from apiref.config import Settings
from apiref.errors import ApirefError
from apiref.pipeline import run_pipeline
from apiref.source import ArchiveClient, RetryingSource, SnapshotSource

app = typer.Typer(help="Build and inspect the versioned API reference history.")
logger = logging.getLogger(__name__)


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _make_source(settings: Settings, base_dir: Path) -> SnapshotSource:
    source: SnapshotSource = ArchiveClient(base_dir=base_dir)
    if settings.retry.max_attempts > 1:
        source = RetryingSource(source, settings.retry)
    return source


@app.command()
def build(
    settings_path: Optional[Path] = typer.Option(
        None, "--settings", "-s", help="Settings file (default: ./settings.json if present)"
    ),
    force: bool = typer.Option(False, "--force", help="Ignore the manifest and recompute every patch"),
    build_range: Optional[str] = typer.Option(
        None, "--range", help="Builds to process: 'N' or 'A:B', negative counts from the end"
    ),
    rewind: Optional[bool] = typer.Option(
        None, "--rewind/--no-rewind", help="Drop builds newer than the newest live build"
    ),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Verbose output (-vv for debug)"),
) -> None:
    """Fetch builds, update the patch history and write the output files."""
    _configure_logging(verbose)
    try:
        settings = Settings.load(settings_path)
        if rewind is not None:
            settings.build.disable_rewind = not rewind
        base_dir = settings_path.resolve().parent if settings_path else Path.cwd()
        result = run_pipeline(
            settings,
            _make_source(settings, base_dir),
            force=force,
            build_range=build_range,
        )
    except (ApirefError, ValueError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(
        f"{len(result.patches)} patches ({result.new_patches} new), "
        f"{len(result.graph.classes)} classes, {len(result.graph.enums)} enums"
    )
    for path in result.paths:
        typer.echo(f"wrote {path}")


@app.command()
def manifest(
    path: Path = typer.Argument(..., help="Manifest file"),
    as_json: bool = typer.Option(False, "--json", help="Export the manifest as JSON"),
    lenient: bool = typer.Option(False, "--lenient", help="Decode unknown value tags as empty"),
) -> None:
    """Summarize or export a manifest."""
    try:
        patches = decode_manifest(path.read_bytes(), strict=not lenient)
    except (ApirefError, OSError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from e

    if as_json:
        typer.echo(manifest_to_json(patches))
        return
    for patch in patches:
        typer.echo(f"{patch.info.version}\t{patch.info.hash}\t{patch.config}\t{len(patch.actions)} actions")
    typer.echo(f"{len(patches)} patches")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
