"""Replay persisted update metadata."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from uup_replay.core.archive import FeatureManifestArchiveReader
from uup_replay.core.build_string import resolve_with_strategy
from uup_replay.core.config import AppConfig
from uup_replay.core.errors import MetadataError
from uup_replay.core.metadata import ReplayMetadataSource
from uup_replay.core.replay import (
    MetadataExportProcessor,
    ReplayOptions,
    ReplayOrchestrator,
    ReplayOutcome,
    ReplayStatus,
)
from uup_replay.core.types import Fixup


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract context objects from Click context."""
    config = ctx.obj["config"]
    console = ctx.obj["console"]
    verbose = ctx.obj.get("verbose", False)
    debug = ctx.obj.get("debug", False)
    return config, console, verbose, debug


def _outcome_to_dict(outcome: ReplayOutcome) -> dict[str, object]:
    info: dict[str, object] = {
        "status": outcome.status.value,
        "build_string": outcome.build_string,
        "title": outcome.update.title if outcome.update else None,
        "error": outcome.error,
    }
    if outcome.result is not None:
        info.update({
            "placed": [str(p.path) for p in outcome.result.placed],
            "unmatched": [str(p) for p in outcome.result.unmatched],
            "failed": [str(p) for p in outcome.result.failed],
            "duplicates": [str(p) for p in outcome.result.duplicates],
            "licenses_written": [str(p) for p in outcome.result.licenses_written],
            "licenses_skipped": outcome.result.licenses_skipped,
            "licenses_failed": outcome.result.licenses_failed,
        })
    return info


def _print_outcome(console: Console, outcome: ReplayOutcome, output_format: str, verbose: bool) -> None:
    if output_format == "json":
        # Use regular print for JSON to avoid Rich formatting
        print(json.dumps(_outcome_to_dict(outcome), indent=2))
        return

    if outcome.status is ReplayStatus.aborted:
        console.print(f"[red]Replay aborted: {escape(outcome.error or '')}[/red]")
        return

    table = Table(title="Replay Summary", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    if outcome.update is not None:
        table.add_row("Title", outcome.update.title)
    table.add_row("Build", outcome.build_string or "")
    table.add_row("Status", outcome.status.value)

    result = outcome.result
    if result is not None:
        table.add_row("Placed", str(result.placed_count))
        table.add_row("Unmatched", str(len(result.unmatched)))
        table.add_row("Failed", str(len(result.failed)))
        table.add_row("Duplicates", str(len(result.duplicates)))
        table.add_row("Licenses written", str(len(result.licenses_written)))
        table.add_row("Licenses skipped", str(result.licenses_skipped))
        table.add_row("Licenses failed", str(result.licenses_failed))

    console.print(table)

    if verbose and result is not None:
        for placed in result.placed:
            console.print(f"[green]✓ {placed.source.name} -> {placed.path}[/green]")
        for path in result.unmatched:
            console.print(f"[yellow]? {path.name}: no matching package[/yellow]")
        for path in result.duplicates:
            console.print(f"[yellow]= {path.name}: duplicate of a placed package[/yellow]")
        for path in result.failed:
            console.print(f"[red]✗ {path.name}: failed[/red]")


@click.command("replay")
@click.argument("metadata", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--fixup",
    type=click.Choice([f.value for f in Fixup], case_sensitive=False),
    help="Fix-up to apply instead of processing the update",
)
@click.option(
    "--appx-root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory with loose appx files",
)
@click.option(
    "--cabs-root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory scanned for license CABs (defaults to the appx root)",
)
@click.option(
    "--compdb-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory of CompDB documents used to refresh manifests",
)
@click.option(
    "--output-folder",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output folder for updates handed off for processing",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    help="Threads used to hash loose files",
)
@click.pass_context
def replay(
    ctx: click.Context,
    metadata: Path,
    fixup: str | None,
    appx_root: Path | None,
    cabs_root: Path | None,
    compdb_dir: Path | None,
    output_folder: Path | None,
    workers: int | None,
) -> None:
    """Replay a persisted update metadata document.

    With --fixup appx the loose appx_* files in the appx root are identified
    by content hash, moved to the paths the canonical CompDB declares, and
    their licenses written next to them. Without a fix-up the metadata is
    handed off for processing.
    """
    config, console, verbose, _ = _get_context_objects(ctx)

    selected_fixup = Fixup(fixup.lower()) if fixup else None
    appx_root = appx_root or config.appx_root
    if selected_fixup is Fixup.APPX and appx_root is None:
        raise click.UsageError("--appx-root is required for the appx fix-up")

    options = ReplayOptions(
        fixup=selected_fixup,
        appx_root=appx_root,
        cabs_root=cabs_root or config.cabs_root,
        loose_file_pattern=config.loose_file_pattern,
        container_patterns=tuple(config.container_patterns),
        hash_workers=workers or config.hash_workers,
    )

    orchestrator = ReplayOrchestrator(
        source=ReplayMetadataSource(compdb_dir or config.compdb_dir),
        archive_reader=FeatureManifestArchiveReader(config.extractor, config.extractor_timeout),
        processor=MetadataExportProcessor(output_folder or config.output_folder),
    )
    outcome = orchestrator.run(metadata, options)

    _print_outcome(console, outcome, config.output_format, verbose)

    if outcome.status is ReplayStatus.aborted:
        ctx.exit(1)


@click.command("build-string")
@click.argument("metadata", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def build_string(ctx: click.Context, metadata: Path) -> None:
    """Print the build label derived from a metadata document."""
    config, console, verbose, _ = _get_context_objects(ctx)

    try:
        update = ReplayMetadataSource().load(metadata)
    except MetadataError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise click.Abort() from e

    label, strategy = resolve_with_strategy(update.manifests, update.title, update.build_string)

    if config.output_format == "json":
        print(json.dumps({"build_string": label, "strategy": strategy}, indent=2))
    else:
        console.print(label)
        if verbose:
            console.print(f"[dim]Resolved by: {strategy}[/dim]")
