"""
Lattice CLI.

Commands:
    lattice sync      Sync the markdown tree into the knowledge graph
    lattice status    Show which documents need syncing
    lattice validate  Check documents and the stored graph
    lattice search    Semantic search over documents and entities
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from lattice.config import Config
from lattice.core.documents.watcher import DocumentWatcher
from lattice.core.factory import SyncServiceFactory
from lattice.models.sync import ChangeType, DocumentChange, SyncOptions, SyncResult
from lattice.models.validation import IssueSeverity, ValidationReport
from lattice.services.cascade_analyzer import format_warnings
from lattice.services.graph_validator import GraphValidator
from lattice.services.sync_service import SyncService
from lattice.utils.logger import setup_logging

console = Console()
app = typer.Typer(
    name="lattice",
    help="Incremental markdown to knowledge graph sync",
    no_args_is_help=True,
)


def _load_config(config_path: Path | None, verbose: bool) -> Config:
    config = Config.from_env_or_yaml(config_path or "config.yaml")
    setup_logging(
        level="DEBUG" if verbose else config.logging.level,
        log_to_file=config.logging.log_to_file,
        log_dir=config.logging.log_dir,
        file_rotation=config.logging.file_rotation,
        file_retention=config.logging.file_retention,
        compression=config.logging.compression,
        serialize=config.logging.serialize,
    )
    return config


CHANGE_MARKERS = {
    ChangeType.NEW: ("+", "green", "New"),
    ChangeType.UPDATED: ("~", "cyan", "Updated"),
    ChangeType.DELETED: ("-", "red", "Deleted"),
    ChangeType.UNCHANGED: ("·", "dim", "Unchanged"),
}


def _print_changes(changes: list[DocumentChange], show_unchanged: bool = False) -> None:
    """Print changes grouped by type, one path per line."""
    for change_type, (marker, style, heading) in CHANGE_MARKERS.items():
        if change_type == ChangeType.UNCHANGED and not show_unchanged:
            continue
        group = [change for change in changes if change.change_type == change_type]
        if not group:
            continue
        console.print(f"\n[{style}]{heading} ({len(group)}):[/{style}]")
        for change in group:
            console.print(f"  [{style}]{marker}[/{style}] {change.path}", highlight=False)


def _print_result(result: SyncResult, dry_run: bool = False) -> None:
    if dry_run:
        _print_changes(result.changes)

    table = Table(title="Sync summary (dry run)" if dry_run else "Sync summary")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Updated", justify="right", style="cyan")
    table.add_column("Deleted", justify="right", style="red")
    table.add_column("Unchanged", justify="right", style="dim")
    table.add_column("Embeddings", justify="right")
    table.add_column("Duration", justify="right")
    table.add_row(
        str(result.added),
        str(result.updated),
        str(result.deleted),
        str(result.unchanged),
        f"{result.embeddings_generated} docs / {result.entity_embeddings_generated} entities",
        f"{result.duration:.2f}s",
    )
    console.print(table)

    if result.cascade_warnings:
        console.print("\n[yellow]⚠ Cascade warnings[/yellow]")
        console.print(format_warnings(result.cascade_warnings), markup=False, highlight=False)

    if result.warnings:
        console.print(f"\n[yellow]⚠ {len(result.warnings)} warning(s)[/yellow]")
        for entry in result.warnings:
            console.print(f"  [yellow]{entry.path}[/yellow]: {entry.error}", highlight=False)

    if result.errors:
        console.print(f"\n[red]✗ {len(result.errors)} error(s)[/red]")
        for entry in result.errors:
            console.print(f"  [red]{entry.path}[/red]: {entry.error}", highlight=False)
    elif not dry_run:
        console.print("[green]✓[/green] Sync complete")


async def _watch(service: SyncService, options: SyncOptions, docs_path: Path, debounce: float) -> None:
    console.print(f"[blue]Watching {docs_path} for changes (Ctrl-C to stop)...[/blue]")
    async with DocumentWatcher(docs_path, debounce) as watcher:
        while True:
            await watcher.wait_for_change()
            result = await service.sync(options)
            _print_result(result)


async def _run_sync(config: Config, options: SyncOptions, watch: bool) -> SyncResult:
    service = await SyncServiceFactory.create(config, with_extractor=options.ai_extraction)
    try:
        result = await service.sync(options)
        _print_result(result, dry_run=options.dry_run)

        if watch:
            await _watch(service, options, Path(config.docs.path), config.sync.watch_debounce)
        return result
    finally:
        await service.checkpoint()
        await service.close()


@app.command()
def sync(
    force: bool = typer.Option(False, "--force", help="Re-process documents even if unchanged"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change without writing"),
    paths: list[str] | None = typer.Option(
        None, "--path", "-p", help="Only sync these documents (repeatable)"
    ),
    skip_cascade: bool = typer.Option(False, "--skip-cascade", help="Skip cascade impact analysis"),
    no_embeddings: bool = typer.Option(False, "--no-embeddings", help="Do not generate embeddings"),
    ai: bool = typer.Option(False, "--ai", help="Extract entities with the configured LLM"),
    strict: bool = typer.Option(False, "--strict", help="Abort when required frontmatter fields are missing"),
    watch: bool = typer.Option(False, "--watch", help="Keep running and re-sync on file changes"),
    config_path: Path | None = typer.Option(None, "--config", help="Path to a YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """
    Sync markdown documents into the knowledge graph.

    Only new and changed documents are processed. Exits with status 1 when
    any document failed, after printing the full summary.

    Examples:
        lattice sync                     # Incremental sync
        lattice sync --force             # Re-process everything
        lattice sync -p docs/a.md        # Sync one document
        lattice sync --dry-run           # Preview changes
        lattice sync --watch             # Re-sync on every edit
    """
    if watch and (dry_run or force):
        console.print("[red]Error:[/red] --watch cannot be combined with --dry-run or --force")
        raise typer.Exit(1)

    config = _load_config(config_path, verbose)
    options = SyncOptions(
        force=force,
        dry_run=dry_run,
        paths=paths or None,
        skip_cascade=skip_cascade,
        embeddings=not no_embeddings,
        ai_extraction=ai,
        strict=strict,
    )

    try:
        result = asyncio.run(_run_sync(config, options, watch))
    except KeyboardInterrupt:
        console.print("\n[blue]Stopped[/blue]")
        return
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not result.success:
        raise typer.Exit(1)


async def _run_status(config: Config, paths: list[str] | None) -> SyncResult:
    service = await SyncServiceFactory.create(config)
    try:
        return await service.status(paths)
    finally:
        await service.close()


@app.command()
def status(
    paths: list[str] | None = typer.Option(None, "--path", "-p", help="Only check these documents (repeatable)"),
    show_unchanged: bool = typer.Option(False, "--all", "-a", help="Also list unchanged documents"),
    config_path: Path | None = typer.Option(None, "--config", help="Path to a YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Show which documents are new, updated or deleted since the last sync."""
    config = _load_config(config_path, verbose)

    try:
        result = asyncio.run(_run_status(config, paths or None))
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _print_changes(result.changes, show_unchanged=show_unchanged)
    for entry in result.errors:
        console.print(f"  [red]{entry.path}[/red]: {entry.error}", highlight=False)

    pending = sum(1 for change in result.changes if change.change_type != ChangeType.UNCHANGED)
    if pending:
        console.print(f"\nTotal: {pending} document(s) need syncing")
    else:
        console.print("[green]✓[/green] All documents are in sync")


def _print_report(title: str, report: ValidationReport, fix: bool) -> None:
    console.print(f"\n[bold]{title}[/bold]")
    for issue in report.issues:
        style = "red" if issue.severity == IssueSeverity.ERROR else "yellow"
        where = f"{issue.label}:{issue.path}" if issue.label else issue.path
        console.print(f"  [{style}]{issue.severity.value}[/{style}] {where}: {issue.message}", highlight=False)
        if fix and issue.suggestion:
            console.print(f"      [dim]→ {issue.suggestion}[/dim]", highlight=False)
    console.print(f"  {len(report.errors)} error(s), {len(report.warnings)} warning(s)")


async def _run_validate(config: Config, graph: bool) -> tuple[ValidationReport, ValidationReport | None]:
    service = await SyncServiceFactory.create(config)
    try:
        documents = await service.validate_documents()
        graph_report = await GraphValidator(service.graph_store).validate() if graph else None
        return documents, graph_report
    finally:
        await service.close()


@app.command()
def validate(
    graph: bool = typer.Option(True, "--graph/--no-graph", help="Also check the stored graph"),
    fix: bool = typer.Option(False, "--fix", help="Show a suggested fix for each issue"),
    config_path: Path | None = typer.Option(None, "--config", help="Path to a YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """
    Validate documents on disk and the stored graph without writing anything.

    Exits with status 1 when any error is found; warnings alone pass.
    """
    config = _load_config(config_path, verbose)

    try:
        documents, graph_report = asyncio.run(_run_validate(config, graph))
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"Scanned {documents.documents_checked} documents")
    console.print(f"Found {documents.entities_checked} unique entities")
    _print_report("Documents", documents, fix)
    if graph_report is not None:
        console.print(f"\nChecked {graph_report.total_nodes} graph nodes")
        _print_report("Graph", graph_report, fix)

    reports = [documents] + ([graph_report] if graph_report is not None else [])
    if any(not report.valid for report in reports):
        raise typer.Exit(1)
    console.print("\n[green]✓[/green] All validations passed!")


async def _run_search(config: Config, text: str, limit: int):
    service = await SyncServiceFactory.create(config)
    try:
        return await service.search(text, limit)
    finally:
        await service.close()


@app.command()
def search(
    text: str = typer.Argument(..., help="Search text"),
    limit: int = typer.Option(10, "--limit", "-k", help="Max results"),
    config_path: Path | None = typer.Option(None, "--config", help="Path to a YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Semantic search over documents and entities."""
    config = _load_config(config_path, verbose)

    try:
        hits = asyncio.run(_run_search(config, text, limit))
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not hits:
        console.print("[blue]No results[/blue]")
        return

    table = Table(title=f"Results for {text!r}")
    table.add_column("Score", justify="right")
    table.add_column("Type")
    table.add_column("Name")
    table.add_column("Title / description")
    for hit in hits:
        table.add_row(f"{hit.score:.3f}", hit.label, hit.name, hit.title or hit.description or "")
    console.print(table)


if __name__ == "__main__":
    app()
