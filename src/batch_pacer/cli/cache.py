"""Response cache maintenance commands."""

import json
from pathlib import Path
from typing import Any

import typer
from rich.table import Table

from batch_pacer.cli.common import console, open_database, run_async_command
from batch_pacer.storage import ResponseCache, generate_cache_key

app = typer.Typer(help="Response cache commands")


@app.command("stats")
def stats() -> None:
    """Show entry count, size and age range of the cache."""

    async def _stats() -> None:
        async with open_database() as database:
            cache = ResponseCache(database)
            result = await cache.get_stats()

        table = Table(title=f"Cache '{cache.namespace}'")
        table.add_column("Metric", style="cyan")
        table.add_column("Value")
        table.add_row("Entries", str(result.count))
        table.add_row("Total size", f"{result.total_size_kb} KB")
        table.add_row("Oldest", str(result.oldest) if result.oldest else "-")
        table.add_row("Newest", str(result.newest) if result.newest else "-")
        console.print(table)

    run_async_command(_stats(), error_prefix="Failed to read cache")


@app.command("prune")
def prune(
    days: int | None = typer.Option(
        None,
        "--days",
        "-d",
        min=0,
        help="Remove entries older than this many days (default: cache TTL)",
    ),
) -> None:
    """Remove expired cache entries."""

    async def _prune() -> int:
        async with open_database() as database:
            return await ResponseCache(database).clear_old_cache(days)

    cleared = run_async_command(_prune(), error_prefix="Prune failed")
    console.print(f"[green]Cleared {cleared} old cache entries[/green]")


@app.command("clear")
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove every cache entry and saved progress."""
    if not yes:
        typer.confirm("Delete all cached responses and saved progress?", abort=True)

    async def _clear() -> int:
        async with open_database() as database:
            return await ResponseCache(database).clear_all()

    cleared = run_async_command(_clear(), error_prefix="Clear failed")
    console.print(f"[green]Cleared all cache ({cleared} items)[/green]")


@app.command("export")
def export(
    path: Path = typer.Argument(..., help="JSON file to write"),
) -> None:
    """Export all cache entries to a JSON file."""

    async def _export() -> dict[str, Any]:
        async with open_database() as database:
            return await ResponseCache(database).export_cache()

    data = run_async_command(_export(), error_prefix="Export failed")
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    console.print(f"[green]Exported {len(data)} cache items to {path}[/green]")


@app.command("import")
def import_(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file to read"),
) -> None:
    """Import cache entries from a JSON export."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] {path} is not valid JSON ({e})")
        raise typer.Exit(1) from None
    if not isinstance(data, dict):
        console.print("[red]Error:[/red] Expected a JSON object keyed by cache key")
        raise typer.Exit(1)

    async def _import() -> int:
        async with open_database() as database:
            return await ResponseCache(database).import_cache(data)

    imported = run_async_command(_import(), error_prefix="Import failed")
    console.print(f"[green]Imported {imported} cache items[/green]")


@app.command("key")
def key(prompt: str = typer.Argument(..., help="Request text to fingerprint")) -> None:
    """Print the cache key a request maps to."""
    console.print(generate_cache_key(prompt))
