"""Saved batch-session progress commands."""

import json

import typer

from batch_pacer.cli.common import SessionArgument, console, open_database, run_async_command
from batch_pacer.storage import ProgressStore

app = typer.Typer(help="Batch progress commands")


@app.command("show")
def show(session_id: SessionArgument) -> None:
    """Print the saved progress of a session as JSON."""

    async def _show() -> dict[str, object] | None:
        async with open_database() as database:
            return await ProgressStore(database).load_progress(session_id)

    progress = run_async_command(_show(), error_prefix="Failed to load progress")
    if progress is None:
        console.print(f"[yellow]No saved progress for session '{session_id}'[/yellow]")
        raise typer.Exit(1)
    console.print_json(json.dumps(progress, default=str))


@app.command("clear")
def clear(session_id: SessionArgument) -> None:
    """Delete the saved progress of a session."""

    async def _clear() -> bool:
        async with open_database() as database:
            return await ProgressStore(database).clear_progress(session_id)

    removed = run_async_command(_clear(), error_prefix="Failed to clear progress")
    if removed:
        console.print(f"[green]Cleared progress for session '{session_id}'[/green]")
    else:
        console.print(f"[yellow]No saved progress for session '{session_id}'[/yellow]")


@app.command("list")
def list_sessions() -> None:
    """List sessions with saved progress."""

    async def _list() -> list[str]:
        async with open_database() as database:
            return await ProgressStore(database).list_sessions()

    sessions = run_async_command(_list(), error_prefix="Failed to list sessions")
    if not sessions:
        console.print("[dim]No saved sessions[/dim]")
        return
    for session_id in sessions:
        console.print(session_id)
