"""Common CLI helpers.

Provides:
- `console`: shared rich console
- `run_async_command`: unified async execution with error handling
- `open_database`: database context bound to the configured URL
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Coroutine
from contextlib import asynccontextmanager
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from batch_pacer.config import get_settings
from batch_pacer.storage import Database

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


@asynccontextmanager
async def open_database() -> AsyncGenerator[Database, None]:
    """Open the configured database, creating tables if needed."""
    async with Database(get_settings().database_url) as database:
        yield database


SessionArgument = Annotated[
    str,
    typer.Argument(help="Session identifier used when the progress was saved"),
]
"""Required positional session ID argument.

Usage:
    def show(session_id: SessionArgument) -> None:
"""
