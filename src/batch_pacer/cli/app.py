"""Main CLI application for Batch Pacer."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from batch_pacer import __version__
from batch_pacer.cli import cache as cache_cmd
from batch_pacer.cli import progress as progress_cmd
from batch_pacer.config import get_settings
from batch_pacer.logging import setup_logging

app = typer.Typer(
    name="batch-pacer",
    help="Maintain the response cache and saved progress of rate-limited batches.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"batch-pacer version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """Batch Pacer - rate-limited batch scheduling toolkit."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


# Register subcommands
app.add_typer(cache_cmd.app, name="cache")
app.add_typer(progress_cmd.app, name="progress")


if __name__ == "__main__":
    app()
