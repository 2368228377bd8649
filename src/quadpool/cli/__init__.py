"""quadpool CLI.

Built with Typer. Global logging options are handled by the app callback,
which runs before any command; commands live in ``cli/commands``.

Package structure:
    cli/
    ├── __init__.py           # This file - app assembly
    ├── helpers.py            # Logging state, config assembly, query parsing
    ├── output.py             # Rich formatting
    └── commands/
        ├── run.py            # run: interactive query loop
        └── integrate.py      # integrate, integrands
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from quadpool import __version__

from . import helpers as helpers
from .commands import integrands, integrate, run
from .helpers import configure_global_logging, set_log_file, set_log_format, set_log_level
from .output import console

app = typer.Typer(
    name="quadpool",
    help="Parallel trapezoid-rule integration with bounded job concurrency",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"quadpool v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="QUADPOOL_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for JSON log file output",
            envvar="QUADPOOL_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json, console, or both",
            envvar="QUADPOOL_LOG_FORMAT",
        ),
    ] = None,
) -> None:
    """quadpool - parallel numerical integration."""
    configure_global_logging(console)


app.command()(run)
app.command()(integrate)
app.command()(integrands)


__all__ = ["app", "console", "main"]
