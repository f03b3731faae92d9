"""
ctrequest CLI - Main entry point.

Inspection tooling for ctrequest cache directories.
"""

from __future__ import annotations

from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

from ctrequest import __app_name__, __version__
from ctrequest.core.logging import setup_logging

# Load environment variables from .env (if present)
load_dotenv()

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Cached, throttled request mediation",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    """ctrequest - inspect request caches."""
    setup_logging(level=log_level)


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import cache  # noqa: E402

app.add_typer(cache.app, name="cache", help="Inspect cache directories")


if __name__ == "__main__":
    app()
