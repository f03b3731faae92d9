"""
Cache inspection commands.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

import orjson
import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ctrequest.core.cache import FileCacheBackend, canonical_json, derive_key
from ctrequest.core.config import NO_EXPIRY

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Inspect cache directories",
    no_args_is_help=True,
)


def _open_backend(directory: Path) -> FileCacheBackend:
    if not directory.is_dir():
        err_console.print(f"[red]Not a directory:[/red] {directory}")
        raise typer.Exit(1)
    return FileCacheBackend(directory)


def _format_age(seconds: float) -> str:
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


@app.command("list")
def list_records(
    directory: Path = typer.Argument(..., help="Cache directory"),
    scope: Optional[str] = typer.Option(None, "--scope", "-s", help="Only show this scope"),
    expire: int = typer.Option(
        NO_EXPIRY,
        "--expire",
        "-e",
        help="Configuration-level expiry in seconds used for the stale column",
    ),
) -> None:
    """List cached records."""
    backend = _open_backend(directory)
    now = time.time()

    table = Table(title=f"Cache: {directory}")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Scope")
    table.add_column("Params", overflow="fold")
    table.add_column("Age", justify="right")
    table.add_column("Expiry", justify="right")
    table.add_column("Stale", justify="center")

    count = 0
    for key, record in backend.records():
        if scope is not None and record.scope != scope:
            continue
        stale = record.is_stale(now, expire)
        table.add_row(
            key,
            record.scope or "-",
            canonical_json(record.params),
            _format_age(record.age(now)),
            str(record.cexpire) if record.cexpire > 0 else "-",
            "[red]yes[/red]" if stale else "[green]no[/green]",
        )
        count += 1

    if count == 0:
        console.print("[yellow]No cached records[/yellow]")
        return

    console.print(table)


@app.command("show")
def show_record(
    directory: Path = typer.Argument(..., help="Cache directory"),
    key: str = typer.Argument(..., help="Cache key"),
) -> None:
    """Show one cached record as JSON."""
    backend = _open_backend(directory)
    record = backend.get_record(key)

    if record is None:
        err_console.print(f"[red]No readable record for key:[/red] {key}")
        raise typer.Exit(1)

    rendered = orjson.dumps(record.to_dict(), option=orjson.OPT_INDENT_2).decode("utf-8")
    console.print(Syntax(rendered, "json", word_wrap=True))


@app.command("key")
def compute_key(
    params: str = typer.Argument(..., help='Request params as a JSON array, e.g. \'["tms_01"]\''),
    scope: str = typer.Option("", "--scope", "-s", help="Cache scope"),
) -> None:
    """Print the cache key for a scope and params."""
    try:
        value = orjson.loads(params)
    except orjson.JSONDecodeError as e:
        err_console.print(f"[red]Invalid JSON:[/red] {e}")
        raise typer.Exit(1)

    if not isinstance(value, list):
        err_console.print("[red]Params must be a JSON array[/red]")
        raise typer.Exit(1)

    console.print(derive_key(scope, value))


@app.command("stats")
def cache_stats(
    directory: Path = typer.Argument(..., help="Cache directory"),
    expire: int = typer.Option(
        NO_EXPIRY,
        "--expire",
        "-e",
        help="Configuration-level expiry in seconds",
    ),
) -> None:
    """Summarize fresh, stale and unreadable records."""
    backend = _open_backend(directory)
    now = time.time()

    keys = backend.keys()
    fresh = stale = 0
    scopes: set[str] = set()
    for _, record in backend.records():
        scopes.add(record.scope)
        if record.is_stale(now, expire):
            stale += 1
        else:
            fresh += 1
    unreadable = len(keys) - fresh - stale

    table = Table(title=f"Cache: {directory}", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Files", str(len(keys)))
    table.add_row("Fresh", f"[green]{fresh}[/green]")
    table.add_row("Stale", f"[yellow]{stale}[/yellow]")
    table.add_row("Unreadable", f"[red]{unreadable}[/red]")
    table.add_row("Scopes", str(len(scopes)))
    console.print(table)
