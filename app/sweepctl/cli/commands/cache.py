"""Cache commands for inspecting and clearing the metadata cache."""

import json
import time
from typing import Annotated

import typer
from rich.table import Table

from sweepctl.cli.engine import build_engine
from sweepctl.core.paths import contract_user_path
from sweepctl.utils.formatting import (
    console,
    format_relative_days,
    format_size_kb,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Inspect or clear the metadata cache.",
    no_args_is_help=True,
)


@app.command()
def show(
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum number of entries to show.", min=1),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
) -> None:
    """Show cached metadata, largest entries first."""
    cache = build_engine(dry_run=True).cache
    entries = cache.entries()
    if cache.degraded:
        print_warning(f"Cache file is unreadable: {cache.cache_file}")

    if not entries:
        print_info(f"Cache is empty ({cache.cache_file}).")
        return

    entries.sort(key=lambda e: e.size_kb, reverse=True)
    if json_output:
        console.print_json(json.dumps([e.to_dict() for e in entries[:limit]]))
        return

    now = time.time()
    table = Table(title="Metadata Cache", header_style="bold_header", border_style="border")
    table.add_column("Path", style="text")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Updated", style="muted", justify="right")
    table.add_column("Identity", style="muted")
    for entry in entries[:limit]:
        table.add_row(
            contract_user_path(entry.path),
            format_size_kb(entry.size_kb),
            format_relative_days(int((now - entry.updated_epoch) // 86400)),
            entry.bundle_id or "",
        )
    console.print(table)

    stale = sum(1 for e in entries if now - e.updated_epoch >= cache.ttl_seconds)
    total_kb = sum(e.size_kb for e in entries)
    console.print(
        f"\n[dim]{len(entries)} entries ({format_size_kb(total_kb)} measured), "
        f"{stale} older than the TTL[/dim]"
    )


@app.command()
def clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Drop all cached metadata; it is rebuilt on the next scan."""
    cache = build_engine(dry_run=True).cache
    if not yes and not typer.confirm("Clear the metadata cache?", default=False):
        print_info("Aborted.")
        return

    if not cache.clear():
        print_error("Could not clear the cache (another sweepctl may be writing it).")
        raise typer.Exit(code=1)
    print_success(f"Cleared {contract_user_path(str(cache.cache_file))}")
