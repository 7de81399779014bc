"""History command for viewing past cleanup operations.

This module provides the `sweepctl history` command for viewing the
operation log written by purge runs.
"""

import json
from datetime import datetime
from typing import Annotated

import typer
from rich.table import Table

from sweepctl.core.paths import contract_user_path
from sweepctl.core.state import OperationLog
from sweepctl.models.history import OperationLogEntry
from sweepctl.utils.formatting import console, format_size_kb, print_info

app = typer.Typer(
    name="history",
    help="View history of cleanup operations.",
    invoke_without_command=True,
)

_OUTCOME_STYLES = {
    "deleted": "success",
    "completed": "success",
    "denied": "protected",
    "failed": "error",
    "timed_out": "warning",
}


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of entries to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show history of cleanup operations, newest first.

    Examples:
        sweepctl history            # Show last 20 entries
        sweepctl history -n 50      # Show last 50 entries
        sweepctl history --json     # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    entries = OperationLog().get_history(limit=limit)
    if not entries:
        print_info("No history entries found.")
        return

    if json_output:
        console.print_json(json.dumps([entry.to_dict() for entry in entries]))
    else:
        _print_table(entries)


def _print_table(entries: list[OperationLogEntry]) -> None:
    """Print history as Rich table.

    Args:
        entries: List of log entries to display.
    """
    table = Table(title="Cleanup History")
    table.add_column("ID", style="dim")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Outcome")
    table.add_column("Path", style="white")
    table.add_column("Size", justify="right")

    for entry in entries:
        style = "info" if entry.dry_run else _OUTCOME_STYLES.get(entry.outcome.value, "muted")
        label = f"{entry.outcome.value} (dry-run)" if entry.dry_run else entry.outcome.value
        table.add_row(
            entry.id[:8],
            _format_timestamp(entry.timestamp),
            f"[{style}]{label}[/]",
            contract_user_path(entry.path),
            format_size_kb(entry.size_kb) if entry.size_kb is not None else "-",
        )

    console.print(table)


def _format_timestamp(iso_timestamp: str) -> str:
    """Format ISO timestamp as YYYY-MM-DD HH:MM."""
    dt = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    return dt.strftime("%Y-%m-%d %H:%M")
