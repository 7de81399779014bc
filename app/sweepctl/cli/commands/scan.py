"""Scan command for listing build artifacts without deleting anything."""

from typing import Annotated

import typer

from sweepctl.cli.engine import build_engine, finish_refresh, run_artifact_scan
from sweepctl.cli.output import (
    OutputFormat,
    SortKey,
    print_candidates_json,
    print_candidates_table,
    print_summary,
)
from sweepctl.orchestrator.models import Selection
from sweepctl.utils.formatting import print_success

app = typer.Typer(
    name="scan",
    help="List build artifacts that could be purged.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def scan(
    ctx: typer.Context,
    paths: Annotated[
        list[str] | None,
        typer.Option("--path", "-p", help="Search root (repeatable). Default: purge_paths."),
    ] = None,
    targets: Annotated[
        list[str] | None,
        typer.Option("--target", "-t", help="Artifact name to look for (repeatable)."),
    ] = None,
    sort: Annotated[
        SortKey,
        typer.Option("--sort", "-s", help="Order of the listing.", case_sensitive=False),
    ] = SortKey.SIZE,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", help="Limit number of results.", min=1),
    ] = None,
) -> None:
    """List build artifacts with size, age and protection state.

    Never deletes anything; sizes measured here are cached for the next
    purge run.
    """
    if ctx.invoked_subcommand is not None:
        return

    engine = build_engine(dry_run=True)
    outcome = run_artifact_scan(engine, paths, targets, sort.value)
    # Listing only; release the selection so nothing can be executed
    engine.orchestrator.execute(Selection.abort())

    try:
        if not outcome.candidates:
            print_success("No build artifacts found.")
            return

        shown = outcome.candidates[:limit] if limit else outcome.candidates
        if output_format == OutputFormat.JSON:
            print_candidates_json(shown)
            return

        print_candidates_table(shown, "Build Artifacts")
        print_summary(outcome.candidates, shown=len(shown))
    finally:
        finish_refresh(outcome.refresh, engine.config.size_timeout_seconds)
