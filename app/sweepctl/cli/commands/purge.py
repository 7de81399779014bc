"""Purge command for removing old project build artifacts.

Scans the configured search roots, shows the candidates and deletes the
confirmed subset through the policy-guarded executor.
"""

from typing import Annotated

import typer

from sweepctl.cli.engine import build_engine, finish_refresh, run_artifact_scan
from sweepctl.cli.output import (
    OutputFormat,
    SortKey,
    print_candidates_json,
    print_candidates_table,
    print_report,
    print_summary,
)
from sweepctl.core.errors import InvalidInput
from sweepctl.orchestrator.models import Selection
from sweepctl.scanner.models import CandidateArtifact
from sweepctl.utils.formatting import format_size_kb, print_error, print_info, print_success

app = typer.Typer(
    name="purge",
    help="Remove old build artifacts from your projects.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def purge(
    ctx: typer.Context,
    paths: Annotated[
        list[str] | None,
        typer.Option("--path", "-p", help="Search root (repeatable). Default: purge_paths."),
    ] = None,
    targets: Annotated[
        list[str] | None,
        typer.Option("--target", "-t", help="Artifact name to look for (repeatable)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    select_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Delete every unprotected candidate, not only old ones."),
    ] = False,
    sort: Annotated[
        SortKey,
        typer.Option("--sort", "-s", help="Order of the listing.", case_sensitive=False),
    ] = SortKey.SIZE,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """Remove old build artifacts (node_modules, target, .venv, ...).

    Artifacts older than the configured age are selected by default;
    recent ones are listed but kept unless --all is given. Protected
    paths and whitelisted entries are never deleted.

    Examples:
        sweepctl purge                      # Scan configured roots
        sweepctl purge -p ~/code --dry-run  # Preview one root
        sweepctl purge -t node_modules -y   # Only node_modules, no prompt
    """
    if ctx.invoked_subcommand is not None:
        return

    engine = build_engine(dry_run=dry_run)
    outcome = run_artifact_scan(engine, paths, targets, sort.value)
    orchestrator = engine.orchestrator

    try:
        if not outcome.candidates:
            print_success("Nothing to clean. No build artifacts found.")
            orchestrator.execute(Selection.abort())
            return

        if output_format == OutputFormat.JSON:
            print_candidates_json(outcome.candidates)
        else:
            print_candidates_table(outcome.candidates, "Build Artifacts")
            print_summary(outcome.candidates)

        subset = _select(outcome.candidates, select_all)
        if not subset:
            print_info("No candidates selected (use --all to include recent artifacts).")
            orchestrator.execute(Selection.abort())
            return

        if not dry_run and not yes and not _confirm(subset):
            orchestrator.execute(Selection.abort())
            print_info("Aborted.")
            return

        try:
            report = orchestrator.execute(
                Selection.proceed([c.path for c in subset]),
                command="sweepctl purge",
            )
        except InvalidInput as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e

        print_report(report)
    finally:
        finish_refresh(outcome.refresh, engine.config.size_timeout_seconds)

    if report.has_failures:
        raise typer.Exit(code=1)


def _select(candidates: list[CandidateArtifact], select_all: bool) -> list[CandidateArtifact]:
    """Pick the subset to delete: default-selected, or every unprotected one."""
    if select_all:
        return [c for c in candidates if not c.is_protected]
    return [c for c in candidates if c.default_selected]


def _confirm(subset: list[CandidateArtifact]) -> bool:
    total_kb = sum(c.size_kb or 0 for c in subset)
    return typer.confirm(
        f"\nDelete {len(subset)} artifact(s) ({format_size_kb(total_kb)})?",
        default=False,
    )
