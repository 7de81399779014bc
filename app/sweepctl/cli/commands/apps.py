"""Apps command for listing and uninstalling application bundles.

The listing shows each bundle's identity, size and last-used time
together with its protection state. Uninstall removes one bundle and
the support files it left in ~/Library through the guarded executor.
"""

from typing import Annotated

import typer

from sweepctl.cli.engine import build_engine, finish_refresh, resolve_roots
from sweepctl.cli.output import (
    OutputFormat,
    SortKey,
    print_apps_table,
    print_candidates_json,
    print_leftovers,
    print_report,
)
from sweepctl.core.errors import ScanCancelled
from sweepctl.core.paths import contract_user_path, expand_user_path
from sweepctl.orchestrator.models import Selection
from sweepctl.scanner.apps import DEFAULT_APP_ROOTS
from sweepctl.scanner.leftovers import find_app_leftovers
from sweepctl.scanner.models import CandidateArtifact
from sweepctl.utils.formatting import (
    console,
    format_size_kb,
    print_error,
    print_info,
    print_warning,
)

app = typer.Typer(
    name="apps",
    help="List or uninstall application bundles.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def apps(
    ctx: typer.Context,
    paths: Annotated[
        list[str] | None,
        typer.Option("--path", "-p", help="Applications directory (repeatable)."),
    ] = None,
    sort: Annotated[
        SortKey,
        typer.Option("--sort", "-s", help="Order of the listing.", case_sensitive=False),
    ] = SortKey.NAME,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """List application bundles with size, last use and protection.

    Metadata for bundles that changed since the last run is measured in
    the background and shown on the next run.
    """
    if ctx.invoked_subcommand is not None:
        return

    roots = resolve_roots(paths) or list(DEFAULT_APP_ROOTS)
    engine = build_engine(dry_run=True)
    try:
        outcome = engine.orchestrator.scan_applications(roots, sort_key=sort.value)
    except (KeyboardInterrupt, ScanCancelled) as e:
        engine.orchestrator.cancel()
        print_warning("Scan cancelled.")
        raise typer.Exit(code=130) from e
    engine.orchestrator.execute(Selection.abort())

    try:
        if not outcome.candidates:
            print_info("No application bundles found.")
            return

        if output_format == OutputFormat.JSON:
            print_candidates_json(outcome.candidates)
            return

        print_apps_table(outcome.candidates)
        protected = sum(1 for c in outcome.candidates if c.is_protected)
        console.print(
            f"\n[dim]{len(outcome.candidates)} application(s), {protected} protected[/dim]"
        )
    finally:
        finish_refresh(outcome.refresh, engine.config.size_timeout_seconds)


@app.command("uninstall")
def uninstall(
    name: Annotated[
        str,
        typer.Argument(help="Display name, bundle identifier or path of the application."),
    ],
    paths: Annotated[
        list[str] | None,
        typer.Option("--path", "-p", help="Applications directory (repeatable)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove an application bundle together with its leftover files.

    Leftovers are the caches, preferences, logs and containers the
    application keeps in ~/Library. Protected applications are refused.

    Examples:
        sweepctl apps uninstall Editor --dry-run
        sweepctl apps uninstall com.example.editor -y
    """
    roots = resolve_roots(paths) or list(DEFAULT_APP_ROOTS)
    engine = build_engine(dry_run=dry_run)
    orchestrator = engine.orchestrator
    try:
        outcome = orchestrator.scan_applications(roots)
    except (KeyboardInterrupt, ScanCancelled) as e:
        orchestrator.cancel()
        print_warning("Scan cancelled.")
        raise typer.Exit(code=130) from e

    try:
        target = _pick(outcome.candidates, name)
        if target is None:
            orchestrator.execute(Selection.abort())
            raise typer.Exit(code=1)

        label = target.display_name or target.name
        leftovers = find_app_leftovers(engine.gate, target.bundle_id, label)
        size = format_size_kb(target.size_kb) if target.size_kb is not None else "unknown size"
        console.print(f"[bold]{label}[/bold] {contract_user_path(target.path)} ({size})")
        print_leftovers(leftovers)

        if not dry_run and not yes:
            question = f"\nUninstall {label} and {len(leftovers)} leftover(s)?"
            if not typer.confirm(question, default=False):
                orchestrator.execute(Selection.abort())
                print_info("Aborted.")
                return

        report = orchestrator.uninstall(
            target.path, leftovers, command="sweepctl apps uninstall"
        )
        print_report(report)
    finally:
        finish_refresh(outcome.refresh, engine.config.size_timeout_seconds)

    if report.has_failures:
        raise typer.Exit(code=1)


def _pick(candidates: list[CandidateArtifact], name: str) -> CandidateArtifact | None:
    """Find the one bundle matching name; print why when there is none."""
    wanted = name.strip().lower()
    as_path = expand_user_path(name)
    matches = [
        c
        for c in candidates
        if c.path == as_path
        or wanted in ((c.display_name or "").lower(), c.name.lower(), (c.bundle_id or "").lower())
    ]
    if not matches:
        print_error(f"No application matches {name!r}.")
        return None
    if len(matches) > 1:
        listed = ", ".join(contract_user_path(c.path) for c in matches)
        print_error(f"{name!r} is ambiguous: {listed}. Use the bundle identifier or path.")
        return None

    target = matches[0]
    if target.is_protected:
        reason = target.deny_reason.value if target.deny_reason else "protected"
        print_error(f"{target.display_name or target.name} is protected ({reason}).")
        return None
    return target
