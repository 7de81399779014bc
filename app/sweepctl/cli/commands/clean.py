"""Clean command for removing old user caches, logs and login items.

Every file is removed through the policy-guarded executor, so protected
application data and sweepctl's own directories are never touched.
"""

from typing import Annotated

import typer

from sweepctl.cleaner.login_items import find_broken_login_items
from sweepctl.cli.engine import build_engine
from sweepctl.cli.output import print_clean_plan, print_report
from sweepctl.core.config import load_config_or_default
from sweepctl.utils.formatting import print_info, print_success, print_warning

app = typer.Typer(
    name="clean",
    help="Remove old user caches, logs and broken login items.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def clean(
    ctx: typer.Context,
    age: Annotated[
        int | None,
        typer.Option("--age", min=0, help="Minimum file age in days. Default: clean_age_days."),
    ] = None,
    login_items: Annotated[
        bool,
        typer.Option("--login-items/--no-login-items", help="Remove broken login items."),
    ] = True,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove old files from user cache and log directories.

    Covers ~/Library/Caches, ~/Library/Logs, saved application state,
    diagnostic reports, ~/.cache and the log folders of applications in
    Application Support. Launch agents whose program is gone are
    unloaded and removed.

    Examples:
        sweepctl clean --dry-run         # Preview
        sweepctl clean --age 30 -y       # Only files older than 30 days
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_config_or_default()
    if age is not None:
        config = config.model_copy(update={"clean_age_days": age})
    engine = build_engine(dry_run=dry_run, config=config)

    tasks = engine.cleaner.plan()
    broken = find_broken_login_items(engine.gate) if login_items else []
    if not tasks and not broken:
        print_success("Nothing to clean.")
        return

    print_clean_plan(tasks, broken)

    if not dry_run and not yes:
        question = f"\nClean {len(tasks)} location(s) and {len(broken)} login item(s)?"
        if not typer.confirm(question, default=False):
            print_info("Aborted.")
            return

    try:
        report = engine.cleaner.clean(tasks, broken, command="sweepctl clean")
    except KeyboardInterrupt as e:
        print_warning("Clean interrupted.")
        raise typer.Exit(code=130) from e

    print_report(report)
    if report.has_failures:
        raise typer.Exit(code=1)
