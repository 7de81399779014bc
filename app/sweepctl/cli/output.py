"""Rendering of candidates and cleanup reports."""

import json
from enum import Enum
from typing import Any

from rich.table import Table

from sweepctl.cleaner.login_items import LoginItem
from sweepctl.cleaner.user import CleanTask
from sweepctl.core.paths import contract_user_path
from sweepctl.executor.models import ExecutionResult, Outcome
from sweepctl.orchestrator.models import CleanupReport
from sweepctl.scanner.models import CandidateArtifact
from sweepctl.utils.formatting import (
    console,
    create_candidate_table,
    format_relative_days,
    format_size_kb,
    print_info,
    print_success,
    print_warning,
)


class OutputFormat(str, Enum):
    """Output format options for candidate listings."""

    TABLE = "table"
    JSON = "json"


class SortKey(str, Enum):
    """Candidate ordering options."""

    SIZE = "size"
    AGE = "age"
    PATH = "path"
    NAME = "name"


def candidate_to_dict(candidate: CandidateArtifact) -> dict[str, Any]:
    """Serialize a candidate for JSON output."""
    return {
        "path": candidate.path,
        "name": candidate.name,
        "kind": candidate.kind.value,
        "project": candidate.project_path or None,
        "display_name": candidate.display_name or candidate.name,
        "size_kb": candidate.size_kb,
        "size_estimated": candidate.size_estimated,
        "age_days": candidate.age_days,
        "bundle_id": candidate.bundle_id,
        "last_used_epoch": candidate.last_used_epoch,
        "protection": candidate.protection.value,
        "deny_reason": candidate.deny_reason.value if candidate.deny_reason else None,
        "selected": candidate.default_selected,
    }


def print_candidates_json(candidates: list[CandidateArtifact]) -> None:
    console.print_json(json.dumps([candidate_to_dict(c) for c in candidates]))


def _size_cell(candidate: CandidateArtifact) -> str:
    size = format_size_kb(candidate.size_kb)
    return f"~{size}" if candidate.size_estimated else size


def _state_cell(candidate: CandidateArtifact) -> str:
    if candidate.is_protected:
        reason = candidate.deny_reason.value if candidate.deny_reason else "protected"
        return f"[protected]{reason}[/]"
    if candidate.default_selected:
        return "[selected]old[/]"
    return "[recent]recent[/]"


def print_candidates_table(candidates: list[CandidateArtifact], title: str) -> None:
    """Display artifact candidates as a Rich table.

    Selected rows are marked with a filled dot, protected rows with a cross.
    """
    table = create_candidate_table(title)
    for index, c in enumerate(candidates, start=1):
        if c.is_protected:
            icon = "[protected]x[/]"
        elif c.default_selected:
            icon = "[selected]●[/]"
        else:
            icon = "[muted]○[/]"
        project = contract_user_path(c.project_path) if c.project_path else "-"
        table.add_row(
            icon,
            str(index),
            project,
            c.display_name or c.name,
            _size_cell(c),
            format_relative_days(c.age_days),
            _state_cell(c),
        )
    console.print(table)


def print_apps_table(candidates: list[CandidateArtifact]) -> None:
    """Display application bundles as a Rich table."""
    table = Table(
        title="Applications",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Name", style="text", no_wrap=True)
    table.add_column("Bundle ID", style="muted")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Last used", style="muted", justify="right")
    table.add_column("State", style="muted")

    for c in candidates:
        last_used = format_relative_days(c.age_days) if c.last_used_epoch else "Unknown"
        table.add_row(
            c.display_name or c.name,
            c.bundle_id or "-",
            _size_cell(c),
            last_used,
            _state_cell(c) if c.is_protected else "",
        )
    console.print(table)


def print_clean_plan(tasks: list[CleanTask], login_items: list[LoginItem]) -> None:
    """Display the directories and login items a clean run will visit."""
    table = Table(
        title="Clean Plan",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("What", style="text", no_wrap=True)
    table.add_column("Where", style="muted")
    table.add_column("Older than", style="muted", justify="right")

    for task in tasks:
        table.add_row(task.label, contract_user_path(task.base_dir), f"{task.age_days}d")
    for item in login_items:
        table.add_row(
            f"Broken login item {item.label}",
            contract_user_path(item.path),
            "-",
        )
    console.print(table)


def print_leftovers(leftovers: list[str]) -> None:
    """List support files removed together with an application."""
    if not leftovers:
        print_info("No leftover files found.")
        return
    console.print(f"\n[bold]Leftover files ({len(leftovers)}):[/bold]")
    for path in leftovers:
        console.print(f"  [muted]{contract_user_path(path)}[/muted]")


def print_summary(candidates: list[CandidateArtifact], shown: int | None = None) -> None:
    """Print totals below a candidate listing."""
    total_kb = sum(c.size_kb or 0 for c in candidates)
    selected = [c for c in candidates if c.default_selected]
    selected_kb = sum(c.size_kb or 0 for c in selected)
    protected = sum(1 for c in candidates if c.is_protected)

    console.print(
        f"\n[dim]Found {len(candidates)} candidate(s) ({format_size_kb(total_kb)} total), "
        f"{len(selected)} selected ({format_size_kb(selected_kb)})[/dim]"
    )
    if protected:
        console.print(f"[dim]{protected} protected candidate(s) will never be deleted[/dim]")
    if shown is not None and shown < len(candidates):
        console.print(f"[dim](showing {shown} of {len(candidates)})[/dim]")


_OUTCOME_LABELS: dict[Outcome, str] = {
    Outcome.DELETED: "[success]deleted[/]",
    Outcome.NOTHING_TO_DO: "[muted]nothing[/]",
    Outcome.DENIED: "[protected]protected[/]",
    Outcome.TIMED_OUT: "[warning]timed out[/]",
    Outcome.FAILED: "[error]failed[/]",
    Outcome.COMPLETED: "[success]done[/]",
}


def _status_cell(result: ExecutionResult) -> str:
    if result.dry_run and result.outcome == Outcome.DELETED:
        return "[info]would delete[/]"
    return _OUTCOME_LABELS.get(result.outcome, result.outcome.value)


def _details_cell(result: ExecutionResult) -> str:
    if result.removed_count > 1:
        return f"{result.removed_count} entries"
    return ""


def print_report(report: CleanupReport) -> None:
    """Display per-path results and totals of an execution pass."""
    table = Table(title="Cleanup Results", show_lines=False)
    table.add_column("Path", style="bold")
    table.add_column("Status", width=12)
    table.add_column("Size", justify="right", width=10)
    table.add_column("Details", style="dim")

    for r in report.results:
        table.add_row(
            contract_user_path(r.path),
            _status_cell(r),
            format_size_kb(r.size_kb) if r.size_kb is not None else "-",
            r.error or _details_cell(r),
        )
    console.print(table)

    freed = format_size_kb(report.freed_kb)
    if report.dry_run:
        print_info(f"Dry-run: {report.deleted} path(s) would be deleted, {freed} would be freed.")
    elif report.has_failures:
        print_warning(
            f"{report.deleted} deleted, {report.failed} failed, {report.timed_out} timed out"
        )
    else:
        print_success(f"Deleted {report.deleted} path(s), freed {freed}.")
    if report.skipped_protected:
        print_info(f"Skipped {report.skipped_protected} protected path(s).")
