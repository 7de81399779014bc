"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.table import Table

from sweepctl.core.theme import get_theme


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_candidate_table(title: str = "Cleanup Candidates") -> Table:
    """Create a pre-configured table for displaying candidate artifacts.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for candidate display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    # Selection column: icon only, no header text
    table.add_column("", width=2, justify="center")
    table.add_column("#", style="muted", justify="right")
    table.add_column("Project", no_wrap=True)
    table.add_column("Artifact", style="text")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Age", style="muted", justify="right")
    table.add_column("State", style="muted")
    return table


def format_size_kb(size_kb: int | None) -> str:
    """Format a kilobyte count as a human-readable string.

    Args:
        size_kb: Size in kilobytes, or None when unknown.

    Returns:
        Human-readable size (e.g. "12.5 MB"), "unknown" for None.
    """
    if size_kb is None:
        return "unknown"
    if size_kb <= 0:
        return "0 B"
    size = float(size_kb) * 1024
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def format_relative_days(days: int | None) -> str:
    """Format an age in days as a short relative string.

    Args:
        days: Age in whole days, or None when unknown.

    Returns:
        "Today", "Yesterday", "3 days ago", "2 weeks ago", ... or "Unknown".
    """
    if days is None:
        return "Unknown"
    days = max(days, 0)
    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        weeks = days // 7
        return "1 week ago" if weeks == 1 else f"{weeks} weeks ago"
    if days < 365:
        months = days // 30
        return "1 month ago" if months == 1 else f"{months} months ago"
    years = days // 365
    return "1 year ago" if years == 1 else f"{years} years ago"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
