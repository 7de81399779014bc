"""Cache and log locations swept by the clean command."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CleanTarget:
    """A directory whose old entries are removed by pattern.

    Attributes:
        label: Human-readable description shown in reports.
        base: Directory to search; ``~`` is the user's home.
        pattern: Name glob of entries to remove.
        type_filter: ``f`` (files), ``d`` (directories) or ``l`` (links).
        age_days: Minimum entry age; None uses the configured clean age.
    """

    label: str
    base: str
    pattern: str = "*"
    type_filter: str = "f"
    age_days: int | None = None


USER_TARGETS: tuple[CleanTarget, ...] = (
    CleanTarget("User app cache", "~/Library/Caches"),
    CleanTarget("User app logs", "~/Library/Logs"),
    CleanTarget("Saved application states", "~/Library/Saved Application State"),
    CleanTarget("Diagnostic reports", "~/Library/DiagnosticReports"),
    CleanTarget("Crash reports", "~/Library/Application Support/CrashReporter", age_days=30),
    CleanTarget("User cache", "~/.cache"),
)

# Log and crash folders inside ~/Library/Application Support/<app>
APP_SUPPORT_LOG_DIRS: tuple[str, ...] = (
    "log",
    "logs",
    "activitylog",
    "Cache/Cache_Data",
    "Crashpad/completed",
)
