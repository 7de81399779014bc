"""Result models for guarded filesystem operations.

This module defines the outcome vocabulary shared by the executor,
the orchestrator's cleanup report and the operation log.
"""

from dataclasses import dataclass
from enum import Enum


class Outcome(str, Enum):
    """Outcome of a single guarded operation.

    Attributes:
        DELETED: The path was removed (or, with dry_run set, would be).
        NOTHING_TO_DO: The path was already absent.
        DENIED: The protection policy refused the path; nothing was touched.
        FAILED: The operation was attempted and failed.
        TIMED_OUT: The operation exceeded its wall-clock budget.
        COMPLETED: A maintenance command ran successfully.
    """

    DELETED = "deleted"
    NOTHING_TO_DO = "nothing_to_do"
    DENIED = "denied"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    COMPLETED = "completed"

    @property
    def is_success(self) -> bool:
        """Whether this outcome counts as a successful call."""
        return self in (Outcome.DELETED, Outcome.NOTHING_TO_DO, Outcome.COMPLETED)


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Result of a single guarded operation.

    Attributes:
        path: Path (or command) that was operated on.
        outcome: What happened.
        error: Error or denial message, None on success.
        size_kb: Size measured before removal, None if unknown.
        dry_run: Whether the executor ran in dry-run mode. The only field
            that tells a dry run apart from a real one.
        removed_count: Number of entries removed (bulk operations).
    """

    path: str
    outcome: Outcome
    error: str | None = None
    size_kb: int | None = None
    dry_run: bool = False
    removed_count: int = 0

    @property
    def success(self) -> bool:
        """Check if the operation completed successfully."""
        return self.outcome.is_success


@dataclass(frozen=True, slots=True)
class SizeProbe:
    """Result of a time-bounded size measurement.

    Attributes:
        kb: Size in kilobytes (0 when missing or unknown).
        timed_out: True if the probe hit its wall-clock budget.
    """

    kb: int
    timed_out: bool = False
