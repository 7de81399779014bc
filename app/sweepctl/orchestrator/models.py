"""Orchestrator state, selection and report models."""

from dataclasses import dataclass, field
from enum import Enum

from sweepctl.cache.refresh import RefreshHandle
from sweepctl.core.errors import PartialResult
from sweepctl.executor.models import ExecutionResult, Outcome
from sweepctl.scanner.models import CandidateArtifact


class OrchestratorState(str, Enum):
    """Lifecycle of a scan-select-execute run."""

    IDLE = "idle"
    SCANNING = "scanning"
    AGGREGATING = "aggregating"
    AWAITING_SELECTION = "awaiting_selection"
    EXECUTING = "executing"


# Allowed state changes; cancellation and abort return to IDLE
TRANSITIONS: dict[OrchestratorState, frozenset[OrchestratorState]] = {
    OrchestratorState.IDLE: frozenset({OrchestratorState.SCANNING}),
    OrchestratorState.SCANNING: frozenset({OrchestratorState.AGGREGATING, OrchestratorState.IDLE}),
    OrchestratorState.AGGREGATING: frozenset(
        {OrchestratorState.AWAITING_SELECTION, OrchestratorState.IDLE}
    ),
    OrchestratorState.AWAITING_SELECTION: frozenset(
        {OrchestratorState.EXECUTING, OrchestratorState.IDLE}
    ),
    OrchestratorState.EXECUTING: frozenset({OrchestratorState.IDLE}),
}


@dataclass(frozen=True, slots=True)
class Selection:
    """Answer of the selection collaborator.

    Use ``Selection.proceed(paths)`` or ``Selection.abort()``.
    """

    paths: tuple[str, ...] = ()
    aborted: bool = False

    @classmethod
    def proceed(cls, paths: list[str] | tuple[str, ...]) -> "Selection":
        return cls(paths=tuple(paths))

    @classmethod
    def abort(cls) -> "Selection":
        return cls(aborted=True)


@dataclass
class CleanupReport:
    """Counts and results of one execution pass.

    Attributes:
        deleted: Paths removed (or that would be removed in dry-run).
        skipped_protected: Paths refused by the protection policy.
        failed: Paths whose removal failed.
        timed_out: Paths whose removal exceeded its budget.
        nothing_to_do: Paths that were already gone.
        dry_run: True if any recorded result came from a dry run.
        freed_kb: Kilobytes freed (or that would be freed in dry-run).
        results: Every recorded result in order.
    """

    deleted: int = 0
    skipped_protected: int = 0
    failed: int = 0
    timed_out: int = 0
    nothing_to_do: int = 0
    dry_run: bool = False
    freed_kb: int = 0
    results: list[ExecutionResult] = field(default_factory=list)

    def record(self, result: ExecutionResult) -> None:
        """Account for a single result."""
        self.results.append(result)
        self.dry_run = self.dry_run or result.dry_run
        if result.outcome == Outcome.DELETED:
            self.deleted += 1
            self.freed_kb += result.size_kb or 0
        elif result.outcome == Outcome.DENIED:
            self.skipped_protected += 1
        elif result.outcome == Outcome.TIMED_OUT:
            self.timed_out += 1
        elif result.outcome == Outcome.NOTHING_TO_DO:
            self.nothing_to_do += 1
        elif result.outcome == Outcome.FAILED:
            self.failed += 1

    def merge(self, other: "CleanupReport") -> "CleanupReport":
        """Fold another report into this one and return self."""
        self.deleted += other.deleted
        self.skipped_protected += other.skipped_protected
        self.failed += other.failed
        self.timed_out += other.timed_out
        self.nothing_to_do += other.nothing_to_do
        self.dry_run = self.dry_run or other.dry_run
        self.freed_kb += other.freed_kb
        self.results.extend(other.results)
        return self

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0 or self.timed_out > 0


@dataclass
class ScanOutcome:
    """Result of a scan pass.

    Attributes:
        candidates: Sorted candidate list.
        partial: Set when some roots could not be scanned.
        refresh: Background cache refresh started by the scan, if any.
        errors: Messages for roots that were skipped.
    """

    candidates: list[CandidateArtifact]
    partial: PartialResult | None = None
    refresh: RefreshHandle | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def selected(self) -> list[CandidateArtifact]:
        """Candidates selected by default."""
        return [c for c in self.candidates if c.default_selected]
