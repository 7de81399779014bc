"""Scan-select-execute orchestration for sweepctl."""

from sweepctl.orchestrator.models import (
    CleanupReport,
    OrchestratorState,
    ScanOutcome,
    Selection,
)
from sweepctl.orchestrator.orchestrator import ScanOrchestrator, sort_candidates

__all__ = [
    "CleanupReport",
    "OrchestratorState",
    "ScanOrchestrator",
    "ScanOutcome",
    "Selection",
    "sort_candidates",
]
