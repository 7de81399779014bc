"""Guarded execution of destructive operations."""

from sweepctl.executor.executor import SafeExecutor
from sweepctl.executor.models import ExecutionResult, Outcome, SizeProbe

__all__ = [
    "ExecutionResult",
    "Outcome",
    "SafeExecutor",
    "SizeProbe",
]
