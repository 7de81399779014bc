"""Worker pool sizing heuristics."""

import os
from enum import Enum

# Hard caps per workload: identity resolution is cheap, metadata probes
# hit slow backends (du, mdls) and must not flood them.
IDENTITY_WORKERS_MIN = 8
IDENTITY_WORKERS_MAX = 32
METADATA_WORKERS_MAX = 4


class WorkloadKind(str, Enum):
    """Kind of parallel workload being sized."""

    IDENTITY = "identity"
    METADATA = "metadata"
    SCAN = "scan"


def optimal_workers(kind: WorkloadKind, cap: int | None = None) -> int:
    """Derive a worker count from the CPU count for an I/O-bound workload.

    Args:
        kind: Workload being sized.
        cap: Optional configured upper bound (never raises the hard cap).

    Returns:
        Worker count, at least 1.
    """
    io_jobs = (os.cpu_count() or 1) * 2

    if kind == WorkloadKind.IDENTITY:
        count = min(max(io_jobs, IDENTITY_WORKERS_MIN), IDENTITY_WORKERS_MAX)
    elif kind == WorkloadKind.METADATA:
        count = min(max(io_jobs, 1), METADATA_WORKERS_MAX)
    else:
        count = max(io_jobs, 1)

    if cap is not None:
        count = min(count, max(cap, 1))
    return count
