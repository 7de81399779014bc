"""Error taxonomy for sweepctl.

Every error raised by the engine derives from SweepError. Per-item
failures during a batch are returned as result values instead of being
raised, so these exceptions mark conditions that stop a single call.

- PolicyDenied and InvalidInput are never retried and never escalate
  to elevated privileges.
- OperationTimeout is recorded per item and skipped.
- LockUnavailable degrades to "skip persistence this run".
- PartialResult reports how far a cancelled or interrupted batch got.
"""


class SweepError(Exception):
    """Base exception for all sweepctl errors."""


class PolicyDenied(SweepError):
    """Raised when the protection policy refuses a path or identity.

    Attributes:
        reason: Short machine-readable reason (a DenyReason value).
        detail: Human-readable explanation.
    """

    def __init__(self, reason: str, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


class InvalidInput(SweepError):
    """Raised when an input is malformed before any policy is consulted.

    Attributes:
        reason: Human-readable explanation.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class UnsafeRootError(InvalidInput):
    """Raised when a scan root is at or above the home directory."""


class OperationTimeout(SweepError):
    """Raised when an external call exceeds its wall-clock budget.

    Attributes:
        seconds: Timeout that was exceeded.
    """

    def __init__(self, message: str, seconds: float | None = None) -> None:
        self.seconds = seconds
        super().__init__(message)


class IOFailure(SweepError):
    """Raised when a filesystem operation fails for reasons other than policy."""


class LockUnavailable(SweepError):
    """Raised when the metadata cache lease cannot be acquired in time."""


class PartialResult(SweepError):
    """Raised or attached when only part of a batch completed.

    Attributes:
        completed: Number of items that finished.
        total: Number of items that were requested.
    """

    def __init__(self, completed: int, total: int) -> None:
        self.completed = completed
        self.total = total
        super().__init__(f"Partial result: {completed} of {total} completed")


class ScanCancelled(SweepError):
    """Raised when a scan is interrupted through the cancel signal."""


class InvalidStateError(SweepError):
    """Raised when the orchestrator is driven out of its state order."""
