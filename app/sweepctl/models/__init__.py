"""Data models shared across sweepctl modules."""

from sweepctl.models.history import OperationLogEntry, create_log_entry

__all__ = [
    "OperationLogEntry",
    "create_log_entry",
]
