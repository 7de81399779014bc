"""Operation log entry model.

This module defines the record written for every executed deletion so
that external reporting can show what was removed, skipped or failed.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sweepctl.executor.models import ExecutionResult, Outcome


@dataclass(frozen=True, slots=True)
class OperationLogEntry:
    """Record of a single executed operation.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        timestamp: When the operation ran (ISO 8601 format with timezone).
        path: Path that was operated on.
        outcome: Outcome of the operation.
        size_kb: Size measured before removal, None if unknown.
        dry_run: Whether this was a dry run.
        command: Command that triggered the operation.
        error: Error message for failed or denied operations.
    """

    id: str
    timestamp: str
    path: str
    outcome: Outcome
    size_kb: int | None = None
    dry_run: bool = False
    command: str = ""
    error: str | None = None

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.id:
            msg = "Log entry ID cannot be empty"
            raise ValueError(msg)
        if not self.path:
            msg = "Log entry path cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Returns:
            Dictionary representation of the log entry.
        """
        result: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "path": self.path,
            "outcome": self.outcome.value,
            "size_kb": self.size_kb,
            "dry_run": self.dry_run,
            "command": self.command,
        }
        if self.error is not None:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OperationLogEntry":
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing entry data.

        Returns:
            OperationLogEntry instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If outcome is invalid.
        """
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            path=data["path"],
            outcome=Outcome(data["outcome"]),
            size_kb=data.get("size_kb"),
            dry_run=data.get("dry_run", False),
            command=data.get("command", ""),
            error=data.get("error"),
        )

    def to_json_line(self) -> str:
        """Serialize to JSON line for JSONL storage."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "OperationLogEntry":
        """Deserialize from JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls.from_dict(json.loads(line.strip()))


def create_log_entry(result: ExecutionResult, command: str = "") -> OperationLogEntry:
    """Factory function to create a log entry from an execution result.

    Automatically generates a unique ID and current timestamp.

    Args:
        result: Result returned by the executor.
        command: Command that triggered the operation.

    Returns:
        New OperationLogEntry.
    """
    return OperationLogEntry(
        id=uuid.uuid4().hex[:12],
        timestamp=datetime.now(UTC).isoformat(),
        path=result.path,
        outcome=result.outcome,
        size_kb=result.size_kb,
        dry_run=result.dry_run,
        command=command,
        error=result.error,
    )
