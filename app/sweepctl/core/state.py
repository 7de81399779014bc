"""State management for the operation log.

This module provides the OperationLog class for persisting and querying
executed operations in a JSONL file format.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from sweepctl.core.paths import ensure_state_dir, get_state_dir
from sweepctl.executor.models import ExecutionResult
from sweepctl.models.history import OperationLogEntry, create_log_entry

logger = logging.getLogger(__name__)


class OperationLog:
    """Manages the operation log in a JSONL file.

    Storage location: ~/.local/state/sweepctl/operations.jsonl

    Each line is a complete JSON object representing an
    OperationLogEntry. The file is append-only.
    """

    LOG_FILENAME = "operations.jsonl"

    def __init__(self, state_dir: Path | None = None) -> None:
        """Initialize OperationLog.

        Args:
            state_dir: Optional override for state directory.
                      Default: ~/.local/state/sweepctl
        """
        self._state_dir = state_dir if state_dir is not None else get_state_dir()

    @property
    def log_path(self) -> Path:
        """Path to operations.jsonl file."""
        return self._state_dir / self.LOG_FILENAME

    def record(self, entries: Iterable[OperationLogEntry]) -> int:
        """Append entries to the log file.

        Creates file and parent directories if they don't exist.

        Args:
            entries: Entries to append.

        Returns:
            Number of entries written.

        Raises:
            RuntimeError: If the state directory cannot be created.
            OSError: If the file cannot be written.
        """
        lines = [entry.to_json_line() for entry in entries]
        if not lines:
            return 0

        if self._state_dir == get_state_dir():
            ensure_state_dir()
        else:
            self._state_dir.mkdir(parents=True, exist_ok=True)

        with self.log_path.open(mode="a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
            f.flush()

        return len(lines)

    def record_results(self, results: Iterable[ExecutionResult], command: str = "") -> int:
        """Convert executor results to log entries and append them.

        Args:
            results: Executor results to record.
            command: Command that triggered the operations.

        Returns:
            Number of entries written.
        """
        return self.record(create_log_entry(result, command=command) for result in results)

    def get_history(self, limit: int | None = None) -> list[OperationLogEntry]:
        """Read log entries, newest first.

        Args:
            limit: Maximum number of entries to return.
                  If None, returns all entries.

        Returns:
            List of OperationLogEntry, newest first.
            Returns empty list if file doesn't exist.
        """
        if not self.log_path.exists():
            return []

        entries: list[OperationLogEntry] = []

        with self.log_path.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue

                try:
                    entries.append(OperationLogEntry.from_json_line(line))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning(
                        "Skipping corrupt log line %d: %s",
                        line_num,
                        str(e),
                    )
                    continue

        entries.reverse()

        if limit is not None:
            return entries[:limit]

        return entries
