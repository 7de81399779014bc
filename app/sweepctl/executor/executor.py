"""Guarded filesystem operations.

Every destructive operation goes through SafeExecutor. The executor
asks the policy gate first and touches nothing on DENY, refuses to follow
symlinks when running with elevated privileges, and bounds every external
command with a wall-clock timeout.
"""

import fnmatch
import logging
import os
import shutil
import stat
import subprocess
import time
from pathlib import Path

from sweepctl.core.errors import InvalidInput
from sweepctl.executor.models import ExecutionResult, Outcome, SizeProbe
from sweepctl.policy.gate import PolicyGate
from sweepctl.utils.shell import run_command

logger = logging.getLogger(__name__)

FIND_TYPES = ("f", "d", "l")


class SafeExecutor:
    """Executes deletions and maintenance commands behind the policy gate.

    Attributes:
        gate: Policy gate consulted before every filesystem access.
        dry_run: If True, run every check but skip removal.
    """

    def __init__(
        self,
        gate: PolicyGate,
        *,
        dry_run: bool = False,
        command_timeout: float = 120.0,
        size_timeout: float = 15.0,
        find_max_depth: int = 5,
    ) -> None:
        """Initialize the SafeExecutor.

        Args:
            gate: Policy gate for allow/deny decisions.
            dry_run: If True, report what would be deleted without deleting.
            command_timeout: Wall-clock budget for privileged commands.
            size_timeout: Wall-clock budget for a single size probe.
            find_max_depth: Depth bound for find_delete.
        """
        self.gate = gate
        self.dry_run = dry_run
        self._command_timeout = command_timeout
        self._size_timeout = size_timeout
        self._find_max_depth = find_max_depth

    # ---- deletion ---------------------------------------------------------

    def delete(self, path: str, *, elevated: bool = False) -> ExecutionResult:
        """Delete a single path.

        Args:
            path: Absolute path to delete.
            elevated: Remove with ``sudo rm -rf`` instead of in-process calls.

        Returns:
            ExecutionResult describing the outcome. Never raises for
            per-path failures.
        """
        decision = self.gate.decide(path, elevated=elevated)
        if not decision.allowed:
            reason = decision.reason.value if decision.reason else "denied"
            logger.info("Denied %s (%s: %s)", path, reason, decision.detail)
            return ExecutionResult(
                path=path,
                outcome=Outcome.DENIED,
                error=f"{reason}: {decision.detail}" if decision.detail else reason,
                dry_run=self.dry_run,
            )

        target = Path(path)
        if not target.exists() and not target.is_symlink():
            return ExecutionResult(path=path, outcome=Outcome.NOTHING_TO_DO, dry_run=self.dry_run)

        if elevated and target.is_symlink():
            return self._refuse_symlink(path)

        probe = self.path_size_kb(path)
        size_kb = None if probe.timed_out else probe.kb

        if self.dry_run:
            logger.info("Dry-run: would delete %s", path)
            return ExecutionResult(
                path=path,
                outcome=Outcome.DELETED,
                size_kb=size_kb,
                dry_run=True,
                removed_count=1,
            )

        if elevated:
            return self._delete_elevated(path, size_kb)
        return self._delete_in_process(target, size_kb)

    def delete_many(self, paths: list[str], *, elevated: bool = False) -> list[ExecutionResult]:
        """Delete multiple paths with failures isolated per path.

        Args:
            paths: Absolute paths to delete.
            elevated: Passed through to delete().

        Returns:
            List of ExecutionResult, one per input path.
        """
        return [self.delete(path, elevated=elevated) for path in paths]

    def _refuse_symlink(self, path: str) -> ExecutionResult:
        logger.warning("Refusing elevated delete of symlink %s", path)
        return ExecutionResult(
            path=path,
            outcome=Outcome.FAILED,
            error="refusing to delete a symlink with elevated privileges",
            dry_run=self.dry_run,
        )

    def _delete_elevated(self, path: str, size_kb: int | None) -> ExecutionResult:
        # Re-check right before the privileged call
        if Path(path).is_symlink():
            return self._refuse_symlink(path)

        try:
            result = run_command(["sudo", "rm", "-rf", "--", path], timeout=self._command_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Timed out deleting %s after %ss", path, self._command_timeout)
            return ExecutionResult(
                path=path,
                outcome=Outcome.TIMED_OUT,
                error=f"timed out after {self._command_timeout}s",
                size_kb=size_kb,
            )
        except OSError as e:
            return ExecutionResult(path=path, outcome=Outcome.FAILED, error=str(e), size_kb=size_kb)

        if not result.success:
            return ExecutionResult(
                path=path,
                outcome=Outcome.FAILED,
                error=result.stderr.strip() or "sudo rm failed",
                size_kb=size_kb,
            )
        return ExecutionResult(path=path, outcome=Outcome.DELETED, size_kb=size_kb, removed_count=1)

    def _delete_in_process(self, target: Path, size_kb: int | None) -> ExecutionResult:
        path = str(target)
        try:
            # Directories (but not symlinks to directories)
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(path)
            else:
                target.unlink()
        except FileNotFoundError:
            # Removed by someone else in the meantime
            return ExecutionResult(path=path, outcome=Outcome.NOTHING_TO_DO)
        except OSError as e:
            return ExecutionResult(path=path, outcome=Outcome.FAILED, error=str(e), size_kb=size_kb)

        logger.debug("Deleted %s (%s KB)", path, size_kb)
        return ExecutionResult(path=path, outcome=Outcome.DELETED, size_kb=size_kb, removed_count=1)

    # ---- bounded find + delete --------------------------------------------

    def find_delete(
        self,
        base_dir: str,
        pattern: str,
        *,
        age_days: int = 7,
        type_filter: str = "f",
        elevated: bool = False,
    ) -> ExecutionResult:
        """Delete entries below base_dir whose name matches pattern.

        The walk never descends more than ``find_max_depth`` levels and
        every match is gated individually.

        Args:
            base_dir: Existing, non-symlink directory to search.
            pattern: Name glob (no path separators).
            age_days: Only entries last modified at least this many days ago.
            type_filter: ``f`` (files), ``d`` (directories) or ``l`` (links).
            elevated: Use ``sudo find`` and ``sudo rm``.

        Returns:
            ExecutionResult for the whole operation; removed_count holds
            the number of removed (or, in dry-run, matched) entries.

        Raises:
            InvalidInput: If pattern or type_filter are malformed.
        """
        if not pattern or "/" in pattern or "\0" in pattern:
            raise InvalidInput(f"invalid name pattern: {pattern!r}")
        if type_filter not in FIND_TYPES:
            raise InvalidInput(f"invalid type filter: {type_filter!r}")
        if age_days < 0:
            raise InvalidInput("age_days must not be negative")

        decision = self.gate.decide(base_dir, elevated=elevated)
        if not decision.allowed:
            reason = decision.reason.value if decision.reason else "denied"
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.DENIED,
                error=reason,
                dry_run=self.dry_run,
            )

        base = Path(base_dir)
        if base.is_symlink():
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.FAILED,
                error="base directory is a symlink",
                dry_run=self.dry_run,
            )
        if not base.exists():
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.NOTHING_TO_DO,
                dry_run=self.dry_run,
            )
        if not base.is_dir():
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.FAILED,
                error="base path is not a directory",
                dry_run=self.dry_run,
            )

        if elevated:
            return self._find_delete_elevated(base_dir, pattern, age_days, type_filter)
        return self._find_delete_in_process(base_dir, pattern, age_days, type_filter)

    def _find_delete_in_process(
        self, base_dir: str, pattern: str, age_days: int, type_filter: str
    ) -> ExecutionResult:
        deadline = time.monotonic() + self._command_timeout
        cutoff = time.time() - age_days * 86400
        base_depth = base_dir.rstrip("/").count("/")

        matches: list[str] = []
        matched_dirs: set[str] = set()
        freed = 0
        for dirpath, dirnames, filenames in os.walk(base_dir, followlinks=False):
            if time.monotonic() > deadline:
                return self._find_result(base_dir, matches, freed, timed_out=True)

            depth = dirpath.rstrip("/").count("/") - base_depth + 1
            candidates = dirnames + filenames if type_filter != "d" else list(dirnames)

            for name in candidates:
                if not fnmatch.fnmatchcase(name, pattern):
                    continue
                entry = os.path.join(dirpath, name)
                try:
                    st = os.lstat(entry)
                except OSError:
                    continue
                if not _type_matches(st.st_mode, type_filter) or st.st_mtime > cutoff:
                    continue
                if not self.gate.decide(entry).allowed:
                    logger.debug("Skipping protected match %s", entry)
                    continue
                matches.append(entry)
                if type_filter == "d":
                    matched_dirs.add(name)
                freed += st.st_size // 1024

            # Prune at depth and never descend into matched directories
            if depth >= self._find_max_depth:
                dirnames[:] = []
            elif type_filter == "d":
                dirnames[:] = [d for d in dirnames if d not in matched_dirs]
            matched_dirs.clear()

        if self.dry_run or not matches:
            return self._find_result(base_dir, matches, freed)

        errors: list[str] = []
        removed = 0
        for entry in matches:
            target = Path(entry)
            try:
                if target.is_dir() and not target.is_symlink():
                    shutil.rmtree(entry)
                else:
                    target.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                errors.append(f"{entry}: {e}")

        if errors:
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.FAILED,
                error="; ".join(errors),
                size_kb=freed,
                removed_count=removed,
            )
        return ExecutionResult(
            path=base_dir,
            outcome=Outcome.DELETED,
            size_kb=freed,
            removed_count=removed,
        )

    def _find_delete_elevated(
        self, base_dir: str, pattern: str, age_days: int, type_filter: str
    ) -> ExecutionResult:
        deadline = time.monotonic() + self._command_timeout
        args = [
            "sudo",
            "find",
            base_dir,
            "-mindepth",
            "1",
            "-maxdepth",
            str(self._find_max_depth),
            "-type",
            type_filter,
            "-name",
            pattern,
        ]
        if age_days > 0:
            args += ["-mtime", f"+{age_days - 1}"]
        args.append("-print0")

        try:
            listing = run_command(args, timeout=self._command_timeout)
        except subprocess.TimeoutExpired:
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.TIMED_OUT,
                error=f"find timed out after {self._command_timeout}s",
                dry_run=self.dry_run,
            )
        except OSError as e:
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.FAILED,
                error=str(e),
                dry_run=self.dry_run,
            )

        if not listing.success:
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.FAILED,
                error=listing.stderr.strip() or "sudo find failed",
                dry_run=self.dry_run,
            )

        matches = [entry for entry in listing.stdout.split("\0") if entry]
        if type_filter != "l":
            matches = [entry for entry in matches if not Path(entry).is_symlink()]
        matches = [entry for entry in matches if self.gate.decide(entry, elevated=True).allowed]

        if self.dry_run or not matches:
            return self._find_result(base_dir, matches, None)

        remaining = max(deadline - time.monotonic(), 1.0)
        try:
            result = run_command(["sudo", "rm", "-rf", "--", *matches], timeout=remaining)
        except subprocess.TimeoutExpired:
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.TIMED_OUT,
                error=f"rm timed out after {self._command_timeout}s",
            )
        except OSError as e:
            return ExecutionResult(path=base_dir, outcome=Outcome.FAILED, error=str(e))

        if not result.success:
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.FAILED,
                error=result.stderr.strip() or "sudo rm failed",
            )
        return ExecutionResult(path=base_dir, outcome=Outcome.DELETED, removed_count=len(matches))

    def _find_result(
        self,
        base_dir: str,
        matches: list[str],
        freed: int | None,
        *,
        timed_out: bool = False,
    ) -> ExecutionResult:
        if timed_out:
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.TIMED_OUT,
                error=f"walk timed out after {self._command_timeout}s",
                dry_run=self.dry_run,
            )
        if not matches:
            return ExecutionResult(
                path=base_dir,
                outcome=Outcome.NOTHING_TO_DO,
                dry_run=self.dry_run,
            )
        return ExecutionResult(
            path=base_dir,
            outcome=Outcome.DELETED,
            size_kb=freed,
            dry_run=True,
            removed_count=len(matches),
        )

    # ---- size probe -------------------------------------------------------

    def path_size_kb(self, path: str, *, timeout: float | None = None) -> SizeProbe:
        """Measure the size of a path in kilobytes.

        Uses ``du -skP`` bounded by the size timeout. When ``du`` is not
        installed a Python walk with the same budget is used instead.

        Args:
            path: Path to measure.
            timeout: Budget override in seconds. Default: the size timeout.

        Returns:
            SizeProbe with kb=0 for missing paths and timed_out=True when
            the budget was exhausted.
        """
        if not os.path.lexists(path):
            return SizeProbe(kb=0)

        budget = timeout if timeout is not None else self._size_timeout
        try:
            result = run_command(["du", "-skP", path], timeout=budget)
        except subprocess.TimeoutExpired:
            logger.debug("Size probe timed out for %s", path)
            return SizeProbe(kb=0, timed_out=True)
        except FileNotFoundError:
            return self._walk_size_kb(path, budget)

        fields = result.stdout.split()
        if fields and fields[0].isdigit():
            return SizeProbe(kb=int(fields[0]))
        return self._walk_size_kb(path, budget)

    def _walk_size_kb(self, path: str, budget: float) -> SizeProbe:
        deadline = time.monotonic() + budget
        try:
            st = os.lstat(path)
        except OSError:
            return SizeProbe(kb=0)

        total = st.st_size
        if Path(path).is_dir() and not Path(path).is_symlink():
            for dirpath, dirnames, filenames in os.walk(path, followlinks=False):
                if time.monotonic() > deadline:
                    return SizeProbe(kb=total // 1024, timed_out=True)
                for name in dirnames + filenames:
                    try:
                        total += os.lstat(os.path.join(dirpath, name)).st_size
                    except OSError:
                        continue
        return SizeProbe(kb=total // 1024)

    # ---- maintenance commands ---------------------------------------------

    def run_maintenance(self, args: list[str], *, timeout: float | None = None) -> ExecutionResult:
        """Run an external maintenance command under a wall-clock timeout.

        Args:
            args: Command and arguments.
            timeout: Budget in seconds. Default: the executor's command timeout.

        Returns:
            ExecutionResult with TIMED_OUT kept distinct from FAILED.

        Raises:
            InvalidInput: If args is empty.
        """
        if not args:
            raise InvalidInput("maintenance command must not be empty")

        command = " ".join(args)
        if self.dry_run:
            logger.info("Dry-run: would run %s", command)
            return ExecutionResult(path=command, outcome=Outcome.COMPLETED, dry_run=True)

        budget = timeout if timeout is not None else self._command_timeout
        try:
            result = run_command(args, timeout=budget)
        except subprocess.TimeoutExpired:
            logger.warning("Maintenance command timed out after %ss: %s", budget, command)
            return ExecutionResult(
                path=command,
                outcome=Outcome.TIMED_OUT,
                error=f"timed out after {budget}s",
            )
        except OSError as e:
            return ExecutionResult(path=command, outcome=Outcome.FAILED, error=str(e))

        if not result.success:
            return ExecutionResult(
                path=command,
                outcome=Outcome.FAILED,
                error=result.stderr.strip() or f"exit code {result.returncode}",
            )
        return ExecutionResult(path=command, outcome=Outcome.COMPLETED)


def _type_matches(mode: int, type_filter: str) -> bool:
    if type_filter == "f":
        return stat.S_ISREG(mode)
    if type_filter == "d":
        return stat.S_ISDIR(mode)
    return stat.S_ISLNK(mode)
