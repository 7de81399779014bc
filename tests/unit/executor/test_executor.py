"""Unit tests for SafeExecutor.

Tests gated deletion, dry-run mode, idempotent removal, elevated
deletion with symlink refusal, bounded find-delete, size probes and
maintenance commands.
"""

import subprocess
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from sweepctl.core.errors import InvalidInput
from sweepctl.executor.executor import SafeExecutor
from sweepctl.executor.models import Outcome, SizeProbe
from sweepctl.policy.gate import PolicyGate
from sweepctl.policy.overrides import UserOverride
from sweepctl.utils.shell import CommandResult

RUN_COMMAND = "sweepctl.executor.executor.run_command"


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


class TestDelete:
    """Tests for SafeExecutor.delete."""

    def test_delete_directory(self, gate: PolicyGate, tmp_path: Path) -> None:
        """An allowed directory is removed recursively."""
        target = tmp_path / "proj" / "node_modules"
        (target / "pkg").mkdir(parents=True)
        (target / "pkg" / "index.js").write_text("x" * 4096)

        result = SafeExecutor(gate).delete(str(target))

        assert result.outcome == Outcome.DELETED
        assert result.success is True
        assert result.removed_count == 1
        assert not target.exists()

    def test_delete_absent_twice(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Deleting a missing path is a successful no-op, every time."""
        missing = str(tmp_path / "gone")
        executor = SafeExecutor(gate)

        first = executor.delete(missing)
        second = executor.delete(missing)

        assert first.outcome == Outcome.NOTHING_TO_DO
        assert second.outcome == Outcome.NOTHING_TO_DO
        assert first.success and second.success

    def test_delete_twice_after_success(self, gate: PolicyGate, tmp_path: Path) -> None:
        """A second delete of a removed path reports nothing to do."""
        target = tmp_path / "build"
        target.mkdir()
        executor = SafeExecutor(gate)

        assert executor.delete(str(target)).outcome == Outcome.DELETED
        assert executor.delete(str(target)).outcome == Outcome.NOTHING_TO_DO

    def test_denied_path_untouched(self, home: Path, tmp_path: Path) -> None:
        """A whitelisted path is refused and left in place."""
        keep = tmp_path / "keep"
        keep.mkdir()
        gate = PolicyGate(UserOverride(frozenset({str(keep)})), home=home)

        with patch(RUN_COMMAND) as mock_run:
            result = SafeExecutor(gate).delete(str(keep))

        assert result.outcome == Outcome.DENIED
        assert result.success is False
        assert "user_override" in (result.error or "")
        assert keep.exists()
        mock_run.assert_not_called()

    def test_critical_path_denied(self, gate: PolicyGate) -> None:
        """Critical roots are refused with and without elevation."""
        executor = SafeExecutor(gate)

        assert executor.delete("/usr").outcome == Outcome.DENIED
        assert executor.delete("/", elevated=True).outcome == Outcome.DENIED

    def test_dry_run_keeps_path(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Dry-run reports the deletion without performing it."""
        target = tmp_path / "target"
        target.mkdir()

        with patch(RUN_COMMAND, return_value=_ok("12\t" + str(target))):
            result = SafeExecutor(gate, dry_run=True).delete(str(target))

        assert result.outcome == Outcome.DELETED
        assert result.dry_run is True
        assert result.size_kb == 12
        assert result.removed_count == 1
        assert target.exists()

    def test_delete_file_symlink_in_process(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Without elevation a symlink is unlinked, not followed."""
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real)

        result = SafeExecutor(gate).delete(str(link))

        assert result.outcome == Outcome.DELETED
        assert not link.is_symlink()
        assert real.exists()

    def test_delete_many_isolates_failures(self, gate: PolicyGate, tmp_path: Path) -> None:
        """One denied path does not stop the batch."""
        target = tmp_path / "dist"
        target.mkdir()

        results = SafeExecutor(gate).delete_many(["/etc", str(target)])

        assert [r.outcome for r in results] == [Outcome.DENIED, Outcome.DELETED]


class TestElevatedDelete:
    """Tests for deletion with elevated privileges."""

    def test_refuses_symlink(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Elevated deletion never touches a symlink."""
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real)

        with patch(RUN_COMMAND) as mock_run:
            result = SafeExecutor(gate).delete(str(link), elevated=True)

        assert result.outcome == Outcome.FAILED
        assert "symlink" in (result.error or "")
        assert link.is_symlink()
        mock_run.assert_not_called()

    def test_uses_sudo_rm(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Elevated deletion runs sudo rm -rf with an option terminator."""
        target = tmp_path / "target"
        target.mkdir()

        with patch(RUN_COMMAND, return_value=_ok("8\t" + str(target))) as mock_run:
            result = SafeExecutor(gate).delete(str(target), elevated=True)

        assert result.outcome == Outcome.DELETED
        assert result.size_kb == 8
        assert mock_run.call_args_list[-1].args[0] == ["sudo", "rm", "-rf", "--", str(target)]

    def test_timeout(self, gate: PolicyGate, tmp_path: Path) -> None:
        """A hung privileged removal is reported as TIMED_OUT."""
        target = tmp_path / "target"
        target.mkdir()

        def fake_run(args: list[str], **kwargs: object) -> CommandResult:
            if args[0] == "du":
                return _ok("4\t" + str(target))
            raise subprocess.TimeoutExpired(args, 1)

        with patch(RUN_COMMAND, side_effect=fake_run):
            result = SafeExecutor(gate, command_timeout=1).delete(str(target), elevated=True)

        assert result.outcome == Outcome.TIMED_OUT
        assert result.success is False

    def test_sudo_failure(self, gate: PolicyGate, tmp_path: Path) -> None:
        """A failing sudo rm is reported with its stderr."""
        target = tmp_path / "target"
        target.mkdir()

        def fake_run(args: list[str], **kwargs: object) -> CommandResult:
            if args[0] == "du":
                return _ok("4\t" + str(target))
            return CommandResult(stdout="", stderr="permission denied", returncode=1)

        with patch(RUN_COMMAND, side_effect=fake_run):
            result = SafeExecutor(gate).delete(str(target), elevated=True)

        assert result.outcome == Outcome.FAILED
        assert result.error == "permission denied"


class TestFindDelete:
    """Tests for SafeExecutor.find_delete."""

    @pytest.fixture
    def logs(self, tmp_path: Path, make_old: Callable[[Path, int], int]) -> Path:
        base = tmp_path / "logs"
        (base / "nested").mkdir(parents=True)
        for name in ("old.log", "nested/old2.log"):
            (base / name).write_text("data")
            make_old(base / name, 30)
        (base / "new.log").write_text("data")
        (base / "old.txt").write_text("data")
        make_old(base / "old.txt", 30)
        return base

    def test_removes_old_matches_only(self, gate: PolicyGate, logs: Path) -> None:
        """Only old entries matching the pattern are removed."""
        result = SafeExecutor(gate).find_delete(str(logs), "*.log", age_days=7)

        assert result.outcome == Outcome.DELETED
        assert result.removed_count == 2
        assert not (logs / "old.log").exists()
        assert not (logs / "nested" / "old2.log").exists()
        assert (logs / "new.log").exists()
        assert (logs / "old.txt").exists()

    def test_dry_run_counts_matches(self, gate: PolicyGate, logs: Path) -> None:
        """Dry-run reports the match count and removes nothing."""
        result = SafeExecutor(gate, dry_run=True).find_delete(str(logs), "*.log", age_days=7)

        assert result.outcome == Outcome.DELETED
        assert result.dry_run is True
        assert result.removed_count == 2
        assert (logs / "old.log").exists()

    def test_depth_bound(self, gate: PolicyGate, logs: Path) -> None:
        """Matches below the depth bound are left alone."""
        executor = SafeExecutor(gate, find_max_depth=1)

        result = executor.find_delete(str(logs), "*.log", age_days=7)

        assert result.removed_count == 1
        assert (logs / "nested" / "old2.log").exists()

    def test_no_matches(self, gate: PolicyGate, logs: Path) -> None:
        """Nothing matching is a successful no-op."""
        result = SafeExecutor(gate).find_delete(str(logs), "*.tmp")

        assert result.outcome == Outcome.NOTHING_TO_DO

    def test_missing_base(self, gate: PolicyGate, tmp_path: Path) -> None:
        """A missing base directory is a successful no-op."""
        result = SafeExecutor(gate).find_delete(str(tmp_path / "none"), "*.log")

        assert result.outcome == Outcome.NOTHING_TO_DO

    def test_symlink_base_refused(self, gate: PolicyGate, logs: Path, tmp_path: Path) -> None:
        """A symlinked base directory is never walked."""
        link = tmp_path / "logs-link"
        link.symlink_to(logs)

        result = SafeExecutor(gate).find_delete(str(link), "*.log")

        assert result.outcome == Outcome.FAILED
        assert (logs / "old.log").exists()

    def test_protected_base_denied(self, gate: PolicyGate) -> None:
        """The base directory is gated before anything is listed."""
        result = SafeExecutor(gate).find_delete("/etc", "*.conf")

        assert result.outcome == Outcome.DENIED

    @pytest.mark.parametrize(
        ("pattern", "type_filter"),
        [("", "f"), ("a/b", "f"), ("*.log", "x")],
    )
    def test_invalid_arguments(
        self, gate: PolicyGate, logs: Path, pattern: str, type_filter: str
    ) -> None:
        """Malformed patterns and types are rejected."""
        with pytest.raises(InvalidInput):
            SafeExecutor(gate).find_delete(str(logs), pattern, type_filter=type_filter)

    def test_elevated_uses_sudo_find(self, gate: PolicyGate, logs: Path) -> None:
        """Elevated find lists with sudo find and removes in one sudo rm."""
        old = str(logs / "old.log")

        with patch(RUN_COMMAND, side_effect=[_ok(old + "\0"), _ok()]) as mock_run:
            result = SafeExecutor(gate).find_delete(str(logs), "*.log", elevated=True)

        find_args = mock_run.call_args_list[0].args[0]
        assert find_args[:3] == ["sudo", "find", str(logs)]
        assert "-print0" in find_args
        assert mock_run.call_args_list[1].args[0] == ["sudo", "rm", "-rf", "--", old]
        assert result.outcome == Outcome.DELETED
        assert result.removed_count == 1


class TestPathSize:
    """Tests for SafeExecutor.path_size_kb."""

    def test_missing_path(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Missing paths measure zero."""
        assert SafeExecutor(gate).path_size_kb(str(tmp_path / "none")) == SizeProbe(kb=0)

    def test_parses_du(self, gate: PolicyGate, tmp_path: Path) -> None:
        """du -skP output is parsed."""
        with patch(RUN_COMMAND, return_value=_ok(f"2048\t{tmp_path}\n")) as mock_run:
            probe = SafeExecutor(gate).path_size_kb(str(tmp_path))

        assert probe == SizeProbe(kb=2048)
        assert mock_run.call_args.args[0] == ["du", "-skP", str(tmp_path)]

    def test_timeout(self, gate: PolicyGate, tmp_path: Path) -> None:
        """A hung du yields an unknown size flagged as timed out."""
        with patch(RUN_COMMAND, side_effect=subprocess.TimeoutExpired(["du"], 1)):
            probe = SafeExecutor(gate).path_size_kb(str(tmp_path), timeout=1)

        assert probe.timed_out is True
        assert probe.kb == 0

    def test_walk_fallback(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Without du the size is summed in Python."""
        (tmp_path / "blob").write_bytes(b"x" * 8192)

        with patch(RUN_COMMAND, side_effect=FileNotFoundError("du")):
            probe = SafeExecutor(gate).path_size_kb(str(tmp_path))

        assert probe.kb >= 8
        assert probe.timed_out is False


class TestRunMaintenance:
    """Tests for SafeExecutor.run_maintenance."""

    def test_success(self, gate: PolicyGate) -> None:
        """A zero exit status is COMPLETED."""
        with patch(RUN_COMMAND, return_value=_ok()):
            result = SafeExecutor(gate).run_maintenance(["brew", "cleanup"])

        assert result.outcome == Outcome.COMPLETED
        assert result.path == "brew cleanup"

    def test_failure(self, gate: PolicyGate) -> None:
        """A non-zero exit status is FAILED."""
        with patch(RUN_COMMAND, return_value=CommandResult("", "", 2)):
            result = SafeExecutor(gate).run_maintenance(["brew", "cleanup"])

        assert result.outcome == Outcome.FAILED
        assert result.error == "exit code 2"

    def test_timeout_distinct_from_failure(self, gate: PolicyGate) -> None:
        """A timeout is reported as TIMED_OUT, not FAILED."""
        with patch(RUN_COMMAND, side_effect=subprocess.TimeoutExpired(["brew"], 5)):
            result = SafeExecutor(gate).run_maintenance(["brew", "cleanup"], timeout=5)

        assert result.outcome == Outcome.TIMED_OUT

    def test_dry_run(self, gate: PolicyGate) -> None:
        """Dry-run never starts the command."""
        with patch(RUN_COMMAND) as mock_run:
            result = SafeExecutor(gate, dry_run=True).run_maintenance(["brew", "cleanup"])

        assert result.outcome == Outcome.COMPLETED
        assert result.dry_run is True
        mock_run.assert_not_called()

    def test_empty_command(self, gate: PolicyGate) -> None:
        """An empty command is invalid input."""
        with pytest.raises(InvalidInput):
            SafeExecutor(gate).run_maintenance([])
