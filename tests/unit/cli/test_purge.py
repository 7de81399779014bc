"""Unit tests for the purge command.

Runs the command end to end against a temporary home directory.
"""

import json
from pathlib import Path

from sweepctl.cli.main import app
from sweepctl.core.state import OperationLog
from sweepctl.executor.models import Outcome
from sweepctl.policy.overrides import UserOverride, save_user_override
from typer.testing import CliRunner

runner = CliRunner()


class TestPurgeCommand:
    """Tests for sweepctl purge."""

    def test_help(self) -> None:
        """Purge shows its options."""
        result = runner.invoke(app, ["purge", "--help"])

        assert result.exit_code == 0
        assert "--dry-run" in result.stdout
        assert "--all" in result.stdout

    def test_deletes_old_artifacts(self, project: Path) -> None:
        """Old artifacts are deleted, recent ones are kept."""
        result = runner.invoke(app, ["purge", "-p", str(project.parent), "--yes"])

        assert result.exit_code == 0, result.output
        assert not (project / "node_modules").exists()
        assert (project / "target").exists()
        assert "Deleted 1 path(s)" in result.output

        history = OperationLog().get_history()
        assert [e.path for e in history] == [str(project / "node_modules")]
        assert history[0].outcome == Outcome.DELETED
        assert history[0].command == "sweepctl purge"

    def test_dry_run(self, project: Path) -> None:
        """Dry-run deletes nothing and reports what would be freed."""
        result = runner.invoke(app, ["purge", "-p", str(project.parent), "--dry-run"])

        assert result.exit_code == 0, result.output
        assert (project / "node_modules").exists()
        assert "would be deleted" in result.output

    def test_confirmation_declined(self, project: Path) -> None:
        """Answering no aborts without deleting."""
        result = runner.invoke(app, ["purge", "-p", str(project.parent)], input="n\n")

        assert result.exit_code == 0
        assert "Aborted." in result.output
        assert (project / "node_modules").exists()

    def test_confirmation_accepted(self, project: Path) -> None:
        """Answering yes deletes the selection."""
        result = runner.invoke(app, ["purge", "-p", str(project.parent)], input="y\n")

        assert result.exit_code == 0, result.output
        assert not (project / "node_modules").exists()

    def test_all_includes_recent(self, project: Path) -> None:
        """--all deletes recent artifacts too."""
        result = runner.invoke(app, ["purge", "-p", str(project.parent), "--all", "-y"])

        assert result.exit_code == 0, result.output
        assert not (project / "node_modules").exists()
        assert not (project / "target").exists()

    def test_target_filter(self, project: Path) -> None:
        """--target limits the scan to the named artifacts."""
        result = runner.invoke(
            app, ["purge", "-p", str(project.parent), "-t", "target", "--all", "-y"]
        )

        assert result.exit_code == 0, result.output
        assert (project / "node_modules").exists()
        assert not (project / "target").exists()

    def test_whitelisted_artifact_kept(self, project: Path) -> None:
        """Whitelisted artifacts are never offered."""
        save_user_override(UserOverride(frozenset({str(project / "node_modules")})))

        result = runner.invoke(app, ["purge", "-p", str(project.parent), "--all", "-y"])

        assert result.exit_code == 0, result.output
        assert (project / "node_modules").exists()
        assert not (project / "target").exists()

    def test_nothing_selected(self, isolated_env: Path, project: Path) -> None:
        """Only recent artifacts means nothing is selected by default."""
        result = runner.invoke(app, ["purge", "-p", str(project.parent), "-t", "target"])

        assert result.exit_code == 0
        assert "No candidates selected" in result.output
        assert (project / "target").exists()

    def test_nothing_found(self, isolated_env: Path) -> None:
        """An empty root reports there is nothing to clean."""
        (isolated_env / "empty").mkdir()

        result = runner.invoke(app, ["purge", "-p", str(isolated_env / "empty")])

        assert result.exit_code == 0
        assert "Nothing to clean" in result.output

    def test_home_root_refused(self, isolated_env: Path, project: Path) -> None:
        """The home directory itself is never scanned."""
        result = runner.invoke(app, ["purge", "-p", str(isolated_env), "-y", "--all"])

        assert result.exit_code == 0
        assert "Skipped" in result.output
        assert (project / "node_modules").exists()

    def test_relative_root_rejected(self, isolated_env: Path) -> None:
        """Relative search roots are an error."""
        result = runner.invoke(app, ["purge", "-p", "code"])

        assert result.exit_code == 1
        assert "absolute" in result.output

    def test_json_listing(self, project: Path) -> None:
        """JSON output lists candidates with their selection state."""
        result = runner.invoke(
            app, ["purge", "-p", str(project.parent), "--dry-run", "-f", "json", "-s", "path"]
        )

        assert result.exit_code == 0, result.output
        listing = json.loads(result.stdout[: result.stdout.rindex("]") + 1])
        assert [(c["name"], c["selected"]) for c in listing] == [
            ("node_modules", True),
            ("target", False),
        ]
