"""Unit tests for the whitelist commands."""

from pathlib import Path

from sweepctl.cli.main import app
from sweepctl.core.paths import get_whitelist_path
from sweepctl.policy.overrides import load_user_override
from typer.testing import CliRunner

runner = CliRunner()


class TestWhitelistCommands:
    """Tests for sweepctl whitelist."""

    def test_add_and_list(self, isolated_env: Path) -> None:
        """Added paths are stored with ~ and listed."""
        result = runner.invoke(app, ["whitelist", "add", "~/code/keep/node_modules"])

        assert result.exit_code == 0, result.output
        assert "~/code/keep/node_modules" in get_whitelist_path().read_text()
        assert load_user_override().covers(str(isolated_env / "code/keep/node_modules/x"))

        listing = runner.invoke(app, ["whitelist", "list"])
        assert "~/code/keep/node_modules" in listing.stdout

    def test_add_duplicate(self, isolated_env: Path) -> None:
        """Adding an existing entry is a no-op."""
        runner.invoke(app, ["whitelist", "add", "/srv/data"])

        result = runner.invoke(app, ["whitelist", "add", "/srv/data/"])

        assert result.exit_code == 0
        assert "Already whitelisted" in result.stdout

    def test_add_relative(self, isolated_env: Path) -> None:
        """Relative entries are rejected."""
        result = runner.invoke(app, ["whitelist", "add", "code/keep"])

        assert result.exit_code == 1
        assert not get_whitelist_path().exists()

    def test_add_builtin_protected(self, isolated_env: Path) -> None:
        """Paths the built-in rules protect get a note but are still added."""
        result = runner.invoke(app, ["whitelist", "add", "/etc/hosts"])

        assert result.exit_code == 0
        assert "built-in rules" in result.stdout
        assert "/etc/hosts" in load_user_override().paths

    def test_remove(self, isolated_env: Path) -> None:
        """Removed entries no longer protect anything."""
        runner.invoke(app, ["whitelist", "add", "/srv/data"])

        result = runner.invoke(app, ["whitelist", "remove", "/srv/data"])

        assert result.exit_code == 0
        assert load_user_override().paths == frozenset()

    def test_remove_missing(self, isolated_env: Path) -> None:
        """Removing an unknown entry fails."""
        result = runner.invoke(app, ["whitelist", "remove", "/srv/none"])

        assert result.exit_code == 1

    def test_list_empty(self, isolated_env: Path) -> None:
        """An empty whitelist says so."""
        result = runner.invoke(app, ["whitelist", "list"])

        assert result.exit_code == 0
        assert "Whitelist is empty" in result.stdout
