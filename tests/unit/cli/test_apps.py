"""Unit tests for the apps command."""

import json
import plistlib
from pathlib import Path

from sweepctl.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


def _bundle(root: Path, name: str, bundle_id: str) -> Path:
    bundle = root / f"{name}.app"
    (bundle / "Contents").mkdir(parents=True)
    with (bundle / "Contents" / "Info.plist").open("wb") as f:
        plistlib.dump({"CFBundleIdentifier": bundle_id, "CFBundleName": name}, f)
    return bundle


class TestAppsCommand:
    """Tests for sweepctl apps."""

    def test_json_listing(self, isolated_env: Path, tmp_path: Path) -> None:
        """Bundles are listed with identity and protection state."""
        apps = tmp_path / "Applications"
        _bundle(apps, "Mullvad VPN", "net.mullvad.vpn")
        _bundle(apps, "Sketchpad", "com.example.sketchpad")

        result = runner.invoke(app, ["apps", "-p", str(apps), "-f", "json"])

        assert result.exit_code == 0, result.output
        by_id = {c["bundle_id"]: c for c in json.loads(result.stdout)}
        assert by_id["net.mullvad.vpn"]["protection"] == "deny"
        assert by_id["net.mullvad.vpn"]["deny_reason"] == "protected_identity"
        assert by_id["com.example.sketchpad"]["protection"] == "allow"
        assert not any(c["selected"] for c in by_id.values())

    def test_table(self, isolated_env: Path, tmp_path: Path) -> None:
        """The table view ends with a count of protected bundles."""
        apps = tmp_path / "Applications"
        _bundle(apps, "Mullvad VPN", "net.mullvad.vpn")

        result = runner.invoke(app, ["apps", "-p", str(apps)])

        assert result.exit_code == 0, result.output
        assert "Applications" in result.stdout
        assert "1 application(s), 1 protected" in result.stdout

    def test_no_bundles(self, isolated_env: Path, tmp_path: Path) -> None:
        """An empty folder lists nothing."""
        result = runner.invoke(app, ["apps", "-p", str(tmp_path)])

        assert result.exit_code == 0
        assert "No application bundles found" in result.stdout


class TestUninstallCommand:
    """Tests for sweepctl apps uninstall."""

    def _leftover(self, home: Path, bundle_id: str) -> Path:
        cache = home / "Library" / "Caches" / bundle_id
        cache.mkdir(parents=True)
        (cache / "blob").write_text("x")
        return cache

    def test_removes_bundle_and_leftovers(self, isolated_env: Path, tmp_path: Path) -> None:
        """The bundle and its ~/Library leftovers are removed after --yes."""
        apps = tmp_path / "Applications"
        bundle = _bundle(apps, "Sketchpad", "com.example.sketchpad")
        leftover = self._leftover(isolated_env, "com.example.sketchpad")

        result = runner.invoke(app, ["apps", "uninstall", "Sketchpad", "-p", str(apps), "-y"])

        assert result.exit_code == 0, result.output
        assert not bundle.exists()
        assert not leftover.exists()
        assert "Deleted 2 path(s)" in result.output

    def test_dry_run(self, isolated_env: Path, tmp_path: Path) -> None:
        """Dry-run lists the leftovers and keeps everything."""
        apps = tmp_path / "Applications"
        bundle = _bundle(apps, "Sketchpad", "com.example.sketchpad")
        leftover = self._leftover(isolated_env, "com.example.sketchpad")

        result = runner.invoke(
            app, ["apps", "uninstall", "com.example.sketchpad", "-p", str(apps), "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert "Leftover files (1)" in result.output
        assert "would be deleted" in result.output
        assert bundle.exists()
        assert leftover.exists()

    def test_protected_refused(self, isolated_env: Path, tmp_path: Path) -> None:
        """Protected applications cannot be uninstalled."""
        apps = tmp_path / "Applications"
        bundle = _bundle(apps, "Mullvad VPN", "net.mullvad.vpn")

        result = runner.invoke(app, ["apps", "uninstall", "Mullvad VPN", "-p", str(apps), "-y"])

        assert result.exit_code == 1
        assert "protected" in result.output
        assert bundle.exists()

    def test_unknown_name(self, isolated_env: Path, tmp_path: Path) -> None:
        """A name that matches nothing exits with an error."""
        apps = tmp_path / "Applications"
        _bundle(apps, "Sketchpad", "com.example.sketchpad")

        result = runner.invoke(app, ["apps", "uninstall", "Paint", "-p", str(apps), "-y"])

        assert result.exit_code == 1
        assert "No application matches" in result.output

    def test_confirmation_declined(self, isolated_env: Path, tmp_path: Path) -> None:
        """Answering no keeps the bundle."""
        apps = tmp_path / "Applications"
        bundle = _bundle(apps, "Sketchpad", "com.example.sketchpad")

        result = runner.invoke(
            app, ["apps", "uninstall", "Sketchpad", "-p", str(apps)], input="n\n"
        )

        assert result.exit_code == 0
        assert "Aborted." in result.output
        assert bundle.exists()
